"""
Search Google Scholar by scraping the results page.

Google Scholar has no public API. Each hit is a <div class="gs_ri"> with:
- h3.gs_rt > a       title and link
- div.gs_a           "Authors - Venue, Year - Publisher"
- div.gs_rs          snippet (abstract preview)
"""

import re

import httpx
from lxml import etree, html

from healthref.config import settings
from healthref.logging import get_logger
from healthref.sources.cache import TTLCache
from healthref.sources.documents import Origin, SearchResult, SourceDocument
from healthref.sources.pacing import RateLimiter

logger = get_logger(__name__, component="google_scholar")

SCHOLAR_URL = "https://scholar.google.com/scholar"
SCHOLAR_BASE = "https://scholar.google.com"

# Google Scholar returns at most 20 hits per page
MAX_PER_PAGE = 20

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

YEAR_PATTERN = re.compile(r"\b(19|20)\d{2}\b")


def _clean(text: str | None) -> str:
    return " ".join((text or "").split())


def _parse_byline(byline: str) -> tuple[str | None, str | None]:
    """Pull venue and year out of "Authors - Venue, Year - Publisher"."""
    parts = [p.strip() for p in byline.split(" - ")]
    venue = None
    year = None
    if len(parts) > 1:
        venue_part = parts[1]
        match = YEAR_PATTERN.search(venue_part)
        if match:
            year = match.group(0)
            venue_part = venue_part[:match.start()]
        venue = venue_part.strip(" ,…") or None
    if year is None:
        match = YEAR_PATTERN.search(byline)
        year = match.group(0) if match else None
    return venue, year


def parse_scholar_html(page: str, max_results: int) -> list[SourceDocument]:
    """Parse a Google Scholar results page."""
    if not page.strip():
        return []

    tree = html.fromstring(page)
    documents = []

    for entry in tree.xpath("//div[contains(concat(' ', normalize-space(@class), ' '), ' gs_ri ')]"):
        if len(documents) >= max_results:
            break

        links = entry.xpath(".//h3[contains(@class, 'gs_rt')]//a[@href]")
        if not links:
            continue

        link = links[0]
        title = _clean(link.text_content())
        href = link.get("href", "")
        url = href if href.startswith("http") else f"{SCHOLAR_BASE}{href}"

        byline_nodes = entry.xpath(".//div[contains(@class, 'gs_a')]")
        venue, year = _parse_byline(_clean(byline_nodes[0].text_content())) if byline_nodes else (None, None)

        snippet_nodes = entry.xpath(".//div[contains(@class, 'gs_rs')]")
        snippet = _clean(snippet_nodes[0].text_content()) if snippet_nodes else ""

        documents.append(SourceDocument(
            origin=Origin.ACADEMIC_SCRAPE,
            title=title or "Untitled",
            abstract_text=snippet,
            url=url,
            id=url,
            venue=venue,
            year=year,
            label="Google Scholar",
        ))

    return documents


class GoogleScholarClient:
    """Google Scholar search collaborator."""

    service = "google_scholar"

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: TTLCache | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.client = client
        self.cache = cache
        self.rate_limiter = rate_limiter or RateLimiter(settings.scholar_min_interval)

    async def search(self, query: str, max_results: int = 10) -> SearchResult:
        cache_key = f"{query}:{max_results}"
        if self.cache is not None:
            cached = self.cache.get(self.service, cache_key)
            if cached is not None:
                return cached

        await self.rate_limiter.wait()
        try:
            response = await self.client.get(
                SCHOLAR_URL,
                params={"q": query, "hl": "en", "num": min(max_results, MAX_PER_PAGE)},
                headers=BROWSER_HEADERS,
            )
            response.raise_for_status()
            documents = parse_scholar_html(response.text, max_results)
        except httpx.HTTPStatusError as e:
            # 429 and captcha redirects are common here
            logger.warning("google_scholar_failed_http", status=e.response.status_code)
            return SearchResult.empty()
        except (httpx.HTTPError, etree.ParserError) as e:
            logger.warning("google_scholar_failed", error=str(e))
            return SearchResult.empty()

        result = SearchResult(documents=documents, total=len(documents))
        if self.cache is not None:
            self.cache.set(self.service, cache_key, result)

        logger.info("google_scholar_search_complete", fetched=len(documents))
        return result
