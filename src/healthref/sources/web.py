"""
Search trusted health websites for plain-language content.

Sources:
- CDC and NIH site search pages (link scraping)
- DuckDuckGo Instant Answer API (optional extra abstract, no key needed)

Only links whose text mentions the query (or whose URL contains its first
word) are kept, at most five per site.
"""

from dataclasses import dataclass
from urllib.parse import urljoin

import httpx
from lxml import etree, html

from healthref.config import settings
from healthref.logging import get_logger
from healthref.sources.cache import TTLCache
from healthref.sources.documents import Origin, SearchResult, SourceDocument
from healthref.sources.pacing import RateLimiter
from healthref.sources.scholar import BROWSER_HEADERS

logger = get_logger(__name__, component="web")

DUCKDUCKGO_URL = "https://api.duckduckgo.com/"
MAX_LINKS_PER_SITE = 5
SNIPPET_CHARS = 200


@dataclass(frozen=True)
class HealthSite:
    name: str
    base_url: str
    search_path: str

    @property
    def search_url(self) -> str:
        return f"{self.base_url}{self.search_path}"


TRUSTED_SITES = (
    HealthSite("CDC", "https://www.cdc.gov", "/search.html"),
    HealthSite("NIH", "https://www.nih.gov", "/search"),
)


def _clean(text: str | None) -> str:
    return " ".join((text or "").split())


def _nearby_paragraph(link: html.HtmlElement) -> str | None:
    """First non-empty paragraph following a link in document order."""
    for paragraph in link.xpath("following::p[position() <= 3]"):
        text = _clean(paragraph.text_content())
        if text:
            return text
    return None


def parse_site_links(page: str, site: HealthSite, query: str) -> list[SourceDocument]:
    """Extract relevant links (and a nearby snippet) from a site's search page."""
    if not page.strip():
        return []

    tree = html.fromstring(page)
    query_lower = query.lower()
    first_word = query_lower.split()[0] if query_lower.split() else ""

    documents = []
    seen = set()
    for link in tree.xpath("//a[@href]"):
        if len(documents) >= MAX_LINKS_PER_SITE:
            break

        href = link.get("href", "")
        text = _clean(link.text_content())
        relevant = query_lower in text.lower() or (first_word and first_word in href.lower())
        if not relevant:
            continue

        url = urljoin(site.base_url, href)
        if url in seen:
            continue
        seen.add(url)

        snippet = _nearby_paragraph(link) or text
        documents.append(SourceDocument(
            origin=Origin.WEB_SCRAPE,
            title=text or "Untitled",
            abstract_text=snippet[:SNIPPET_CHARS],
            url=url,
            id=url,
            venue=site.name,
            label=f"Web ({site.name})",
        ))

    return documents


def parse_instant_answer(data: dict, query: str) -> SourceDocument | None:
    abstract = data.get("AbstractText")
    if not abstract:
        return None
    url = data.get("AbstractURL") or ""
    return SourceDocument(
        origin=Origin.WEB_SCRAPE,
        title=data.get("Heading") or query,
        abstract_text=abstract,
        url=url,
        id=url or query,
        venue="DuckDuckGo",
        label="Web (DuckDuckGo)",
    )


class WebHealthClient:
    """
    Trusted health website collaborator.

    A failing site is skipped; the other sources still contribute.
    """

    service = "web"

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: TTLCache | None = None,
        rate_limiter: RateLimiter | None = None,
        sites: tuple[HealthSite, ...] = TRUSTED_SITES,
    ):
        self.client = client
        self.cache = cache
        self.rate_limiter = rate_limiter or RateLimiter(settings.web_min_interval)
        self.sites = sites

    async def search(self, query: str, max_results: int = 10) -> SearchResult:
        cache_key = f"{query}:{max_results}"
        if self.cache is not None:
            cached = self.cache.get(self.service, cache_key)
            if cached is not None:
                return cached

        documents: list[SourceDocument] = []

        for site in self.sites:
            await self.rate_limiter.wait()
            try:
                response = await self.client.get(
                    site.search_url,
                    params={"q": query},
                    headers=BROWSER_HEADERS,
                )
                response.raise_for_status()
                documents.extend(parse_site_links(response.text, site, query))
            except (httpx.HTTPError, etree.ParserError) as e:
                logger.warning("web_site_failed", site=site.name, error=str(e))
                continue

        try:
            response = await self.client.get(
                DUCKDUCKGO_URL,
                params={
                    "q": f"{query} health",
                    "format": "json",
                    "no_html": "1",
                    "skip_disambig": "1",
                },
            )
            response.raise_for_status()
            answer = parse_instant_answer(response.json(), query)
            if answer is not None:
                documents.append(answer)
        except (httpx.HTTPError, ValueError) as e:
            logger.debug("duckduckgo_failed", error=str(e))

        result = SearchResult(documents=documents[:max_results], total=len(documents))
        if self.cache is not None:
            self.cache.set(self.service, cache_key, result)

        logger.info("web_search_complete", fetched=len(result.documents), total=result.total)
        return result
