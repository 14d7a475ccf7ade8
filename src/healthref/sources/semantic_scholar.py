"""
Search the Semantic Scholar Graph API.

Not part of the default fan-out (Google Scholar covers academic results),
but available for callers that want a second literature database.
An API key raises the rate limit; without one the API allows roughly
one request per second per IP.
"""

import httpx

from healthref.config import settings
from healthref.logging import get_logger
from healthref.sources.cache import TTLCache
from healthref.sources.documents import Origin, SearchResult, SourceDocument
from healthref.sources.pacing import RateLimiter

logger = get_logger(__name__, component="semantic_scholar")

SEARCH_URL = "https://api.semanticscholar.org/graph/v1/paper/search"
PAPER_URL = "https://www.semanticscholar.org/paper/{paper_id}"
FIELDS = "title,venue,year,abstract,url,externalIds"


def _to_document(paper: dict) -> SourceDocument:
    paper_id = paper.get("paperId") or ""
    external_ids = paper.get("externalIds") or {}
    year = paper.get("year")
    return SourceDocument(
        origin=Origin.LITERATURE_DB,
        title=paper.get("title") or "No title",
        abstract_text=paper.get("abstract") or "",
        url=paper.get("url") or PAPER_URL.format(paper_id=paper_id),
        id=paper_id,
        doi=external_ids.get("DOI"),
        venue=paper.get("venue") or None,
        year=str(year) if year else None,
        label="Semantic Scholar",
    )


class SemanticScholarClient:
    """Semantic Scholar search collaborator."""

    service = "semantic_scholar"

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: TTLCache | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.client = client
        self.cache = cache
        self.rate_limiter = rate_limiter or RateLimiter(settings.semantic_scholar_min_interval)

    async def search(self, query: str, max_results: int = 10) -> SearchResult:
        cache_key = f"{query}:{max_results}"
        if self.cache is not None:
            cached = self.cache.get(self.service, cache_key)
            if cached is not None:
                return cached

        headers = {}
        if settings.semantic_scholar_api_key:
            headers["x-api-key"] = settings.semantic_scholar_api_key.get_secret_value()

        await self.rate_limiter.wait()
        try:
            response = await self.client.get(
                SEARCH_URL,
                params={"query": query, "limit": max_results, "fields": FIELDS},
                headers=headers,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                logger.warning(
                    "semantic_scholar_rate_limited",
                    has_api_key=bool(settings.semantic_scholar_api_key),
                )
            else:
                logger.warning("semantic_scholar_failed_http", status=e.response.status_code)
            return SearchResult.empty()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("semantic_scholar_failed", error=str(e))
            return SearchResult.empty()

        documents = [_to_document(p) for p in data.get("data") or [] if p.get("paperId")]
        result = SearchResult(documents=documents, total=data.get("total") or len(documents))

        if self.cache is not None:
            self.cache.set(self.service, cache_key, result)

        logger.info("semantic_scholar_search_complete", fetched=len(documents))
        return result
