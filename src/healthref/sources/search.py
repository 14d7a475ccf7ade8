"""
Fan-out search across all source collaborators.

The three default collaborators run concurrently:
- PubMed (literature database)
- Google Scholar (academic scrape)
- Trusted health websites (web scrape)

A collaborator that fails contributes zero documents; the search itself
never raises.

Usage:
    async with SourceSearch() as search:
        gathered = await search.gather(ConditionQuery.parse("diabetes"))
        print(gathered.stats)
"""

import asyncio
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from healthref.condition import ConditionQuery
from healthref.config import settings
from healthref.logging import get_logger
from healthref.sources.cache import TTLCache
from healthref.sources.documents import SearchResult, SourceDocument
from healthref.sources.pubmed import PubMedClient
from healthref.sources.scholar import GoogleScholarClient
from healthref.sources.web import WebHealthClient

logger = get_logger(__name__, component="source_search")


class SearchCollaborator(Protocol):
    service: str

    async def search(self, query: str, max_results: int = 10) -> SearchResult:
        ...


@dataclass
class SearchQueries:
    """Per-collaborator query strings for one condition."""
    literature: str
    academic: str
    web: str
    max_results: int

    @classmethod
    def for_condition(cls, query: ConditionQuery) -> "SearchQueries":
        # Cause-scoped queries also search the base condition on its own
        subject = f"{query.raw} OR {query.base_condition}" if query.has_cause else query.raw
        return cls(
            literature=f"{subject} health benefits risks foods activities",
            academic=f"{subject} health nutrition exercise",
            web=f"{subject} health benefits risks",
            max_results=(
                settings.search_results_with_cause
                if query.has_cause
                else settings.search_results_default
            ),
        )


@dataclass
class GatheredSources:
    """Documents from every collaborator, in collaborator order."""
    documents: list[SourceDocument] = field(default_factory=list)
    stats: dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.documents)


class SourceSearch:
    """
    Run the default collaborators concurrently for a condition.

    Owns its httpx client unless one is passed in.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        cache: TTLCache | None = None,
        literature: SearchCollaborator | None = None,
        academic: SearchCollaborator | None = None,
        web: SearchCollaborator | None = None,
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=settings.http_timeout,
            follow_redirects=True,
        )
        self.cache = cache if cache is not None else TTLCache(settings.cache_ttl_seconds)

        self.literature = literature or PubMedClient(self.client, cache=self.cache)
        self.academic = academic or GoogleScholarClient(self.client, cache=self.cache)
        self.web = web or WebHealthClient(self.client, cache=self.cache)

    async def gather(self, query: ConditionQuery) -> GatheredSources:
        queries = SearchQueries.for_condition(query)
        logger.info(
            "source_search_start",
            condition=query.raw,
            has_cause=query.has_cause,
            max_results=queries.max_results,
        )

        collaborators = [
            (self.literature, queries.literature),
            (self.academic, queries.academic),
            (self.web, queries.web),
        ]
        results = await asyncio.gather(
            *(c.search(q, queries.max_results) for c, q in collaborators),
            return_exceptions=True,
        )

        gathered = GatheredSources()
        for (collaborator, _), result in zip(collaborators, results):
            if isinstance(result, BaseException):
                # Collaborators log their own failures; this catches bugs in them
                logger.warning(
                    "collaborator_failed",
                    service=collaborator.service,
                    error=str(result),
                )
                result = SearchResult.empty()

            gathered.documents.extend(result.documents)
            gathered.stats[collaborator.service] = result.total

        gathered.stats["analyzed"] = len(gathered.documents)
        logger.info("source_search_complete", **gathered.stats)
        return gathered

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
