"""
Source collaborators that supply documents to the extraction pipeline.

This module handles:
- PubMed, Semantic Scholar and Google Scholar literature search
- Trusted health website scraping
- Per-collaborator request pacing and result caching
"""

from healthref.sources.cache import TTLCache
from healthref.sources.documents import Origin, SearchResult, SourceDocument
from healthref.sources.pacing import RateLimiter
from healthref.sources.pubmed import PubMedClient
from healthref.sources.scholar import GoogleScholarClient
from healthref.sources.search import GatheredSources, SearchQueries, SourceSearch
from healthref.sources.semantic_scholar import SemanticScholarClient
from healthref.sources.web import WebHealthClient

__all__ = [
    "Origin",
    "SourceDocument",
    "SearchResult",
    "RateLimiter",
    "TTLCache",
    "PubMedClient",
    "SemanticScholarClient",
    "GoogleScholarClient",
    "WebHealthClient",
    "SourceSearch",
    "SearchQueries",
    "GatheredSources",
]
