"""
Search PubMed through the NCBI E-utilities API.

Two-stage lookup:
1. ESearch returns the PMIDs matching a query (JSON)
2. EFetch returns the full records for those PMIDs (XML)

Documentation:
- https://www.ncbi.nlm.nih.gov/books/NBK25501/

Usage:
    async with httpx.AsyncClient() as client:
        pubmed = PubMedClient(client)
        result = await pubmed.search("diabetes exercise", max_results=8)
"""

import httpx
from lxml import etree

from healthref.config import settings
from healthref.logging import get_logger
from healthref.sources.cache import TTLCache
from healthref.sources.documents import Origin, SearchResult, SourceDocument
from healthref.sources.pacing import RateLimiter

logger = get_logger(__name__, component="pubmed")

EUTILS_BASE_URL = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils"
ARTICLE_URL = "https://pubmed.ncbi.nlm.nih.gov/{pmid}/"


# ============================================================================
# XML Helpers
# ============================================================================

def _xpath_first(element: etree._Element, path: str) -> etree._Element | None:
    """Helper to get first XPath result or None."""
    results = element.xpath(path)
    return results[0] if results else None


def _element_text(element: etree._Element | None) -> str | None:
    """All text inside an element (including nested markup), whitespace-collapsed."""
    if element is None:
        return None
    text = " ".join("".join(element.itertext()).split())
    return text or None


def _extract_abstract(article: etree._Element) -> str | None:
    """
    Join all AbstractText parts.

    Structured abstracts split into labelled parts (BACKGROUND, METHODS,
    RESULTS). The labels are kept because the Methods part is usually
    where exercise and dosage details live.
    """
    parts = []
    for node in article.xpath(".//Abstract/AbstractText"):
        text = _element_text(node)
        if not text:
            continue
        label = node.get("Label")
        parts.append(f"{label.title()}: {text}" if label else text)
    return " ".join(parts) or None


def _extract_year(article: etree._Element) -> str | None:
    year = _element_text(_xpath_first(article, ".//JournalIssue/PubDate/Year"))
    if year:
        return year

    # Some records only carry MedlineDate, e.g. "2019 Jan-Feb"
    medline_date = _element_text(_xpath_first(article, ".//JournalIssue/PubDate/MedlineDate"))
    if medline_date and medline_date[:4].isdigit():
        return medline_date[:4]
    return None


def parse_pubmed_xml(xml: bytes | str) -> list[SourceDocument]:
    """
    Parse an EFetch response into SourceDocuments.

    Records without a PMID are skipped.
    """
    if isinstance(xml, str):
        xml = xml.encode("utf-8")

    parser = etree.XMLParser(recover=True, resolve_entities=False)
    root = etree.fromstring(xml, parser=parser)
    if root is None:
        return []

    documents = []
    for article in root.xpath(".//PubmedArticle"):
        pmid = _element_text(_xpath_first(article, ".//MedlineCitation/PMID"))
        if not pmid:
            continue

        documents.append(SourceDocument(
            origin=Origin.LITERATURE_DB,
            title=_element_text(_xpath_first(article, ".//ArticleTitle")) or "No title",
            abstract_text=_extract_abstract(article) or "",
            url=ARTICLE_URL.format(pmid=pmid),
            id=pmid,
            doi=_element_text(_xpath_first(article, ".//ArticleIdList/ArticleId[@IdType='doi']")),
            venue=_element_text(_xpath_first(article, ".//Journal/Title")),
            year=_extract_year(article),
            label="PubMed",
        ))

    return documents


class PubMedClient:
    """
    PubMed search collaborator.

    Failures never propagate: any HTTP or parse error is logged and the
    search contributes zero documents.
    """

    service = "pubmed"

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: TTLCache | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.client = client
        self.cache = cache
        self.rate_limiter = rate_limiter or RateLimiter(settings.pubmed_min_interval)

    async def search(self, query: str, max_results: int = 10) -> SearchResult:
        cache_key = f"{query}:{max_results}"
        if self.cache is not None:
            cached = self.cache.get(self.service, cache_key)
            if cached is not None:
                logger.debug("pubmed_cache_hit", query=query[:50])
                return cached

        try:
            result = await self._search(query, max_results)
        except httpx.HTTPStatusError as e:
            logger.warning("pubmed_search_failed_http", status=e.response.status_code)
            return SearchResult.empty()
        except (httpx.HTTPError, etree.XMLSyntaxError, ValueError) as e:
            logger.warning("pubmed_search_failed", error=str(e))
            return SearchResult.empty()

        if self.cache is not None:
            self.cache.set(self.service, cache_key, result)
        return result

    async def _search(self, query: str, max_results: int) -> SearchResult:
        logger.info("pubmed_search", query=query[:80], max_results=max_results)

        await self.rate_limiter.wait()
        response = await self.client.get(
            f"{EUTILS_BASE_URL}/esearch.fcgi",
            params={
                "db": "pubmed",
                "term": query,
                "retmax": max_results,
                "retmode": "json",
                "sort": "relevance",
            },
        )
        response.raise_for_status()

        search_data = response.json().get("esearchresult", {})
        pmids = search_data.get("idlist", [])
        if not pmids:
            logger.info("pubmed_no_results", query=query[:80])
            return SearchResult.empty()

        await self.rate_limiter.wait()
        response = await self.client.get(
            f"{EUTILS_BASE_URL}/efetch.fcgi",
            params={
                "db": "pubmed",
                "id": ",".join(pmids),
                "retmode": "xml",
            },
        )
        response.raise_for_status()

        documents = parse_pubmed_xml(response.content)
        total = int(search_data.get("count", len(documents)) or 0)

        logger.info("pubmed_search_complete", fetched=len(documents), total=total)
        return SearchResult(documents=documents, total=total)
