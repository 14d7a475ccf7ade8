"""Tests for the search collaborators, pacing and caching."""

import httpx
import pytest

from healthref.condition import ConditionQuery
from healthref.sources.cache import TTLCache
from healthref.sources.documents import Origin, SearchResult, SourceDocument
from healthref.sources.pacing import RateLimiter
from healthref.sources.pubmed import PubMedClient, parse_pubmed_xml
from healthref.sources.scholar import GoogleScholarClient, parse_scholar_html
from healthref.sources.search import SearchQueries, SourceSearch
from healthref.sources.semantic_scholar import SemanticScholarClient
from healthref.sources.web import TRUSTED_SITES, WebHealthClient, parse_site_links

PUBMED_XML = b"""<?xml version="1.0"?>
<PubmedArticleSet>
  <PubmedArticle>
    <MedlineCitation>
      <PMID>12345</PMID>
      <Article>
        <Journal>
          <JournalIssue><PubDate><Year>2020</Year></PubDate></JournalIssue>
          <Title>Diabetes Care</Title>
        </Journal>
        <ArticleTitle>Running and <i>glycemic</i> control</ArticleTitle>
        <Abstract>
          <AbstractText Label="METHODS">Adults ran 30 minutes 3 times per week.</AbstractText>
          <AbstractText Label="RESULTS">HbA1c improved.</AbstractText>
        </Abstract>
      </Article>
    </MedlineCitation>
    <PubmedData>
      <ArticleIdList>
        <ArticleId IdType="pubmed">12345</ArticleId>
        <ArticleId IdType="doi">10.1000/run.1</ArticleId>
      </ArticleIdList>
    </PubmedData>
  </PubmedArticle>
  <PubmedArticle>
    <MedlineCitation>
      <PMID>67890</PMID>
      <Article>
        <Journal>
          <JournalIssue><PubDate><MedlineDate>2019 Jan-Feb</MedlineDate></PubDate></JournalIssue>
        </Journal>
        <ArticleTitle>Oats and insulin</ArticleTitle>
      </Article>
    </MedlineCitation>
  </PubmedArticle>
</PubmedArticleSet>
"""

SCHOLAR_HTML = """
<html><body>
  <div class="gs_r gs_or gs_scl">
    <div class="gs_ri">
      <h3 class="gs_rt"><a href="https://example.org/paper1">Resistance training in diabetes</a></h3>
      <div class="gs_a">A Smith, B Jones - Diabetologia, 2018 - Springer</div>
      <div class="gs_rs">Three sets of 10 reps improved insulin sensitivity.</div>
    </div>
  </div>
  <div class="gs_r gs_or gs_scl">
    <div class="gs_ri">
      <h3 class="gs_rt"><span>[CITATION]</span> No link here</h3>
    </div>
  </div>
  <div class="gs_r gs_or gs_scl">
    <div class="gs_ri">
      <h3 class="gs_rt"><a href="/scholar?cluster=1">Dietary fiber and glucose</a></h3>
      <div class="gs_a">C Lee - 2015 - nature.com</div>
    </div>
  </div>
</body></html>
"""

CDC_HTML = """
<html><body>
  <a href="/diabetes/basics/index.html">Diabetes basics</a>
  <p>Diabetes is a chronic health condition that affects how your body turns food into energy.</p>
  <a href="/about/index.html">About CDC</a>
  <a href="https://www.cdc.gov/diabetes/prevention.html">Preventing diabetes</a>
</body></html>
"""


def run_limiter() -> RateLimiter:
    return RateLimiter(0)


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestRateLimiter:

    @pytest.mark.asyncio
    async def test_waits_remaining_interval(self):
        times = iter([0.0, 0.25, 1.0])
        slept = []

        async def fake_sleep(seconds):
            slept.append(seconds)

        limiter = RateLimiter(1.0, clock=lambda: next(times), sleep=fake_sleep)

        assert await limiter.wait() == 0.0
        assert await limiter.wait() == pytest.approx(0.75)
        assert slept == [pytest.approx(0.75)]

    @pytest.mark.asyncio
    async def test_no_wait_after_interval_elapsed(self):
        times = iter([0.0, 5.0])
        limiter = RateLimiter(1.0, clock=lambda: next(times))

        await limiter.wait()

        assert await limiter.wait() == 0.0


class TestTTLCache:

    def test_key_is_case_and_space_insensitive(self):
        cache = TTLCache(60)
        cache.set("pubmed", "Diabetes ", ["doc"])

        assert cache.get("pubmed", "diabetes") == ["doc"]
        assert cache.get("google_scholar", "diabetes") is None

    def test_entries_expire(self):
        now = [0.0]
        cache = TTLCache(60, clock=lambda: now[0])
        cache.set("pubmed", "diabetes", "data")

        now[0] = 59.0
        assert cache.get("pubmed", "diabetes") == "data"

        now[0] = 61.0
        assert cache.get("pubmed", "diabetes") is None
        assert cache.stats()["size"] == 0

    def test_per_entry_ttl(self):
        now = [0.0]
        cache = TTLCache(60, clock=lambda: now[0])
        cache.set("web", "diabetes", "data", ttl=5)

        now[0] = 6.0
        assert cache.get("web", "diabetes") is None

    def test_clear(self):
        cache = TTLCache()
        cache.set("a", "x", 1)
        cache.set("b", "y", 2)

        cache.clear("a", "x")
        assert cache.stats()["entries"] == ["b:y"]

        cache.clear()
        assert cache.stats()["size"] == 0


class TestPubMed:

    def test_parse_xml(self):
        documents = parse_pubmed_xml(PUBMED_XML)

        assert len(documents) == 2
        first = documents[0]
        assert first.id == "12345"
        assert first.title == "Running and glycemic control"
        assert first.abstract_text == (
            "Methods: Adults ran 30 minutes 3 times per week. Results: HbA1c improved."
        )
        assert first.doi == "10.1000/run.1"
        assert first.venue == "Diabetes Care"
        assert first.year == "2020"
        assert first.url == "https://pubmed.ncbi.nlm.nih.gov/12345/"
        assert first.origin is Origin.LITERATURE_DB

        assert documents[1].year == "2019"
        assert documents[1].abstract_text == ""

    @pytest.mark.asyncio
    async def test_search_fetches_ids_then_records(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if request.url.path.endswith("esearch.fcgi"):
                return httpx.Response(200, json={"esearchresult": {"count": "250", "idlist": ["12345", "67890"]}})
            return httpx.Response(200, content=PUBMED_XML)

        async with mock_client(handler) as client:
            result = await PubMedClient(client, rate_limiter=run_limiter()).search("diabetes", 8)

        assert result.total == 250
        assert [d.id for d in result.documents] == ["12345", "67890"]
        assert requests[0].url.params["retmax"] == "8"
        assert requests[1].url.params["id"] == "12345,67890"

    @pytest.mark.asyncio
    async def test_no_ids_skips_fetch(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"esearchresult": {"count": "0", "idlist": []}})

        async with mock_client(handler) as client:
            result = await PubMedClient(client, rate_limiter=run_limiter()).search("zzz")

        assert len(result) == 0
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_http_error_is_empty(self):
        async with mock_client(lambda request: httpx.Response(503)) as client:
            result = await PubMedClient(client, rate_limiter=run_limiter()).search("diabetes")

        assert result == SearchResult.empty()

    @pytest.mark.asyncio
    async def test_results_cached(self):
        calls = []

        def handler(request):
            calls.append(request)
            if request.url.path.endswith("esearch.fcgi"):
                return httpx.Response(200, json={"esearchresult": {"count": "1", "idlist": ["12345"]}})
            return httpx.Response(200, content=PUBMED_XML)

        cache = TTLCache()
        async with mock_client(handler) as client:
            pubmed = PubMedClient(client, cache=cache, rate_limiter=run_limiter())
            await pubmed.search("diabetes", 8)
            await pubmed.search("Diabetes", 8)

        assert len(calls) == 2


class TestGoogleScholar:

    def test_parse_html(self):
        documents = parse_scholar_html(SCHOLAR_HTML, max_results=10)

        assert [d.title for d in documents] == ["Resistance training in diabetes", "Dietary fiber and glucose"]
        assert documents[0].venue == "Diabetologia"
        assert documents[0].year == "2018"
        assert documents[0].abstract_text.startswith("Three sets of 10 reps")
        assert documents[1].url == "https://scholar.google.com/scholar?cluster=1"
        assert documents[1].year == "2015"
        assert all(d.origin is Origin.ACADEMIC_SCRAPE for d in documents)

    def test_max_results(self):
        assert len(parse_scholar_html(SCHOLAR_HTML, max_results=1)) == 1

    @pytest.mark.asyncio
    async def test_blocked_request_is_empty(self):
        async with mock_client(lambda request: httpx.Response(429)) as client:
            result = await GoogleScholarClient(client, rate_limiter=run_limiter()).search("diabetes")

        assert len(result) == 0


class TestSemanticScholar:

    @pytest.mark.asyncio
    async def test_search(self):
        payload = {
            "total": 99,
            "data": [
                {
                    "paperId": "abc",
                    "title": "Walking and HbA1c",
                    "abstract": "Walking lowered HbA1c.",
                    "year": 2022,
                    "venue": "BMJ",
                    "externalIds": {"DOI": "10.1/walk"},
                },
                {"title": "no id"},
            ],
        }
        async with mock_client(lambda request: httpx.Response(200, json=payload)) as client:
            result = await SemanticScholarClient(client, rate_limiter=run_limiter()).search("diabetes")

        assert result.total == 99
        [doc] = result.documents
        assert doc.doi == "10.1/walk"
        assert doc.year == "2022"
        assert doc.url == "https://www.semanticscholar.org/paper/abc"


class TestWeb:

    def test_parse_site_links(self):
        cdc = TRUSTED_SITES[0]

        documents = parse_site_links(CDC_HTML, cdc, "diabetes")

        assert [d.url for d in documents] == [
            "https://www.cdc.gov/diabetes/basics/index.html",
            "https://www.cdc.gov/diabetes/prevention.html",
        ]
        assert documents[0].abstract_text.startswith("Diabetes is a chronic health condition")
        assert documents[0].label == "Web (CDC)"

    @pytest.mark.asyncio
    async def test_failing_site_is_skipped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "www.cdc.gov":
                return httpx.Response(200, text=CDC_HTML)
            if request.url.host == "api.duckduckgo.com":
                return httpx.Response(200, json={
                    "Heading": "Diabetes",
                    "AbstractText": "Diabetes mellitus is a group of metabolic disorders.",
                    "AbstractURL": "https://en.wikipedia.org/wiki/Diabetes",
                })
            return httpx.Response(500)

        async with mock_client(handler) as client:
            result = await WebHealthClient(client, rate_limiter=run_limiter()).search("diabetes", 10)

        assert len(result) == 3
        assert result.documents[-1].label == "Web (DuckDuckGo)"


class FakeCollaborator:

    def __init__(self, service, documents=(), error=None):
        self.service = service
        self.documents = list(documents)
        self.error = error
        self.calls = []

    async def search(self, query, max_results=10):
        self.calls.append((query, max_results))
        if self.error:
            raise self.error
        return SearchResult(documents=self.documents, total=len(self.documents) * 10)


def doc(doc_id: str) -> SourceDocument:
    return SourceDocument(Origin.LITERATURE_DB, f"Title {doc_id}", "Abstract", f"https://x/{doc_id}", doc_id)


class TestSourceSearch:

    def test_queries_without_cause(self):
        queries = SearchQueries.for_condition(ConditionQuery.parse("diabetes"))

        assert queries.literature == "diabetes health benefits risks foods activities"
        assert queries.academic == "diabetes health nutrition exercise"
        assert queries.web == "diabetes health benefits risks"
        assert queries.max_results == 8

    def test_queries_with_cause(self):
        queries = SearchQueries.for_condition(ConditionQuery.parse("concussion after car accident"))

        assert queries.literature.startswith("concussion after car accident OR concussion ")
        assert queries.max_results == 12

    @pytest.mark.asyncio
    async def test_gather_tolerates_failing_collaborator(self):
        literature = FakeCollaborator("pubmed", [doc("1"), doc("2")])
        academic = FakeCollaborator("google_scholar", error=RuntimeError("boom"))
        web = FakeCollaborator("web", [doc("3")])

        async with SourceSearch(literature=literature, academic=academic, web=web) as search:
            gathered = await search.gather(ConditionQuery.parse("diabetes"))

        assert [d.id for d in gathered.documents] == ["1", "2", "3"]
        assert gathered.stats == {"pubmed": 20, "google_scholar": 0, "web": 10, "analyzed": 3}
        assert literature.calls[0][1] == 8
