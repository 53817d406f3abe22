"""Tests for the content pipeline."""

import asyncio

import pytest

from hn_digest.content import ContentPipeline
from hn_digest.errors import ParseError, UnavailableError

from .conftest import FakeSummarizer, make_candidate


class FakeExtractor:
    """Extractor returning per-URL content, failures or delays"""

    def __init__(self, pages=None, failures=None, delay: float = 0.0):
        self.pages = pages or {}
        self.failures = failures or {}
        self.delay = delay
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def extract(self, url: str) -> str:
        self.calls.append(url)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if url in self.failures:
                raise self.failures[url]
            return self.pages.get(url, f"Content of {url}")
        finally:
            self.active -= 1


class TestEnrich:
    async def test_enriches_candidate(self):
        summarizer = FakeSummarizer({"Story 1": ["Python", " web "]})
        pipeline = ContentPipeline(FakeExtractor(), summarizer, fetch_timeout=1)

        article = await pipeline.enrich(make_candidate(1, url="https://a.test", popularity=50))

        assert article.id == 1
        assert article.popularity == 50
        assert article.summary == "Summary of Story 1"
        assert article.tags == frozenset({"python", "web"})
        assert summarizer.calls == [("Story 1", "Content of https://a.test")]

    async def test_summarizer_failure_skips(self):
        summarizer = FakeSummarizer(fail_titles={"Story 1"})
        pipeline = ContentPipeline(FakeExtractor(), summarizer, fetch_timeout=1)

        assert await pipeline.enrich(make_candidate(1, url="https://a.test")) is None

    @pytest.mark.parametrize(
        "error", [UnavailableError("404"), ParseError("empty"), RuntimeError("boom")]
    )
    async def test_extraction_failure_falls_back_to_title(self, error):
        extractor = FakeExtractor(failures={"https://d.test": error})
        summarizer = FakeSummarizer()
        pipeline = ContentPipeline(extractor, summarizer, fetch_timeout=1)

        article = await pipeline.enrich(make_candidate(4, url="https://d.test"))

        assert article is not None
        assert summarizer.calls == [("Story 4", "Story 4")]

    async def test_no_url_uses_title_without_fetch(self):
        extractor = FakeExtractor()
        summarizer = FakeSummarizer()
        pipeline = ContentPipeline(extractor, summarizer, fetch_timeout=1)

        await pipeline.enrich(make_candidate(1, url=None, title="Ask HN: Tools?"))

        assert extractor.calls == []
        assert summarizer.calls == [("Ask HN: Tools?", "Ask HN: Tools?")]

    async def test_blank_content_uses_title(self):
        extractor = FakeExtractor(pages={"https://a.test": "   "})
        summarizer = FakeSummarizer()
        pipeline = ContentPipeline(extractor, summarizer, fetch_timeout=1)

        await pipeline.enrich(make_candidate(1, url="https://a.test"))

        assert summarizer.calls == [("Story 1", "Story 1")]

    async def test_slow_extraction_times_out_to_title(self):
        extractor = FakeExtractor(delay=1.0)
        summarizer = FakeSummarizer()
        pipeline = ContentPipeline(extractor, summarizer, fetch_timeout=0.01)

        article = await pipeline.enrich(make_candidate(1, url="https://slow.test"))

        assert article is not None
        assert summarizer.calls == [("Story 1", "Story 1")]


class TestEnrichAll:
    async def test_skips_failures_and_keeps_order(self):
        candidates = [
            make_candidate(1, url="https://a.test"),
            make_candidate(2, url="https://b.test"),
            make_candidate(3, url="https://c.test"),
            make_candidate(4, url="https://d.test"),
        ]
        extractor = FakeExtractor(failures={"https://d.test": UnavailableError("down")})
        summarizer = FakeSummarizer(fail_titles={"Story 3"})
        pipeline = ContentPipeline(extractor, summarizer, fetch_timeout=1)

        articles = await pipeline.enrich_all(candidates)

        assert [a.id for a in articles] == [1, 2, 4]
        assert ("Story 4", "Story 4") in summarizer.calls

    async def test_bounded_concurrency(self):
        candidates = [make_candidate(i, url=f"https://{i}.test") for i in range(10)]
        extractor = FakeExtractor(delay=0.01)
        pipeline = ContentPipeline(
            extractor, FakeSummarizer(), fetch_timeout=1, max_concurrent=3
        )

        articles = await pipeline.enrich_all(candidates)

        assert len(articles) == 10
        assert 1 < extractor.max_active <= 3

    async def test_empty(self):
        pipeline = ContentPipeline(FakeExtractor(), FakeSummarizer(), fetch_timeout=1)
        assert await pipeline.enrich_all([]) == []
