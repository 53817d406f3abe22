"""Per-candidate fetch → extract → summarize with fallback and skip policy."""

import asyncio
from collections.abc import Sequence

from loguru import logger

from ..config import settings
from ..models import CandidateItem, EnrichedArticle
from .extractor import Extractor
from .summarizer import Summarizer


class ContentPipeline:
    """Turns candidates into enriched articles.

    Extraction failures fall back to the title as content. Summarization
    failures skip the candidate, because tags are required for ranking.
    Nothing is persisted here.
    """

    def __init__(
        self,
        extractor: Extractor,
        summarizer: Summarizer,
        fetch_timeout: float | None = None,
        max_concurrent: int | None = None,
    ):
        """Initialize the pipeline.

        Args:
            extractor: Page content extractor
            summarizer: Summary and tag generator
            fetch_timeout: Bound on each extraction, in seconds
            max_concurrent: Candidates processed in parallel
        """
        self.extractor = extractor
        self.summarizer = summarizer
        self.fetch_timeout = fetch_timeout or settings.fetch_timeout
        self.max_concurrent = max_concurrent or settings.pipeline_concurrency

    async def _content_for(self, candidate: CandidateItem) -> str:
        if not candidate.url:
            return candidate.title

        try:
            async with asyncio.timeout(self.fetch_timeout):
                content = await self.extractor.extract(candidate.url)
        except TimeoutError:
            logger.warning(f"Extraction timed out for {candidate.url}, using title")
            return candidate.title
        except Exception as e:
            logger.warning(f"Extraction failed for {candidate.url}, using title: {e}")
            return candidate.title

        if not content or not content.strip():
            logger.debug(f"Empty content for {candidate.url}, using title")
            return candidate.title
        return content

    async def enrich(self, candidate: CandidateItem) -> EnrichedArticle | None:
        """Enrich a single candidate.

        Args:
            candidate: Feed candidate

        Returns:
            EnrichedArticle, or None if the candidate must be skipped
        """
        content = await self._content_for(candidate)

        try:
            result = await self.summarizer.summarize(candidate.title, content)
        except Exception as e:
            logger.warning(f"Summarization failed, skipping story {candidate.id}: {e}")
            return None

        return EnrichedArticle(
            **candidate.model_dump(),
            summary=result.summary,
            tags=result.tags,
        )

    async def enrich_all(
        self, candidates: Sequence[CandidateItem]
    ) -> list[EnrichedArticle]:
        """Enrich candidates with bounded parallelism.

        Args:
            candidates: Candidates to process

        Returns:
            Enriched articles in input order, skips removed
        """
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def run(candidate: CandidateItem) -> EnrichedArticle | None:
            async with semaphore:
                return await self.enrich(candidate)

        results = await asyncio.gather(*(run(candidate) for candidate in candidates))
        enriched = [article for article in results if article is not None]

        logger.info(
            f"Enriched {len(enriched)} of {len(candidates)} candidates "
            f"({len(candidates) - len(enriched)} skipped)"
        )
        return enriched
