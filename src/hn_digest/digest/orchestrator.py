"""Digest orchestrator: one end-to-end collect → rank → deliver run."""

import asyncio
from datetime import timedelta

from loguru import logger

from ..bot.telegram import Transport
from ..collectors import FeedSource
from ..config import settings
from ..content import ContentPipeline
from ..errors import UnavailableError
from ..learning import DecayScheduler
from ..models import (
    DigestRunResult,
    EnrichedArticle,
    RunState,
    RunTrigger,
    StoredArticle,
)
from ..runtime import RuntimeSettings
from ..storage import PreferenceStore
from ..utils.clock import Clock, SystemClock
from .formatter import TelegramHTMLFormatter
from .ranker import PreferenceRanker
from .recency import filter_recent

# Over-fetch to absorb recency filtering and pipeline skips
OVERFETCH_FACTOR = 2


class DigestOrchestrator:
    """Runs the digest state machine for the single configured recipient.

    Orchestrates the process of:
    1. Decaying tag weights (when decay is tied to the digest)
    2. Collecting top candidates from the feed
    3. Filtering out recently delivered items
    4. Enriching candidates with summaries and tags
    5. Ranking by learned preference and popularity
    6. Delivering the top N, persisting each successful send

    Only one run may be in progress; overlapping triggers are rejected.
    """

    def __init__(
        self,
        feed: FeedSource,
        pipeline: ContentPipeline,
        transport: Transport,
        store: PreferenceStore,
        runtime: RuntimeSettings,
        decay: DecayScheduler | None = None,
        ranker: PreferenceRanker | None = None,
        formatter: TelegramHTMLFormatter | None = None,
        recency_window: timedelta | None = None,
        clock: Clock | None = None,
    ):
        """Initialize orchestrator.

        Args:
            feed: Candidate source
            pipeline: Content enrichment pipeline
            transport: Message delivery
            store: Preference store
            runtime: Recipient and item count
            decay: Decay applied at the start of each run; None when decay
                runs on its own schedule
            ranker: Preference ranker
            formatter: Message renderer
            recency_window: How long a delivered item stays excluded
            clock: Time source
        """
        self.feed = feed
        self.pipeline = pipeline
        self.transport = transport
        self.store = store
        self.runtime = runtime
        self.decay = decay
        self.ranker = ranker or PreferenceRanker()
        self.formatter = formatter or TelegramHTMLFormatter()
        self.recency_window = recency_window or timedelta(
            days=settings.recency_window_days
        )
        self.clock = clock or SystemClock()

        self._lock = asyncio.Lock()
        self._state = RunState.IDLE

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def _enter(self, state: RunState, result: DigestRunResult) -> None:
        self._state = state
        result.state = state
        logger.debug(f"Digest run state: {state.value}")

    async def run(self, trigger: RunTrigger = RunTrigger.SCHEDULED) -> DigestRunResult:
        """Execute one digest run.

        Never raises for "nothing to send"; collaborator failures are
        contained and reported in the result. Cancellation propagates after
        the orchestrator returns to IDLE.

        Args:
            trigger: What started this run

        Returns:
            DigestRunResult: Counts and outcome of the run
        """
        result = DigestRunResult(trigger=trigger, started_at=self.clock.now())

        if self._lock.locked():
            logger.warning(f"Digest run ({trigger.value}) rejected: already running")
            result.skipped_reason = "already_running"
            result.finished_at = self.clock.now()
            return result

        async with self._lock:
            try:
                await self._run(result)
            except asyncio.CancelledError:
                result.cancelled = True
                logger.warning(
                    f"Digest run cancelled in state {self._state.value} "
                    f"after sending {result.sent} articles"
                )
                raise
            finally:
                self._state = RunState.IDLE
                result.state = RunState.IDLE
                result.finished_at = self.clock.now()

        logger.info(
            f"Digest run complete ({trigger.value}): sent {result.sent}, "
            f"failed {result.failed_sends}, enriched {result.enriched}, "
            f"fetched {result.fetched}"
        )
        return result

    async def _run(self, result: DigestRunResult) -> None:
        if self.decay is not None:
            await self.decay.run()

        recipient = self.runtime.chat_id
        if recipient is None:
            logger.warning("No recipient configured, send /start to register")
            result.skipped_reason = "no_recipient"
            return

        target_count = self.runtime.article_count

        self._enter(RunState.COLLECTING, result)
        try:
            candidates = await self.feed.top_candidates(target_count * OVERFETCH_FACTOR)
        except UnavailableError as e:
            logger.error(f"Feed unavailable, ending run: {e}")
            return
        except Exception as e:
            logger.exception(f"Feed failed unexpectedly, ending run: {e}")
            return
        result.fetched = len(candidates)

        self._enter(RunState.FILTERING, result)
        try:
            sent_ids = await self.store.recently_sent_ids(self.recency_window)
        except Exception as e:
            logger.error(f"Failed to read recently sent ids: {e}")
            sent_ids = set()
        candidates = filter_recent(candidates, sent_ids)
        result.filtered = len(candidates)
        logger.info(f"Filtered stories: {result.fetched} -> {result.filtered}")

        self._enter(RunState.ENRICHING, result)
        articles = await self.pipeline.enrich_all(candidates)
        result.enriched = len(articles)

        if not articles:
            logger.info("No articles to deliver this run")
            return

        self._enter(RunState.RANKING, result)
        try:
            weights = await self.store.all_weights()
        except Exception as e:
            logger.error(f"Failed to read tag weights, ranking with neutral weights: {e}")
            weights = {}
        ranked = self.ranker.rank(articles, weights, limit=target_count)

        self._enter(RunState.DELIVERING, result)
        for entry in ranked:
            if await self._deliver(recipient, entry.article):
                result.sent += 1
                result.sent_ids.append(entry.article.id)
            else:
                result.failed_sends += 1

    async def _deliver(self, recipient: int, article: EnrichedArticle) -> bool:
        """Send one article and persist it only if the send succeeded."""
        try:
            handle = await self.transport.deliver(
                recipient, self.formatter.format_article(article)
            )
        except Exception as e:
            logger.error(f"Failed to send story {article.id}: {e}")
            return False

        now = self.clock.now()
        try:
            await self.store.upsert_article(StoredArticle.from_enriched(article, now))
            await self.store.mark_sent(article.id, handle, now)
        except Exception as e:
            logger.error(f"Story {article.id} sent but not persisted: {e}")

        return True
