"""Application wiring and process lifecycle."""

import asyncio
import signal
import sys
from datetime import timedelta

from loguru import logger

from .bot.handlers import DIGEST_TASK_NAME, CommandHandler
from .bot.poller import UpdatePoller
from .bot.telegram import TelegramClient
from .collectors import HackerNewsClient
from .config import Settings, settings
from .content import ArticleExtractor, ContentPipeline, GeminiSummarizer
from .digest import DigestOrchestrator
from .learning import DecayScheduler, ReactionLearner
from .models import RunTrigger
from .runtime import RuntimeSettings
from .scheduler import ScheduledTask, Scheduler, daily_cron
from .storage import DatabaseManager, PreferenceStore


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Replace loguru's default sink with the configured one"""
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.log_level).upper(),
        format=fmt or settings.log_format,
    )


class Application:
    """Builds every component from settings and runs them until shutdown"""

    def __init__(self, config: Settings | None = None):
        self.config = config or settings
        self.db_manager = DatabaseManager(self.config.database_url)
        self.store = PreferenceStore(self.db_manager)
        self.runtime = RuntimeSettings(self.store, self.config)
        self.client = TelegramClient(self.config.telegram_token)
        self.scheduler = Scheduler(self.config.timezone)

        self.decay = DecayScheduler(
            self.store, self.config.tag_decay_rate, self.config.min_tag_weight
        )
        pipeline = ContentPipeline(
            ArticleExtractor(
                timeout=self.config.fetch_timeout,
                max_length=self.config.max_content_length,
            ),
            GeminiSummarizer(self.config.gemini_api_key, self.config.gemini_model),
            fetch_timeout=self.config.fetch_timeout,
            max_concurrent=self.config.pipeline_concurrency,
        )
        self.orchestrator = DigestOrchestrator(
            feed=HackerNewsClient(),
            pipeline=pipeline,
            transport=self.client,
            store=self.store,
            runtime=self.runtime,
            # A separate decay cron decouples decay from delivery
            decay=None if self.config.decay_cron else self.decay,
            recency_window=timedelta(days=self.config.recency_window_days),
        )
        self.learner = ReactionLearner(self.store, self.config.tag_boost_on_like)
        self.handler = CommandHandler(
            self.client,
            self.runtime,
            self.orchestrator,
            self.learner,
            self.store,
            self.scheduler,
        )
        self.poller = UpdatePoller(self.client, self.handler)
        self._scheduled_runs: set[asyncio.Task] = set()

    async def run_digest(self) -> None:
        task = asyncio.current_task()
        self._scheduled_runs.add(task)
        try:
            await self.orchestrator.run(RunTrigger.SCHEDULED)
        finally:
            self._scheduled_runs.discard(task)

    async def startup(self) -> None:
        """Open the store, load runtime settings and register scheduled tasks"""
        if self.config.database_url.startswith("sqlite"):
            self.config.create_directories()
        await self.db_manager.init_db()
        await self.runtime.load()

        self.scheduler.add_task(
            ScheduledTask(
                name=DIGEST_TASK_NAME,
                cron_expression=daily_cron(self.runtime.digest_time),
                task_func=self.run_digest,
            )
        )
        if self.config.decay_cron:
            self.decay.schedule(self.scheduler, self.config.decay_cron)

    async def shutdown(self) -> None:
        if self.scheduler.scheduler.running:
            self.scheduler.stop()
        await self.handler.wait_background()
        await self.db_manager.close()

    async def run(self) -> None:
        """Run until SIGINT/SIGTERM"""
        await self.startup()
        self.scheduler.start()

        loop = asyncio.get_running_loop()
        poll_task = asyncio.create_task(self.poller.run())

        def request_stop() -> None:
            logger.info("Shutdown requested")
            poll_task.cancel()
            self.handler.cancel_background()
            for task in list(self._scheduled_runs):
                task.cancel()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, request_stop)

        try:
            await poll_task
        except asyncio.CancelledError:
            pass
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
            await self.shutdown()
            logger.info("HN digest stopped")


def main() -> None:
    configure_logging()
    if not settings.telegram_token or not settings.gemini_api_key:
        logger.error("HN_DIGEST_TELEGRAM_TOKEN and HN_DIGEST_GEMINI_API_KEY are required")
        sys.exit(1)

    try:
        asyncio.run(Application().run())
    except KeyboardInterrupt:
        pass
