"""Chat command and reaction handling."""

import asyncio

from loguru import logger

from ..digest import DigestOrchestrator
from ..errors import InvalidArgumentError
from ..learning import ReactionLearner
from ..models import InboundEvent, MessageEvent, ReactionEvent, RunTrigger
from ..runtime import RuntimeSettings
from ..scheduler import Scheduler, daily_cron
from ..storage import PreferenceStore
from .telegram import TelegramClient

DIGEST_TASK_NAME = "daily_digest"
STATS_TAG_LIMIT = 10

HELP_TEXT = (
    "Welcome to HN Digest!\n\n"
    "Available commands:\n"
    "/fetch - Get your personalized digest now\n"
    "/settings - View or update digest settings\n"
    "/stats - View your interest statistics\n\n"
    "React with 👍 to articles you like to train your digest."
)
SETTINGS_USAGE = "Usage:\n/settings time HH:MM\n/settings count N (1-100)"
BUSY_TEXT = "A digest is already being prepared."


class CommandHandler:
    """Dispatches decoded inbound events"""

    def __init__(
        self,
        client: TelegramClient,
        runtime: RuntimeSettings,
        orchestrator: DigestOrchestrator,
        learner: ReactionLearner,
        store: PreferenceStore,
        scheduler: Scheduler | None = None,
    ):
        self.client = client
        self.runtime = runtime
        self.orchestrator = orchestrator
        self.learner = learner
        self.store = store
        self.scheduler = scheduler
        self._background: set[asyncio.Task] = set()

    async def handle(self, event: InboundEvent) -> None:
        if isinstance(event, ReactionEvent):
            await self.learner.on_reaction(event)
        elif isinstance(event, MessageEvent):
            await self.handle_message(event)

    async def handle_message(self, event: MessageEvent) -> None:
        parts = event.text.split()
        if not parts:
            return

        # Commands may be addressed as /cmd@botname
        command = parts[0].split("@", 1)[0].lower()
        args = parts[1:]

        if command == "/start":
            await self._start(event.chat_id)
        elif command == "/fetch":
            await self._fetch(event.chat_id)
        elif command == "/settings":
            await self._settings(event.chat_id, args)
        elif command == "/stats":
            await self._stats(event.chat_id)

    async def _reply(self, chat_id: int, text: str) -> None:
        try:
            await self.client.send_message(chat_id, text)
        except Exception as e:
            logger.error(f"Failed to reply to chat {chat_id}: {e}")

    async def _start(self, chat_id: int) -> None:
        try:
            await self.runtime.set_chat_id(chat_id)
        except Exception as e:
            logger.error(f"Failed to save chat_id: {e}")
        await self._reply(chat_id, HELP_TEXT)

    async def _fetch(self, chat_id: int) -> None:
        if self.orchestrator.is_running:
            await self._reply(chat_id, BUSY_TEXT)
            return

        await self._reply(chat_id, "Fetching your digest...")
        task = asyncio.create_task(self._run_manual(chat_id))
        self._background.add(task)
        task.add_done_callback(self._on_background_done)

    async def _run_manual(self, chat_id: int) -> None:
        """Run a manual digest and tell the user how it went"""
        result = await self.orchestrator.run(RunTrigger.MANUAL)

        if result.skipped_reason == "already_running":
            await self._reply(chat_id, BUSY_TEXT)
        elif result.skipped_reason == "no_recipient":
            await self._reply(chat_id, "Send /start first to register this chat.")
        elif result.sent == 0:
            await self._reply(chat_id, "No new articles to send right now.")

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.opt(exception=error).error(f"Manual digest run failed: {error}")

    async def _settings(self, chat_id: int, args: list[str]) -> None:
        if not args:
            await self._reply(
                chat_id,
                "Current settings:\n\n"
                f"Digest time: {self.runtime.digest_time}\n"
                f"Article count: {self.runtime.article_count}",
            )
            return

        if len(args) < 2 or args[0] not in ("time", "count"):
            await self._reply(chat_id, SETTINGS_USAGE)
            return

        try:
            if args[0] == "time":
                await self.runtime.set_digest_time(args[1])
                self._reschedule_digest(args[1])
                await self._reply(chat_id, f"Digest time updated to {args[1]}")
            else:
                await self.runtime.set_article_count(int(args[1]))
                await self._reply(chat_id, f"Article count updated to {args[1]}")
        except (InvalidArgumentError, ValueError):
            await self._reply(chat_id, SETTINGS_USAGE)
        except Exception as e:
            logger.error(f"Failed to update settings: {e}")
            await self._reply(chat_id, "Could not save settings, please try again.")

    def _reschedule_digest(self, digest_time: str) -> None:
        if self.scheduler is None or DIGEST_TASK_NAME not in self.scheduler.tasks:
            return
        self.scheduler.reschedule(DIGEST_TASK_NAME, daily_cron(digest_time))

    async def _stats(self, chat_id: int) -> None:
        try:
            like_count = await self.store.like_count()
            top_tags = await self.store.top_tags(STATS_TAG_LIMIT) if like_count else []
        except Exception as e:
            logger.error(f"Failed to load stats: {e}")
            return

        if like_count == 0:
            await self._reply(
                chat_id,
                "No preferences learned yet. "
                "React with 👍 to articles you like to train your digest!",
            )
            return

        lines = ["Your interests:", ""]
        lines.extend(f"• {tw.tag} ({tw.weight:.2f})" for tw in top_tags)
        lines.extend(["", f"Total likes: {like_count}"])
        await self._reply(chat_id, "\n".join(lines))

    def cancel_background(self) -> None:
        for task in self._background:
            task.cancel()

    async def wait_background(self) -> None:
        """Wait for manual runs started by /fetch"""
        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)
