"""Tests for chat command handling and update polling."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from loguru import logger

from hn_digest.bot.handlers import (
    BUSY_TEXT,
    DIGEST_TASK_NAME,
    HELP_TEXT,
    SETTINGS_USAGE,
    CommandHandler,
)
from hn_digest.bot.poller import UpdatePoller
from hn_digest.config import Settings
from hn_digest.errors import UnavailableError
from hn_digest.models import (
    DigestRunResult,
    MessageEvent,
    ReactionEvent,
    RunTrigger,
    StoredArticle,
)
from hn_digest.runtime import CHAT_ID_KEY, RuntimeSettings
from hn_digest.scheduler import ScheduledTask, Scheduler


@pytest.fixture
def client():
    client = AsyncMock()
    client.send_message.return_value = 1
    return client


@pytest.fixture
def orchestrator():
    orchestrator = MagicMock()
    orchestrator.is_running = False
    orchestrator.run = AsyncMock(
        return_value=DigestRunResult(trigger=RunTrigger.MANUAL, sent=3, sent_ids=[1, 2, 3])
    )
    return orchestrator


@pytest.fixture
def learner():
    return AsyncMock()


@pytest.fixture
def runtime(store):
    return RuntimeSettings(store, Settings(chat_id=None, digest_time="09:00", article_count=30))


@pytest.fixture
def scheduler():
    async def noop():
        pass

    scheduler = Scheduler("UTC")
    scheduler.add_task(ScheduledTask(DIGEST_TASK_NAME, "0 9 * * *", noop))
    return scheduler


@pytest.fixture
def handler(client, runtime, orchestrator, learner, store, scheduler):
    return CommandHandler(client, runtime, orchestrator, learner, store, scheduler)


def message(text: str, chat_id: int = 42) -> MessageEvent:
    return MessageEvent(update_id=1, chat_id=chat_id, text=text)


def last_reply(client) -> str:
    return client.send_message.call_args.args[1]


class TestCommands:
    async def test_start_registers_recipient(self, handler, client, runtime, store):
        await handler.handle(message("/start"))

        assert runtime.chat_id == 42
        assert await store.get_setting(CHAT_ID_KEY) == "42"
        client.send_message.assert_awaited_once_with(42, HELP_TEXT)

    async def test_command_with_bot_name(self, handler, runtime):
        await handler.handle(message("/start@hn_digest_bot"))

        assert runtime.chat_id == 42

    async def test_fetch_starts_manual_run(self, handler, client, orchestrator):
        await handler.handle(message("/fetch"))
        await handler.wait_background()

        orchestrator.run.assert_awaited_once_with(RunTrigger.MANUAL)
        assert "Fetching" in last_reply(client)

    async def test_fetch_while_running(self, handler, client, orchestrator):
        orchestrator.is_running = True

        await handler.handle(message("/fetch"))

        orchestrator.run.assert_not_called()
        assert "already being prepared" in last_reply(client)

    async def test_fetch_rejected_by_running_digest(self, handler, client, orchestrator):
        orchestrator.run.side_effect = [
            DigestRunResult(trigger=RunTrigger.MANUAL, sent=2, sent_ids=[1, 2]),
            DigestRunResult(trigger=RunTrigger.MANUAL, skipped_reason="already_running"),
        ]

        await handler.handle(message("/fetch"))
        await handler.handle(message("/fetch"))
        await handler.wait_background()

        assert orchestrator.run.await_count == 2
        replies = [call.args[1] for call in client.send_message.call_args_list]
        assert replies.count(BUSY_TEXT) == 1

    async def test_fetch_without_recipient(self, handler, client, orchestrator):
        orchestrator.run.return_value = DigestRunResult(
            trigger=RunTrigger.MANUAL, skipped_reason="no_recipient"
        )

        await handler.handle(message("/fetch"))
        await handler.wait_background()

        assert "/start" in last_reply(client)

    async def test_fetch_with_nothing_new(self, handler, client, orchestrator):
        orchestrator.run.return_value = DigestRunResult(trigger=RunTrigger.MANUAL)

        await handler.handle(message("/fetch"))
        await handler.wait_background()

        assert last_reply(client) == "No new articles to send right now."

    async def test_fetch_failure_is_logged(self, handler, orchestrator):
        orchestrator.run.side_effect = RuntimeError("boom")
        logged = []
        sink = logger.add(lambda msg: logged.append(msg.record["message"]), level="ERROR")

        try:
            await handler.handle(message("/fetch"))
            await handler.wait_background()
            await asyncio.sleep(0)
        finally:
            logger.remove(sink)

        assert any("Manual digest run failed: boom" in m for m in logged)
        assert not handler._background

    async def test_settings_shows_current(self, handler, client):
        await handler.handle(message("/settings"))

        reply = last_reply(client)
        assert "Digest time: 09:00" in reply
        assert "Article count: 30" in reply

    async def test_settings_time_reschedules(self, handler, client, runtime, scheduler):
        await handler.handle(message("/settings time 18:30"))

        assert runtime.digest_time == "18:30"
        assert scheduler.tasks[DIGEST_TASK_NAME].cron_expression == "30 18 * * *"
        assert last_reply(client) == "Digest time updated to 18:30"

    async def test_settings_count(self, handler, client, runtime):
        await handler.handle(message("/settings count 5"))

        assert runtime.article_count == 5
        assert last_reply(client) == "Article count updated to 5"

    @pytest.mark.parametrize(
        "text",
        [
            "/settings time 25:00",
            "/settings count 500",
            "/settings count many",
            "/settings colour blue",
            "/settings time",
        ],
    )
    async def test_settings_invalid_input(self, handler, client, runtime, scheduler, text):
        await handler.handle(message(text))

        assert last_reply(client) == SETTINGS_USAGE
        assert runtime.digest_time == "09:00"
        assert runtime.article_count == 30
        assert scheduler.tasks[DIGEST_TASK_NAME].cron_expression == "0 9 * * *"

    async def test_settings_store_failure(self, handler, client, runtime, store):
        with patch.object(store, "set_setting", AsyncMock(side_effect=RuntimeError("db"))):
            await handler.handle(message("/settings count 5"))

        assert runtime.article_count == 30
        assert "Could not save settings" in last_reply(client)

    async def test_stats_without_likes(self, handler, client):
        await handler.handle(message("/stats"))

        assert "No preferences learned yet" in last_reply(client)

    async def test_stats_lists_top_tags(self, handler, client, store):
        await store.upsert_article(StoredArticle(id=1, title="Rust"))
        await store.record_like(1)
        await store.boost_tags(["rust"], 0.5)
        await store.boost_tags(["rust", "python"], 0.2)

        await handler.handle(message("/stats"))

        reply = last_reply(client)
        assert reply.index("• rust (1.70)") < reply.index("• python (1.20)")
        assert "Total likes: 1" in reply

    async def test_unknown_command_ignored(self, handler, client):
        await handler.handle(message("hello there"))

        client.send_message.assert_not_called()

    async def test_reply_failure_is_contained(self, handler, client, runtime):
        client.send_message.side_effect = UnavailableError("telegram down")

        await handler.handle(message("/start"))

        assert runtime.chat_id == 42

    async def test_reaction_goes_to_learner(self, handler, learner):
        event = ReactionEvent(update_id=1, chat_id=42, message_id=555, emojis=["👍"])

        await handler.handle(event)

        learner.on_reaction.assert_awaited_once_with(event)


class TestUpdatePoller:
    async def test_poll_once_dispatches_and_advances_offset(self):
        client = AsyncMock()
        client.get_updates.return_value = [
            {"update_id": 10, "message": {"chat": {"id": 42}, "text": "/stats"}},
            {"update_id": 11, "edited_message": {}},
        ]
        handler = AsyncMock()
        poller = UpdatePoller(client, handler, poll_timeout=0)

        assert await poller.poll_once() == 2

        assert poller.offset == 12
        handler.handle.assert_awaited_once()
        assert handler.handle.call_args.args[0].text == "/stats"

    async def test_next_poll_uses_offset(self):
        client = AsyncMock()
        client.get_updates.side_effect = [[{"update_id": 5, "edited_message": {}}], []]
        poller = UpdatePoller(client, AsyncMock(), poll_timeout=0)

        await poller.poll_once()
        await poller.poll_once()

        assert client.get_updates.call_args_list[1].args[0] == 6

    async def test_handler_error_does_not_stop_batch(self):
        client = AsyncMock()
        client.get_updates.return_value = [
            {"update_id": 1, "message": {"chat": {"id": 42}, "text": "/a"}},
            {"update_id": 2, "message": {"chat": {"id": 42}, "text": "/b"}},
        ]
        handler = AsyncMock()
        handler.handle.side_effect = [RuntimeError("boom"), None]
        poller = UpdatePoller(client, handler, poll_timeout=0)

        await poller.poll_once()

        assert handler.handle.await_count == 2
        assert poller.offset == 3
