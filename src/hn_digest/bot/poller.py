"""Long-polling loop feeding decoded events to the command handler."""

import asyncio

from loguru import logger

from ..config import settings
from ..errors import DigestError
from .events import decode_update
from .handlers import CommandHandler
from .telegram import TelegramClient


class UpdatePoller:
    """Consumes Telegram updates one at a time until cancelled"""

    def __init__(
        self,
        client: TelegramClient,
        handler: CommandHandler,
        poll_timeout: int | None = None,
        error_backoff: float | None = None,
    ):
        self.client = client
        self.handler = handler
        self.poll_timeout = settings.poll_timeout if poll_timeout is None else poll_timeout
        self.error_backoff = settings.poll_error_backoff if error_backoff is None else error_backoff
        self.offset: int | None = None

    async def poll_once(self) -> int:
        """Fetch and dispatch one batch of updates.

        Returns:
            int: Number of updates processed
        """
        updates = await self.client.get_updates(self.offset, timeout=self.poll_timeout)
        for update in updates:
            update_id = update.get("update_id")
            if isinstance(update_id, int):
                self.offset = update_id + 1

            event = decode_update(update)
            if event is None:
                continue
            try:
                await self.handler.handle(event)
            except Exception as e:
                logger.exception(f"Failed to handle update {update_id}: {e}")
        return len(updates)

    async def run(self) -> None:
        """Poll until cancelled"""
        logger.info("Update polling started")
        try:
            while True:
                try:
                    await self.poll_once()
                except DigestError as e:
                    logger.warning(f"Polling failed: {e}")
                    await asyncio.sleep(self.error_backoff)
        finally:
            logger.info("Update polling stopped")
