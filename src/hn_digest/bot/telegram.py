"""Telegram Bot API client: outbound delivery and inbound update polling."""

import json
from typing import Any, Protocol

import aiohttp
from loguru import logger

from ..config import settings
from ..errors import InvalidRecipientError, InvalidResponseError, UnavailableError

TELEGRAM_API_URL = "https://api.telegram.org"

# Reactions are only delivered when explicitly requested
ALLOWED_UPDATES = ["message", "message_reaction"]


class Transport(Protocol):
    """Delivers rendered content to a recipient"""

    async def deliver(self, recipient: int, rendered: str) -> str:
        """Send a message and return its delivery handle.

        Raises:
            UnavailableError: On transport failure
            InvalidRecipientError: If the recipient is rejected
        """
        ...


class TelegramClient:
    """Minimal async Telegram Bot API client"""

    def __init__(
        self,
        token: str | None = None,
        base_url: str = TELEGRAM_API_URL,
        request_timeout: float | None = None,
    ):
        self.token = token or settings.telegram_token
        self.base_url = base_url.rstrip("/")
        self.request_timeout = request_timeout or settings.request_timeout

    def _method_url(self, method: str) -> str:
        return f"{self.base_url}/bot{self.token}/{method}"

    async def _call(
        self, method: str, payload: dict[str, Any], timeout: float | None = None
    ) -> Any:
        """Call a Bot API method and return its ``result``.

        Raises:
            InvalidRecipientError: For 400/403 replies about the chat
            UnavailableError: For network failures and other error replies
            InvalidResponseError: If the reply is not a Bot API envelope
        """
        client_timeout = aiohttp.ClientTimeout(total=timeout or self.request_timeout)
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self._method_url(method), json=payload, timeout=client_timeout
                ) as response:
                    status = response.status
                    body = await response.text()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise UnavailableError(f"Telegram {method} failed: {e}") from e

        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise InvalidResponseError(f"Telegram {method} returned non-JSON body") from e

        if status != 200 or not data.get("ok"):
            description = data.get("description", body[:200])
            if status in (400, 403) and "chat" in description.lower():
                raise InvalidRecipientError(f"Telegram {method}: {description}")
            raise UnavailableError(f"Telegram {method} error {status}: {description}")

        return data.get("result")

    async def send_message(self, chat_id: int, text: str, parse_mode: str = "HTML") -> int:
        """Send a message.

        Returns:
            int: Telegram message id
        """
        result = await self._call(
            "sendMessage",
            {
                "chat_id": chat_id,
                "text": text,
                "parse_mode": parse_mode,
                "disable_web_page_preview": True,
            },
        )
        try:
            return int(result["message_id"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidResponseError("sendMessage result has no message_id") from e

    async def deliver(self, recipient: int, rendered: str) -> str:
        message_id = await self.send_message(recipient, rendered)
        logger.debug(f"Delivered message {message_id} to chat {recipient}")
        return str(message_id)

    async def get_updates(self, offset: int | None, timeout: int | None = None) -> list[dict]:
        """Long-poll for updates.

        Args:
            offset: First update id to return
            timeout: Long-poll timeout in seconds

        Returns:
            List of raw update payloads
        """
        poll_timeout = settings.poll_timeout if timeout is None else timeout
        payload: dict[str, Any] = {
            "timeout": poll_timeout,
            "allowed_updates": ALLOWED_UPDATES,
        }
        if offset is not None:
            payload["offset"] = offset

        result = await self._call(
            "getUpdates", payload, timeout=poll_timeout + self.request_timeout
        )
        return result if isinstance(result, list) else []
