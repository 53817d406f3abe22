"""Tests for the Telegram Bot API client"""

import json
from unittest.mock import patch

import aiohttp
import pytest

from hn_digest.bot import TelegramClient
from hn_digest.bot.telegram import ALLOWED_UPDATES
from hn_digest.errors import InvalidRecipientError, InvalidResponseError, UnavailableError

from .conftest import MockResponse


def reply(status=200, **body):
    return MockResponse(text=json.dumps(body), status=status)


@pytest.fixture
def client():
    return TelegramClient(token="123:abc", request_timeout=5)


async def test_deliver_returns_message_id(client):
    """Should send HTML and return the message id as the delivery handle"""
    captured = {}

    async def mock_request(self, method, url, **kwargs):
        captured["url"] = url
        captured["json"] = kwargs["json"]
        return reply(ok=True, result={"message_id": 555})

    with patch("aiohttp.ClientSession._request", mock_request):
        handle = await client.deliver(42, "<b>Hello</b>")

    assert handle == "555"
    assert captured["url"] == "https://api.telegram.org/bot123:abc/sendMessage"
    assert captured["json"]["chat_id"] == 42
    assert captured["json"]["parse_mode"] == "HTML"
    assert captured["json"]["text"] == "<b>Hello</b>"


async def test_unknown_chat_is_invalid_recipient(client):
    """Should map chat rejections to InvalidRecipientError"""

    async def mock_request(self, method, url, **kwargs):
        return reply(400, ok=False, description="Bad Request: chat not found")

    with patch("aiohttp.ClientSession._request", mock_request):
        with pytest.raises(InvalidRecipientError):
            await client.send_message(1, "hi")


async def test_server_error_is_unavailable(client):
    async def mock_request(self, method, url, **kwargs):
        return reply(502, ok=False, description="Bad Gateway")

    with patch("aiohttp.ClientSession._request", mock_request):
        with pytest.raises(UnavailableError):
            await client.send_message(42, "hi")


async def test_network_error_is_unavailable(client):
    async def mock_request(self, method, url, **kwargs):
        raise aiohttp.ClientConnectionError("connection reset")

    with patch("aiohttp.ClientSession._request", mock_request):
        with pytest.raises(UnavailableError):
            await client.send_message(42, "hi")


async def test_non_json_reply(client):
    async def mock_request(self, method, url, **kwargs):
        return MockResponse(text="<html>oops</html>", status=502)

    with patch("aiohttp.ClientSession._request", mock_request):
        with pytest.raises(InvalidResponseError):
            await client.send_message(42, "hi")


async def test_get_updates_requests_reactions(client):
    """Should long-poll with an offset and ask for reaction updates"""
    captured = {}
    updates = [{"update_id": 7, "message": {"chat": {"id": 42}, "text": "/stats"}}]

    async def mock_request(self, method, url, **kwargs):
        captured["url"] = url
        captured["json"] = kwargs["json"]
        return reply(ok=True, result=updates)

    with patch("aiohttp.ClientSession._request", mock_request):
        result = await client.get_updates(offset=7, timeout=0)

    assert result == updates
    assert captured["url"].endswith("/getUpdates")
    assert captured["json"] == {
        "timeout": 0,
        "allowed_updates": ALLOWED_UPDATES,
        "offset": 7,
    }
    assert "message_reaction" in ALLOWED_UPDATES
