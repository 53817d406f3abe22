"""Article summarization and tagging via the Gemini REST API."""

import json
from typing import Protocol

import aiohttp
from loguru import logger
from pydantic import ValidationError

from ..config import settings
from ..errors import InvalidResponseError, UnavailableError
from ..models import SummaryResult

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models"

PROMPT_TEMPLATE = """Summarize this article in 1-2 sentences and provide 3-5 lowercase tags categorizing the topic.
Return a JSON object with "summary" and "tags" fields only. No markdown formatting.

Title: {title}

Content: {content}"""


class Summarizer(Protocol):
    """Produces a summary and topic tags for an article"""

    async def summarize(self, title: str, content: str) -> SummaryResult:
        """Summarize an article.

        Raises:
            UnavailableError: If the backend cannot be reached
            InvalidResponseError: If the reply is not usable
        """
        ...


def strip_code_fence(text: str) -> str:
    """Remove a ```json ... ``` wrapper if the model added one"""
    text = text.strip()
    if text.startswith("```"):
        newline = text.find("\n")
        text = text[newline + 1 :] if newline != -1 else text[3:]
        closing = text.rfind("```")
        if closing != -1:
            text = text[:closing]
        text = text.strip()
    return text


def parse_summary(text: str) -> SummaryResult:
    """Parse the model's JSON reply.

    Raises:
        InvalidResponseError: If the text is not a JSON object with a
            non-empty summary and a list of tags
    """
    try:
        data = json.loads(strip_code_fence(text))
        return SummaryResult.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Failed to parse summary JSON: {e}")
        raise InvalidResponseError(f"Malformed summary response: {e}") from e


class GeminiSummarizer:
    """Summarizer backed by Gemini generateContent"""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = GEMINI_API_URL,
        timeout: float | None = None,
    ):
        self.api_key = api_key or settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.request_timeout

    async def summarize(self, title: str, content: str) -> SummaryResult:
        url = f"{self.base_url}/{self.model}:generateContent"
        payload = {
            "contents": [
                {"parts": [{"text": PROMPT_TEMPLATE.format(title=title, content=content)}]}
            ]
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    params={"key": self.api_key},
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    body = await response.text()
                    if response.status != 200:
                        raise UnavailableError(
                            f"Gemini returned status {response.status}: {body[:200]}"
                        )
        except (aiohttp.ClientError, TimeoutError) as e:
            raise UnavailableError(f"Calling Gemini failed: {e}") from e

        try:
            data = json.loads(body)
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (json.JSONDecodeError, KeyError, IndexError, TypeError) as e:
            raise InvalidResponseError(f"Unexpected Gemini response shape: {e}") from e

        return parse_summary(text)
