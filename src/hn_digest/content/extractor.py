"""Fetch article pages and extract their readable text."""

import re
from typing import Protocol

import aiohttp
from bs4 import BeautifulSoup
from loguru import logger

from ..config import settings
from ..errors import ParseError, UnavailableError

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Tried in order; the first match with enough text wins
CONTENT_SELECTORS = [
    "article",
    "main",
    "[role='main']",
    ".post-content",
    ".article-content",
    ".entry-content",
    ".content",
    "#content",
]

MIN_SELECTOR_TEXT = 200


class Extractor(Protocol):
    """Page content extractor"""

    async def extract(self, url: str) -> str:
        """Return the readable text at ``url``.

        Raises:
            UnavailableError: If the page cannot be fetched
            ParseError: If no text can be extracted
        """
        ...


def extract_text(html: str, max_length: int) -> str:
    """Extract main text from an HTML document.

    Prefers semantic containers, then falls back to the whole body.

    Args:
        html: Raw HTML
        max_length: Truncate result to this many characters

    Returns:
        Whitespace-collapsed text, possibly empty
    """
    soup = BeautifulSoup(html, "lxml")

    for tag in soup.find_all(["script", "style", "noscript", "nav", "header", "footer", "aside"]):
        tag.decompose()

    text = ""
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element:
            candidate = element.get_text(separator=" ", strip=True)
            if len(candidate) >= MIN_SELECTOR_TEXT:
                text = candidate
                break

    if not text:
        body = soup.body or soup
        text = body.get_text(separator=" ", strip=True)

    text = re.sub(r"\s+", " ", text).strip()
    return text[:max_length]


class ArticleExtractor:
    """HTTP fetch plus BeautifulSoup main-text extraction"""

    def __init__(
        self,
        timeout: float | None = None,
        max_length: int | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.timeout = timeout or settings.fetch_timeout
        self.max_length = max_length or settings.max_content_length
        self.user_agent = user_agent

    async def extract(self, url: str) -> str:
        headers = {"User-Agent": self.user_agent}
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        try:
            async with aiohttp.ClientSession(headers=headers) as session:
                async with session.get(url, timeout=timeout) as response:
                    if response.status != 200:
                        raise UnavailableError(
                            f"Fetching {url} returned status {response.status}"
                        )
                    html = await response.text(errors="replace")
        except (aiohttp.ClientError, TimeoutError) as e:
            raise UnavailableError(f"Fetching {url} failed: {e}") from e

        text = extract_text(html, self.max_length)
        if not text:
            raise ParseError(f"No readable content at {url}")

        logger.debug(f"Extracted {len(text)} chars from {url}")
        return text
