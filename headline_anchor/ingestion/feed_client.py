"""
RSS/Atom feed fetching.

Fetches a feed over HTTP and hands the parsed entries back as RawFeedItem
instances. Parsing of the XML variants is delegated to feedparser; this
module only maps feedparser entries onto the fields the normalizer needs.
"""

import html
import logging
import re
from typing import Any

import feedparser
import httpx
from bs4 import BeautifulSoup

from headline_anchor.ingestion.config import FeedConfig
from headline_anchor.ingestion.schemas import RawFeedItem

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when a feed is unreachable or cannot be parsed."""

    def __init__(self, endpoint: str, message: str, status_code: int | None = None):
        super().__init__(f"{endpoint}: {message}")
        self.endpoint = endpoint
        self.status_code = status_code


def html_to_text(html_content: str | None) -> str:
    """
    Extract clean text from an HTML fragment.

    Args:
        html_content: Raw HTML string

    Returns:
        Plain text with collapsed whitespace
    """
    if not html_content:
        return ""

    soup = BeautifulSoup(html_content, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()

    text = html.unescape(soup.get_text(separator=" "))
    return re.sub(r"\s+", " ", text).strip()


def entry_to_raw_item(entry: dict[str, Any]) -> RawFeedItem:
    """Map a feedparser entry onto a RawFeedItem.

    Description variants are plain text, in preference order: the summary
    (RSS ``<description>``), then the full content (``content:encoded``).
    """
    content = ""
    if entry.get("content"):
        content = entry["content"][0].get("value", "") or ""

    summary = entry.get("summary") or entry.get("description") or ""

    return RawFeedItem(
        title=entry.get("title"),
        link=entry.get("link"),
        guid=entry.get("id") or entry.get("guid"),
        summary_variants=[
            html_to_text(summary),
            html_to_text(content),
        ],
    )


class FeedClient:
    """
    Async feed fetcher.

    Usage:
        async with FeedClient() as client:
            items = await client.fetch("https://example.com/rss.xml")
    """

    def __init__(
        self,
        config: FeedConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self._config = config or FeedConfig()
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self._config.user_agent},
                follow_redirects=True,
            )
        return self._client

    async def fetch(
        self,
        endpoint: str,
        timeout: float | None = None,
    ) -> list[RawFeedItem]:
        """
        Fetch and parse a feed.

        Args:
            endpoint: Feed URL
            timeout: Request timeout in seconds (defaults to config)

        Returns:
            Entries in feed order

        Raises:
            FetchError: On transport errors, non-2xx responses, or
                unparseable feeds
        """
        timeout = timeout if timeout is not None else self._config.fetch_timeout_seconds

        try:
            response = await self._get_client().get(endpoint, timeout=timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                endpoint,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(endpoint, f"{type(e).__name__}: {e}") from e

        feed = feedparser.parse(response.content)
        entries = feed.get("entries", [])
        if feed.get("bozo") and not entries:
            raise FetchError(
                endpoint, f"Unparseable feed: {feed.get('bozo_exception')}"
            )

        items = [entry_to_raw_item(entry) for entry in entries]
        logger.debug("Fetched %d entries from %s", len(items), endpoint)
        return items

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "FeedClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
