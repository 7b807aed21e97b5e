"""
Feed Fetcher
============

Retrieves a syndication feed and normalizes its entries. A feed that cannot
be fetched or parsed raises a single FeedFetchError for the whole feed.
"""

import asyncio
import calendar
import ssl
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, List, Optional

import aiohttp
import certifi
import feedparser

from ..config.settings import get_settings
from ..database.models import FeedEntry
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FeedFetchError, ErrorCode
from ..utils.validators import URLValidator


class FeedFetcher:
    """RSS/Atom fetcher returning bounded, newest-first entry lists."""

    def __init__(self, timeout: Optional[int] = None, session: Optional[aiohttp.ClientSession] = None):
        """Initialize feed fetcher.

        Args:
            timeout: Request timeout in seconds (default from config)
            session: Shared aiohttp session; one is created per fetch otherwise
        """
        settings = get_settings()
        self.timeout = timeout or settings.fetching.request_timeout
        self.user_agent = settings.fetching.user_agent
        self.default_entries = settings.scheduler.default_entries_to_pull
        self.session = session
        self.logger = get_logger_for_component("feed_fetcher")

        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @asynccontextmanager
    async def get_session(self):
        """Yield the shared session or a configured temporary one."""
        if self.session is not None:
            yield self.session
            return

        connector = aiohttp.TCPConnector(ssl=self.ssl_context, limit_per_host=5)
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml, */*",
        }

        async with aiohttp.ClientSession(
            connector=connector, timeout=timeout, headers=headers
        ) as session:
            yield session

    async def fetch_entries(self, url: str, max_count: int) -> List[FeedEntry]:
        """Fetch a feed and return at most max_count entries in document order.

        Args:
            url: Feed URL
            max_count: Maximum number of entries to return

        Returns:
            Entries as the feed lists them (typically newest first)

        Raises:
            FeedFetchError: If the feed is unreachable, times out or cannot be parsed
        """
        self.logger.debug(f"Fetching feed: {url}")

        try:
            async with self.get_session() as session:
                async with session.get(url) as response:
                    if response.status != 200:
                        raise FeedFetchError(
                            f"HTTP {response.status}: {response.reason}",
                            feed_url=url,
                            error_code=ErrorCode.FEED_HTTP_ERROR,
                        )
                    body = await response.read()

        except asyncio.TimeoutError:
            raise FeedFetchError(
                f"Request timeout after {self.timeout}s",
                feed_url=url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            )
        except aiohttp.ClientError as e:
            raise FeedFetchError(
                f"Fetch error: {e}",
                feed_url=url,
                error_code=ErrorCode.FEED_NETWORK_ERROR,
            )

        entries = self.parse_document(body, url)[:max(max_count, 0)]
        self.logger.info(f"Fetched {len(entries)} entries from {url}")
        return entries

    async def check_feed(self, url: str, max_count: Optional[int] = None) -> List[FeedEntry]:
        """Fetch a feed for inspection without publishing anything.

        Raises:
            ValidationError: If the URL is not a valid feed URL
            FeedFetchError: If the feed cannot be fetched or parsed
        """
        url = URLValidator.canonicalize_feed_url(url)
        return await self.fetch_entries(url, max_count or self.default_entries)

    def parse_document(self, document: Any, url: str = "") -> List[FeedEntry]:
        """Parse a feed document into entries.

        Raises:
            FeedFetchError: If the document is malformed and yields no entries
        """
        feed_data = feedparser.parse(document)

        if getattr(feed_data, "bozo", False) and not feed_data.entries:
            reason = getattr(feed_data, "bozo_exception", None) or "Invalid XML structure"
            raise FeedFetchError(
                f"Feed parse error: {reason}",
                feed_url=url,
                error_code=ErrorCode.FEED_PARSE_ERROR,
            )

        if getattr(feed_data, "bozo", False):
            self.logger.info(f"Feed has parse warnings but contains entries: {url}")

        observed_at = datetime.now(timezone.utc)
        return [self._to_entry(entry, observed_at) for entry in feed_data.entries]

    def _to_entry(self, entry: Any, observed_at: datetime) -> FeedEntry:
        return FeedEntry(
            id=entry.get("id") or None,
            title=entry.get("title"),
            link=self._extract_link(entry),
            published=self._parse_date(entry, "published_parsed"),
            date=self._parse_date(entry, "created_parsed"),
            updated=self._parse_date(entry, "updated_parsed"),
            tags=[tag.get("term") for tag in entry.get("tags", []) if tag],
            content=self._extract_content(entry),
            observed_at=observed_at,
        )

    @staticmethod
    def _extract_link(entry: Any) -> Optional[str]:
        if entry.get("link"):
            return entry["link"]
        for link in entry.get("links", []):
            if link.get("rel", "alternate") == "alternate" and link.get("href"):
                return link["href"]
        return None

    @staticmethod
    def _extract_content(entry: Any) -> Optional[str]:
        """Atom content first, then summary/description."""
        content = entry.get("content")
        if isinstance(content, list) and content:
            value = content[0].get("value")
            if value:
                return value

        for field in ("summary", "description"):
            value = entry.get(field)
            if value and isinstance(value, str):
                return value

        return None

    @staticmethod
    def _parse_date(entry: Any, field: str) -> Optional[datetime]:
        """feedparser normalizes dates to UTC struct_time."""
        date_tuple = entry.get(field)
        if not date_tuple:
            return None
        try:
            return datetime.fromtimestamp(calendar.timegm(date_tuple), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            return None
