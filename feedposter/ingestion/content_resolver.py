"""
Content Resolvers
=================

Post body strategies selected by content mode:

- inline: the entry's own content is the post body
- link: the linked page is fetched, a content region is extracted and
  converted to Markdown, and an attribution line pointing at the link is
  appended. Page problems degrade to an empty region, never to a lost entry.
"""

import asyncio
import ssl
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp
import certifi

from ..config.settings import ContentMode, get_settings
from ..database.models import Feed, FeedEntry
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ContentResolutionError, ErrorCode
from ..utils.validators import EntryValidator
from .content_cleaner import ContentCleaner


class ContentResolver(ABC):
    """Validates the content-bearing fields of an entry and builds its body."""

    mode: ContentMode

    @abstractmethod
    def validate(self, entry: FeedEntry) -> None:
        """Raise ValidationError when the entry lacks what this mode needs."""

    @abstractmethod
    async def build_body(self, feed: Feed, entry: FeedEntry) -> str:
        """Return the post body for a validated entry."""


class InlineContentResolver(ContentResolver):
    """Use the entry content as is."""

    mode = ContentMode.INLINE

    def validate(self, entry: FeedEntry) -> None:
        EntryValidator.validate_content(entry.content)

    async def build_body(self, feed: Feed, entry: FeedEntry) -> str:
        return entry.content


class LinkFetchContentResolver(ContentResolver):
    """Fetch the linked page and convert its content region."""

    mode = ContentMode.LINK

    def __init__(
        self,
        selector: Optional[str] = None,
        timeout: Optional[int] = None,
        cleaner: Optional[ContentCleaner] = None,
    ):
        settings = get_settings()
        self.selector = selector or settings.content.selector
        self.attribution_prefix = settings.content.attribution_prefix
        self.timeout = timeout or settings.fetching.request_timeout
        self.user_agent = settings.fetching.user_agent
        self.cleaner = cleaner or ContentCleaner()
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())
        self.logger = get_logger_for_component("content_resolver")

    def validate(self, entry: FeedEntry) -> None:
        EntryValidator.validate_link(entry.link)

    def attribution(self, link: str) -> str:
        return f"{self.attribution_prefix} {link}"

    async def build_body(self, feed: Feed, entry: FeedEntry) -> str:
        link = entry.link.strip()
        try:
            content = await self.resolve(link, feed.content_selector or self.selector)
        except ContentResolutionError as e:
            self.logger.error(
                f"failed to fetch webpage content, {link}: {e}", extra=e.to_dict()
            )
            content = ""
        except Exception as e:
            self.logger.error(
                f"failed to fetch webpage content, {link}: {e}", exc_info=True
            )
            content = ""

        if not content:
            return self.attribution(link)
        return f"{content}\n\n{self.attribution(link)}"

    async def resolve(self, link: str, selector: str) -> str:
        """Fetch link and return its selected region as Markdown.

        Raises:
            ContentResolutionError: If fetching, selecting or converting fails
        """
        html = await self._fetch_page(link)

        try:
            region = self.cleaner.extract_region(html, selector)
        except Exception as e:
            raise ContentResolutionError(
                f"Could not select '{selector}': {e}",
                link=link,
                error_code=ErrorCode.CONTENT_EXTRACTION_FAILED,
            )

        if region is None:
            raise ContentResolutionError(
                f"No element matches '{selector}'",
                link=link,
                error_code=ErrorCode.CONTENT_EXTRACTION_FAILED,
            )

        try:
            return self.cleaner.to_markdown(region, base_url=link)
        except Exception as e:
            raise ContentResolutionError(
                f"Could not convert content: {e}",
                link=link,
                error_code=ErrorCode.CONTENT_EXTRACTION_FAILED,
            )

    async def _fetch_page(self, link: str) -> str:
        headers = {"User-Agent": self.user_agent, "Accept": "text/html,application/xhtml+xml"}
        connector = aiohttp.TCPConnector(ssl=self.ssl_context)
        try:
            async with aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers=headers,
            ) as session:
                async with session.get(link) as response:
                    if response.status != 200:
                        raise ContentResolutionError(
                            f"HTTP {response.status}: {response.reason}", link=link
                        )
                    return await response.text()
        except asyncio.TimeoutError:
            raise ContentResolutionError(
                f"Request timeout after {self.timeout}s", link=link
            )
        except aiohttp.ClientError as e:
            raise ContentResolutionError(f"Fetch error: {e}", link=link)


def get_content_resolver(mode: ContentMode, selector: Optional[str] = None) -> ContentResolver:
    """Build the resolver for a content mode."""
    if mode == ContentMode.LINK:
        return LinkFetchContentResolver(selector=selector)
    return InlineContentResolver()
