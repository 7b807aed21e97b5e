"""
FeedPoster Input Validators
===========================

Validation utilities for feed URLs, feed configuration values and feed
entries before they reach the forum.
"""

import re
from urllib.parse import urlparse
from typing import Any, List, Optional

from .exceptions import ValidationError, ErrorCode


class URLValidator:
    """URL validation and canonicalization utilities."""

    ALLOWED_SCHEMES = {"http", "https"}
    TRAILING_SLASHES = re.compile(r"/+$")

    @classmethod
    def canonicalize_feed_url(cls, url: str) -> str:
        """Validate a feed URL and return its canonical form.

        The canonical form is the stripped URL with trailing slashes removed;
        it is the identity of a feed and the namespace of its ledger.

        Raises:
            ValidationError: If URL is missing, not http(s) or has no host
        """
        if not url or not isinstance(url, str):
            raise ValidationError(
                "URL is required and must be a string",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="url",
            )

        url = cls.TRAILING_SLASHES.sub("", url.strip())
        parsed = urlparse(url)

        if parsed.scheme.lower() not in cls.ALLOWED_SCHEMES:
            raise ValidationError(
                f"URL scheme must be {' or '.join(sorted(cls.ALLOWED_SCHEMES))}",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        if not parsed.netloc:
            raise ValidationError(
                "URL must include a hostname",
                error_code=ErrorCode.VALIDATION_INVALID_FORMAT,
                field_name="url",
            )

        return url

    @classmethod
    def is_absolute_http_url(cls, url: Any) -> bool:
        """Check whether a value is an absolute http(s) URL."""
        if not url or not isinstance(url, str):
            return False
        parsed = urlparse(url.strip())
        return parsed.scheme.lower() in cls.ALLOWED_SCHEMES and bool(parsed.netloc)


class EntryValidator:
    """Feed entry shape checks applied before publishing."""

    @staticmethod
    def validate_title(title: Any) -> str:
        """Return the title if it is a non-empty string.

        Raises:
            ValidationError: If the title is missing, empty or not a string
        """
        if not title or not isinstance(title, str) or not title.strip():
            raise ValidationError(
                "invalid title for entry",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="title",
            )
        return title

    @staticmethod
    def validate_content(content: Any) -> str:
        if not content or not isinstance(content, str):
            raise ValidationError(
                "invalid content for entry",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="content",
            )
        return content

    @staticmethod
    def validate_link(link: Any) -> str:
        if not URLValidator.is_absolute_http_url(link):
            raise ValidationError(
                "invalid link for entry",
                error_code=ErrorCode.VALIDATION_REQUIRED_FIELD,
                field_name="link",
            )
        return link.strip()


def split_tags(tags: Optional[str]) -> List[str]:
    """Split a comma-separated tag string, dropping blank items."""
    if not tags:
        return []
    return [tag.strip() for tag in tags.split(",") if tag.strip()]
