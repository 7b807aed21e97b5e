"""
Ingestion Tests
===============

Feed fetching and parsing, HTML to Markdown conversion and content
resolution for both content modes.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import aiohttp
import pytest

from feedposter.config.settings import ContentMode
from feedposter.ingestion.content_cleaner import ContentCleaner
from feedposter.ingestion.content_resolver import (
    InlineContentResolver,
    LinkFetchContentResolver,
    get_content_resolver,
)
from feedposter.ingestion.feed_fetcher import FeedFetcher
from feedposter.utils.exceptions import (
    ContentResolutionError,
    ErrorCode,
    FeedFetchError,
    ValidationError,
)


SAMPLE_RSS = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example News</title>
    <link>http://x.example.com</link>
    <description>News</description>
    <item>
      <title>Second</title>
      <link>http://x.example.com/2</link>
      <guid>urn:entry:2</guid>
      <pubDate>Mon, 02 Sep 2024 10:00:00 GMT</pubDate>
      <category>python</category>
      <category>release</category>
      <description>&lt;p&gt;Second body&lt;/p&gt;</description>
    </item>
    <item>
      <title>First</title>
      <link>http://x.example.com/1</link>
      <guid>urn:entry:1</guid>
      <pubDate>Sun, 01 Sep 2024 10:00:00 GMT</pubDate>
      <description>First body</description>
    </item>
    <item>
      <title>Zeroth</title>
      <link>http://x.example.com/0</link>
      <description>Zeroth body</description>
    </item>
  </channel>
</rss>
"""

SAMPLE_ATOM = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Example Atom</title>
  <id>urn:feed</id>
  <updated>2024-09-03T08:30:00Z</updated>
  <entry>
    <title>Atom Entry</title>
    <id>urn:atom:1</id>
    <link rel="alternate" href="http://x.example.com/atom/1"/>
    <updated>2024-09-03T08:30:00Z</updated>
    <content type="html">&lt;p&gt;Atom body&lt;/p&gt;</content>
  </entry>
</feed>
"""


class FakeResponse:
    def __init__(self, status=200, body=b"", reason="OK"):
        self.status = status
        self.reason = reason
        self._body = body

    async def read(self):
        return self._body

    async def text(self):
        return self._body.decode()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class RaisingRequest:
    def __init__(self, error):
        self.error = error

    async def __aenter__(self):
        raise self.error

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requested = []

    def get(self, url):
        self.requested.append(url)
        if self.error is not None:
            return RaisingRequest(self.error)
        return self.response


class TestFeedFetcher:

    def test_parse_rss_entries(self):
        entries = FeedFetcher().parse_document(SAMPLE_RSS, "http://x.example.com/feed")

        assert [e.title for e in entries] == ["Second", "First", "Zeroth"]
        second = entries[0]
        assert second.identifier == "urn:entry:2"
        assert second.link == "http://x.example.com/2"
        assert second.published == datetime(2024, 9, 2, 10, 0, tzinfo=timezone.utc)
        assert second.publish_date == second.published
        assert second.tags == ["python", "release"]
        assert "Second body" in second.content

    def test_entry_without_guid_uses_link(self):
        entries = FeedFetcher().parse_document(SAMPLE_RSS)
        assert entries[2].identifier == "http://x.example.com/0"

    def test_entry_without_dates_uses_observation_time(self):
        before = datetime.now(timezone.utc)
        entries = FeedFetcher().parse_document(SAMPLE_RSS)
        zeroth = entries[2]

        assert zeroth.published is None
        assert zeroth.publish_date >= before

    def test_parse_atom_entry(self):
        entries = FeedFetcher().parse_document(SAMPLE_ATOM)

        assert len(entries) == 1
        entry = entries[0]
        assert entry.identifier == "urn:atom:1"
        assert entry.link == "http://x.example.com/atom/1"
        assert entry.updated == datetime(2024, 9, 3, 8, 30, tzinfo=timezone.utc)
        assert entry.publish_date == datetime(2024, 9, 3, 8, 30, tzinfo=timezone.utc)
        assert "Atom body" in entry.content

    def test_unparseable_document_raises(self):
        with pytest.raises(FeedFetchError) as exc_info:
            FeedFetcher().parse_document(b"this is not a feed <<<", "http://x.example.com/feed")
        assert exc_info.value.error_code == ErrorCode.FEED_PARSE_ERROR

    @pytest.mark.asyncio
    async def test_fetch_entries_bounded_by_max_count(self):
        session = FakeSession(FakeResponse(body=SAMPLE_RSS))
        fetcher = FeedFetcher(session=session)

        entries = await fetcher.fetch_entries("http://x.example.com/feed", 2)

        assert [e.title for e in entries] == ["Second", "First"]
        assert session.requested == ["http://x.example.com/feed"]

    @pytest.mark.asyncio
    async def test_check_feed_canonicalizes_url(self):
        session = FakeSession(FakeResponse(body=SAMPLE_RSS))
        fetcher = FeedFetcher(session=session)

        entries = await fetcher.check_feed(" http://x.example.com/feed/ ")

        assert session.requested == ["http://x.example.com/feed"]
        assert len(entries) == 3

    @pytest.mark.asyncio
    async def test_check_feed_rejects_invalid_url(self):
        with pytest.raises(ValidationError):
            await FeedFetcher(session=FakeSession()).check_feed("ftp://x.example.com/feed")

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        fetcher = FeedFetcher(session=FakeSession(FakeResponse(status=503, reason="Unavailable")))

        with pytest.raises(FeedFetchError) as exc_info:
            await fetcher.fetch_entries("http://x.example.com/feed", 4)
        assert exc_info.value.error_code == ErrorCode.FEED_HTTP_ERROR

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        fetcher = FeedFetcher(session=FakeSession(error=asyncio.TimeoutError()))

        with pytest.raises(FeedFetchError) as exc_info:
            await fetcher.fetch_entries("http://x.example.com/feed", 4)
        assert exc_info.value.error_code == ErrorCode.FEED_FETCH_TIMEOUT

    @pytest.mark.asyncio
    async def test_network_error_raises(self):
        fetcher = FeedFetcher(session=FakeSession(error=aiohttp.ClientConnectionError("refused")))

        with pytest.raises(FeedFetchError) as exc_info:
            await fetcher.fetch_entries("http://x.example.com/feed", 4)
        assert exc_info.value.error_code == ErrorCode.FEED_NETWORK_ERROR


class TestContentCleaner:

    def setup_method(self):
        self.cleaner = ContentCleaner()

    def test_basic_markdown(self):
        html = (
            "<h2>Title</h2>"
            "<p>Hello <strong>world</strong> and <a href='/x'>link</a></p>"
            "<script>alert('x')</script>"
        )

        markdown = self.cleaner.to_markdown(html, base_url="http://site.example.com/post")

        assert markdown.startswith("## Title\n\n")
        assert "Hello **world** and [link](http://site.example.com/x)" in markdown
        assert "alert" not in markdown

    def test_relative_image_is_resolved(self):
        markdown = self.cleaner.to_markdown(
            '<p><img src="img/a.png" alt="chart"></p>', base_url="http://site.example.com/posts/1"
        )

        assert markdown == "![chart](http://site.example.com/posts/img/a.png)"

    def test_lists(self):
        assert self.cleaner.to_markdown("<ul><li>one</li><li>two</li></ul>") == "* one\n* two"
        assert self.cleaner.to_markdown("<ol><li>one</li><li>two</li></ol>") == "1. one\n2. two"

    def test_table_has_header_separator(self):
        html = "<table><tr><th>h1</th><th>h2</th></tr><tr><td>a</td><td>b</td></tr></table>"

        lines = self.cleaner.to_markdown(html).splitlines()

        assert [line.replace(" ", "") for line in lines] == ["|h1|h2|", "|---|---|", "|a|b|"]

    def test_javascript_links_are_dropped(self):
        assert self.cleaner.to_markdown('<a href="javascript:alert(1)">click</a>') == "click"

    def test_comments_are_dropped(self):
        assert self.cleaner.to_markdown("<p>kept<!-- hidden --></p>") == "kept"

    def test_empty_input(self):
        assert self.cleaner.to_markdown("") == ""
        assert self.cleaner.to_markdown(None) == ""

    def test_extract_region(self):
        html = '<html><body><nav>menu</nav><div class="entry-content"><p>Body</p></div></body></html>'

        assert self.cleaner.extract_region(html, ".entry-content") == "<p>Body</p>"
        assert self.cleaner.extract_region(html, ".missing") is None


class TestInlineContentResolver:

    def test_requires_content(self, make_entry):
        with pytest.raises(ValidationError):
            InlineContentResolver().validate(make_entry(content=None))

    @pytest.mark.asyncio
    async def test_body_is_entry_content(self, make_feed, make_entry):
        entry = make_entry(content="<p>Inline</p>")
        assert await InlineContentResolver().build_body(make_feed(), entry) == "<p>Inline</p>"


class TestLinkFetchContentResolver:

    PAGE = (
        "<html><body><nav>menu</nav>"
        '<div class="entry-content"><p>Full <em>text</em></p></div>'
        "<article><p>Article region</p></article>"
        "</body></html>"
    )

    def test_requires_absolute_link(self, make_entry):
        resolver = LinkFetchContentResolver()

        with pytest.raises(ValidationError):
            resolver.validate(make_entry(link=None))
        with pytest.raises(ValidationError):
            resolver.validate(make_entry(link="/relative"))

    @pytest.mark.asyncio
    async def test_body_is_content_plus_attribution(self, make_feed, make_entry):
        resolver = LinkFetchContentResolver()

        with patch.object(resolver, "_fetch_page", AsyncMock(return_value=self.PAGE)):
            body = await resolver.build_body(make_feed(), make_entry())

        assert body == "Full *text*\n\nVia: http://x.example.com/1"

    @pytest.mark.asyncio
    async def test_feed_selector_overrides_default(self, make_feed, make_entry):
        resolver = LinkFetchContentResolver()
        feed = make_feed(content_mode="link", content_selector="article")

        with patch.object(resolver, "_fetch_page", AsyncMock(return_value=self.PAGE)):
            body = await resolver.build_body(feed, make_entry())

        assert body.startswith("Article region")

    @pytest.mark.asyncio
    async def test_fetch_failure_gives_attribution_only(self, make_feed, make_entry):
        resolver = LinkFetchContentResolver()
        failure = ContentResolutionError("HTTP 500", link="http://x.example.com/1")

        with patch.object(resolver, "_fetch_page", AsyncMock(side_effect=failure)):
            body = await resolver.build_body(make_feed(), make_entry())

        assert body == "Via: http://x.example.com/1"

    @pytest.mark.asyncio
    async def test_unexpected_error_gives_attribution_only(self, make_feed, make_entry):
        resolver = LinkFetchContentResolver()

        with patch.object(resolver, "_fetch_page", AsyncMock(side_effect=RuntimeError("boom"))):
            body = await resolver.build_body(make_feed(), make_entry())

        assert body == "Via: http://x.example.com/1"

    @pytest.mark.asyncio
    async def test_missing_region_gives_attribution_only(self, make_feed, make_entry):
        resolver = LinkFetchContentResolver(selector=".nothing-here")

        with patch.object(resolver, "_fetch_page", AsyncMock(return_value=self.PAGE)):
            body = await resolver.build_body(make_feed(), make_entry())

        assert body == "Via: http://x.example.com/1"

    @pytest.mark.asyncio
    async def test_resolve_raises_when_region_missing(self):
        resolver = LinkFetchContentResolver()

        with patch.object(resolver, "_fetch_page", AsyncMock(return_value="<p>no region</p>")):
            with pytest.raises(ContentResolutionError) as exc_info:
                await resolver.resolve("http://x.example.com/1", ".entry-content")
        assert exc_info.value.error_code == ErrorCode.CONTENT_EXTRACTION_FAILED


def test_get_content_resolver():
    assert isinstance(get_content_resolver(ContentMode.INLINE), InlineContentResolver)

    resolver = get_content_resolver(ContentMode.LINK, selector="main")
    assert isinstance(resolver, LinkFetchContentResolver)
    assert resolver.selector == "main"
