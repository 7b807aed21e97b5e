"""
HTTP Forum Client Tests
=======================

Request shapes and response handling of the REST forum client, using a
stub session in place of aiohttp.
"""

import asyncio

import pytest

from feedposter.forum.http_client import HttpForumClient
from feedposter.utils.exceptions import ConfigurationError, ErrorCode, ForumAPIError, PublishError


class StubResponse:
    def __init__(self, status=200, payload=None, text=""):
        self.status = status
        self._payload = payload
        self._text = text

    async def json(self, content_type=None):
        return self._payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class StubSession:
    closed = False

    def __init__(self, *responses, error=None):
        self.responses = list(responses)
        self.error = error
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)


def make_client(session):
    return HttpForumClient(base_url="http://forum.test/", api_token="secret", session=session)


def test_requires_base_url(settings):
    original = settings.forum.base_url
    settings.forum.base_url = None
    try:
        with pytest.raises(ConfigurationError):
            HttpForumClient()
    finally:
        settings.forum.base_url = original


class TestCreateTopic:

    @pytest.mark.asyncio
    async def test_posts_topic(self):
        session = StubSession(
            StubResponse(payload={"status": {"code": "ok"}, "response": {"tid": 12, "mainPid": 40, "cid": 3, "uid": 7}})
        )
        client = make_client(session)

        topic = await client.create_topic(uid=7, title="Hello", content="Body", category_id=3, tags=["a"])

        assert (topic.topic_id, topic.post_id, topic.category_id, topic.uid) == (12, 40, 3, 7)
        method, url, kwargs = session.calls[0]
        assert method == "POST"
        assert url == "http://forum.test/api/v3/topics"
        assert kwargs["json"] == {"_uid": 7, "cid": 3, "title": "Hello", "content": "Body", "tags": ["a"]}

    @pytest.mark.asyncio
    async def test_topic_and_post_data_response(self):
        session = StubSession(
            StubResponse(payload={"topicData": {"tid": 5, "cid": 2, "uid": 1}, "postData": {"pid": 9}})
        )

        topic = await make_client(session).create_topic(1, "T", "C", 2, [])

        assert (topic.topic_id, topic.post_id) == (5, 9)

    @pytest.mark.asyncio
    async def test_rejection_raises_publish_error(self):
        session = StubSession(StubResponse(status=403, text="[[error:no-privileges]]"))

        with pytest.raises(PublishError) as exc_info:
            await make_client(session).create_topic(1, "T", "C", 2, [])

        assert exc_info.value.error_code == ErrorCode.FORUM_PUBLISH_REJECTED
        assert exc_info.value.context["status"] == 403

    @pytest.mark.asyncio
    async def test_malformed_response_raises_publish_error(self):
        session = StubSession(StubResponse(payload={"response": {"title": "no ids"}}))

        with pytest.raises(PublishError):
            await make_client(session).create_topic(1, "T", "C", 2, [])


class TestUsersAndConfig:

    @pytest.mark.asyncio
    async def test_username_lookup(self):
        session = StubSession(StubResponse(payload={"uid": 7, "username": "news bot"}))

        assert await make_client(session).get_uid_by_username("news bot") == 7
        assert session.calls[0][1] == "http://forum.test/api/user/username/news%20bot"

    @pytest.mark.asyncio
    async def test_unknown_username(self):
        session = StubSession(StubResponse(status=404))

        assert await make_client(session).get_uid_by_username("ghost") is None

    @pytest.mark.asyncio
    async def test_set_user_field(self):
        session = StubSession(StubResponse(payload={}))

        await make_client(session).set_user_field(7, "lastposttime", 123)

        method, url, kwargs = session.calls[0]
        assert (method, url) == ("PUT", "http://forum.test/api/v3/users/7")
        assert kwargs["json"] == {"_uid": 7, "lastposttime": 123}

    @pytest.mark.asyncio
    async def test_config_falls_back_to_settings(self):
        session = StubSession(StubResponse(payload={"postDelay": 30}))

        config = await make_client(session).get_config()

        assert config == {"postDelay": 30, "newbiePostDelay": "10"}

    @pytest.mark.asyncio
    async def test_timeout_raises_forum_error(self):
        session = StubSession(error=asyncio.TimeoutError())

        with pytest.raises(ForumAPIError) as exc_info:
            await make_client(session).get_config()
        assert exc_info.value.error_code == ErrorCode.FORUM_NETWORK_ERROR

    @pytest.mark.asyncio
    async def test_close_leaves_shared_session_open(self):
        session = StubSession()
        client = make_client(session)

        await client.close()

        assert client._session is session
