"""
HTTP Forum Client
=================

aiohttp client for a NodeBB-style REST API:

- POST /api/v3/topics                 create a topic
- GET  /api/user/username/{username}  resolve a username
- PUT  /api/v3/users/{uid}            update user fields
- GET  /api/config                    site configuration
"""

import asyncio
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import aiohttp

from ..config.settings import get_settings
from ..database.models import TopicResult
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ForumAPIError, PublishError, ErrorCode, ConfigurationError
from .base import ForumClient


class HttpForumClient(ForumClient):
    """Forum client speaking the forum's REST write API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_token: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.forum.base_url or "").rstrip("/")
        if not self.base_url:
            raise ConfigurationError(
                "Forum base URL is not configured", config_key="forum.base_url"
            )
        self.api_token = api_token or settings.forum.api_token
        self.timeout = timeout or settings.fetching.request_timeout
        self.fallback_config = {
            "postDelay": str(settings.forum.post_delay),
            "newbiePostDelay": str(settings.forum.newbie_post_delay),
        }
        self.user_agent = settings.fetching.user_agent
        self._session = session
        self._owns_session = session is None
        self.logger = get_logger_for_component("forum_client")

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            headers = {"User-Agent": self.user_agent, "Accept": "application/json"}
            if self.api_token:
                headers["Authorization"] = f"Bearer {self.api_token}"
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout), headers=headers
            )
            self._owns_session = True
        return self._session

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with self._get_session().request(method, url, **kwargs) as response:
                if response.status == 404:
                    return {}
                if response.status >= 400:
                    body = await response.text()
                    raise ForumAPIError(
                        f"{method} {path} returned HTTP {response.status}: {body[:200]}",
                        status=response.status,
                    )
                payload = await response.json(content_type=None)
                return payload or {}
        except asyncio.TimeoutError:
            raise ForumAPIError(
                f"{method} {path} timed out after {self.timeout}s",
                error_code=ErrorCode.FORUM_NETWORK_ERROR,
            )
        except aiohttp.ClientError as e:
            raise ForumAPIError(
                f"{method} {path} failed: {e}",
                error_code=ErrorCode.FORUM_NETWORK_ERROR,
            )

    @staticmethod
    def _unwrap(payload: Dict[str, Any]) -> Dict[str, Any]:
        """Write API responses wrap data in a 'response' member."""
        if isinstance(payload.get("response"), dict):
            return payload["response"]
        return payload

    async def create_topic(
        self,
        uid: int,
        title: str,
        content: str,
        category_id: int,
        tags: List[str],
    ) -> TopicResult:
        body = {
            "_uid": uid,
            "cid": category_id,
            "title": title,
            "content": content,
            "tags": tags,
        }
        try:
            data = self._unwrap(await self._request("POST", "/api/v3/topics", json=body))
        except ForumAPIError as e:
            raise PublishError(
                f"Topic creation failed: {e}",
                status=e.context.get("status"),
                error_code=ErrorCode.FORUM_PUBLISH_REJECTED,
            )

        # Newer forums return the topic with mainPid; older ones return topicData/postData
        topic = data.get("topicData") or data
        post = data.get("postData") or {}
        try:
            return TopicResult(
                topic_id=int(topic["tid"]),
                post_id=int(post.get("pid") or topic["mainPid"]),
                category_id=int(topic.get("cid", category_id)),
                uid=int(topic.get("uid", uid)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise PublishError(
                f"Unexpected topic creation response: {e}",
                error_code=ErrorCode.FORUM_PUBLISH_REJECTED,
            )

    async def get_uid_by_username(self, username: str) -> Optional[int]:
        if not username:
            return None
        data = await self._request("GET", f"/api/user/username/{quote(username)}")
        uid = data.get("uid")
        return int(uid) if uid else None

    async def set_user_field(self, uid: int, field: str, value: Any) -> None:
        await self._request("PUT", f"/api/v3/users/{uid}", json={"_uid": uid, field: value})

    async def get_config(self) -> Dict[str, Any]:
        data = await self._request("GET", "/api/config")
        config = dict(self.fallback_config)
        for key in ("postDelay", "newbiePostDelay"):
            if data.get(key) not in (None, ""):
                config[key] = data[key]
        return config

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
