"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for FeedPoster tests.
"""

import pytest
import tempfile
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["FEEDPOSTER_LOGGING__FILE_PATH"] = ""
os.environ["FEEDPOSTER_DATABASE__PATH"] = str(
    Path(tempfile.gettempdir()) / "feedposter_tests" / "feedposter_test.db"
)
os.environ["FEEDPOSTER_FORUM__BASE_URL"] = "http://forum.test"


from feedposter.forum.base import ForumClient  # noqa: E402
from feedposter.database.models import TopicResult  # noqa: E402
from feedposter.utils.exceptions import PublishError  # noqa: E402


POLL_TIME = datetime(2024, 9, 7, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def temp_db():
    """Temporary database file with the schema created."""
    from feedposter.database.schema import DatabaseSchema

    temp_file = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    db_path = temp_file.name
    temp_file.close()

    DatabaseSchema(db_path).create_tables()

    yield db_path

    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass


@pytest.fixture
def db_connection(temp_db):
    """Create a database connection manager for testing."""
    from feedposter.database.connection import DatabaseConnection

    connection = DatabaseConnection(temp_db, pool_size=2)
    yield connection

    connection.close_all_connections()


@pytest.fixture
def ledger(db_connection):
    from feedposter.storage.ledger_repository import LedgerRepository

    return LedgerRepository(db_connection)


@pytest.fixture
def feed_repo(db_connection, ledger):
    from feedposter.storage.feed_repository import FeedRepository

    return FeedRepository(db_connection, ledger=ledger)


@pytest.fixture
def index_store(db_connection):
    from feedposter.storage.index_repository import SqliteTimeIndexStore

    return SqliteTimeIndexStore(db_connection)


@pytest.fixture
def settings():
    from feedposter.config.settings import get_settings

    return get_settings()


# ============================================================================
# Forum Fixtures
# ============================================================================


class FakeForum(ForumClient):
    """In-memory forum recording every call made by the publisher."""

    def __init__(self):
        self.topics: List[Dict[str, Any]] = []
        self.users: Dict[str, int] = {"newsbot": 7}
        self.user_fields: Dict[int, Dict[str, Any]] = {}
        self.config: Dict[str, Any] = {"postDelay": "10", "newbiePostDelay": "10"}
        self.reject_titles = set()
        self.next_tid = 100
        self.next_pid = 1000

    async def create_topic(self, uid, title, content, category_id, tags):
        if title in self.reject_titles:
            raise PublishError(f"rejected {title}", status=400)

        topic = TopicResult(
            topic_id=self.next_tid,
            post_id=self.next_pid,
            category_id=category_id,
            uid=uid,
        )
        self.next_tid += 1
        self.next_pid += 1
        self.topics.append(
            {
                "tid": topic.topic_id,
                "pid": topic.post_id,
                "uid": uid,
                "title": title,
                "content": content,
                "cid": category_id,
                "tags": list(tags),
                "created_at": datetime.now(timezone.utc),
            }
        )
        return topic

    async def get_uid_by_username(self, username: str) -> Optional[int]:
        return self.users.get(username)

    async def set_user_field(self, uid: int, field: str, value: Any) -> None:
        self.user_fields.setdefault(uid, {})[field] = value

    async def get_config(self) -> Dict[str, Any]:
        return dict(self.config)

    async def close(self) -> None:
        pass

    @property
    def titles(self) -> List[str]:
        return [topic["title"] for topic in self.topics]


@pytest.fixture
def forum():
    return FakeForum()


@pytest.fixture
def poll_time():
    return POLL_TIME


@pytest.fixture
def publisher(forum, ledger, index_store, settings, poll_time):
    from feedposter.processing.publisher import EntryPublisher

    return EntryPublisher(
        forum, ledger, index_store=index_store, settings=settings, clock=lambda: poll_time
    )


# ============================================================================
# Sample Data
# ============================================================================


@pytest.fixture
def make_feed():
    from feedposter.database.models import Feed

    def _make(**overrides):
        data = {
            "url": "http://feeds.example.com/news",
            "category": 3,
            "username": "newsbot",
            "tags": "news,rss",
            "interval": 300,
            "entries_to_pull": 4,
        }
        data.update(overrides)
        return Feed(**data)

    return _make


@pytest.fixture
def make_entry():
    from feedposter.database.models import FeedEntry

    def _make(**overrides):
        data = {
            "id": "entry-1",
            "title": "Entry One",
            "link": "http://x.example.com/1",
            "content": "<p>Entry body</p>",
        }
        data.update(overrides)
        return FeedEntry(**data)

    return _make
