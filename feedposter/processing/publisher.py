"""
Entry Publisher
===============

Turns one feed entry into a forum topic:

1. validate content/link (per content mode) and title
2. skip entries already in the feed's ledger
3. resolve the poster uid (falls back to the default uid)
4. merge feed tags with entry terms
5. build the body and create the topic
6. record identifier -> topic id in the ledger
7. optionally backdate the topic and post to the entry's publish date
8. move the poster's last post time back past the anti-spam delay

Failures are contained per entry. A rejected topic leaves the ledger untouched
so the entry is retried on the next poll. Once the topic exists it is recorded
before anything else is awaited, so cancelling the task cannot lead to a
repost.
"""

from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional

from ..config.settings import FeedPosterSettings, get_settings
from ..database.models import Feed, FeedEntry, TopicResult, to_milliseconds, utcnow
from ..forum.base import ForumClient, ReindexBatch, TimeIndexStore, parse_delay
from ..ingestion.content_resolver import ContentResolver
from ..storage.ledger_repository import LedgerRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import PublishError, ValidationError, handle_exception
from ..utils.validators import EntryValidator


class EntryOutcome(str, Enum):
    """Result of publishing one entry."""
    PUBLISHED = "published"
    # Published, but the feed asked for its own timestamp and none was applied
    PUBLISHED_UNDATED = "published_undated"
    DUPLICATE = "duplicate"
    INVALID = "invalid"
    FAILED = "failed"


def topic_index_keys(topic: TopicResult) -> List[str]:
    """Time-ordered topic indexes a topic appears in."""
    return [
        "topics:tid",
        f"cid:{topic.category_id}:tids",
        f"cid:{topic.category_id}:uid:{topic.uid}:tids",
        f"uid:{topic.uid}:topics",
    ]


def post_index_keys(topic: TopicResult) -> List[str]:
    """Time-ordered post indexes a topic's main post appears in."""
    return [
        "posts:pid",
        f"cid:{topic.category_id}:pids",
    ]


class EntryPublisher:
    """Publishes validated, new feed entries as forum topics."""

    def __init__(
        self,
        forum: ForumClient,
        ledger: LedgerRepository,
        index_store: Optional[TimeIndexStore] = None,
        settings: Optional[FeedPosterSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize publisher.

        Args:
            forum: Forum client used for topics, users and config
            ledger: Dedup ledger
            index_store: Store holding timestamps and time-ordered indexes
            settings: Application settings (default: global settings)
            clock: Returns the current time; injectable for tests
        """
        self.forum = forum
        self.ledger = ledger
        self.index_store = index_store
        self.settings = settings or get_settings()
        self.clock = clock or utcnow
        self.logger = get_logger_for_component("publisher")

    async def publish(
        self, feed: Feed, entry: FeedEntry, resolver: ContentResolver
    ) -> EntryOutcome:
        """Publish one entry; never raises for entry-level problems."""
        try:
            resolver.validate(entry)
            EntryValidator.validate_title(entry.title)
        except ValidationError as e:
            self.logger.warning(f"{e.context.get('field_name', 'entry')}: {e}, {feed.url}")
            return EntryOutcome.INVALID

        identifier = entry.identifier
        try:
            if not self.ledger.is_new(feed.url, identifier):
                self.logger.info(
                    f"entry is not new, id: {entry.id}, title: {entry.title}, link: {entry.link}"
                )
                return EntryOutcome.DUPLICATE

            return await self._publish_new(feed, entry, identifier, resolver)

        except PublishError as e:
            self.logger.error(
                f"failed to create topic for '{entry.title}' from {feed.url}: {e}",
                extra=e.to_dict(),
            )
            return EntryOutcome.FAILED
        except Exception as e:
            handle_exception(
                e,
                self.logger,
                "publish entry",
                context={"feed_url": feed.url, "identifier": identifier},
            )
            return EntryOutcome.FAILED

    async def _publish_new(
        self,
        feed: Feed,
        entry: FeedEntry,
        identifier: str,
        resolver: ContentResolver,
    ) -> EntryOutcome:
        uid = await self.resolve_poster(feed.username)
        tags = feed.tag_list + entry.tags
        body = await resolver.build_body(feed, entry)

        self.logger.info(
            f"posting, {feed.url} - title: {entry.title}, published date: {entry.publish_date.isoformat()}"
        )
        topic = await self.forum.create_topic(
            uid=uid,
            title=entry.title,
            content=body,
            category_id=feed.category,
            tags=tags,
        )

        # No await between topic creation and the ledger write.
        self.ledger.record(feed.url, identifier, topic.topic_id)

        outcome = EntryOutcome.PUBLISHED
        if feed.uses_feed_timestamp:
            try:
                if not self.backdate(topic, entry.publish_date):
                    outcome = EntryOutcome.PUBLISHED_UNDATED
            except Exception as e:
                self.logger.error(f"failed to backdate topic {topic.topic_id}: {e}", exc_info=True)
                outcome = EntryOutcome.PUBLISHED_UNDATED

        try:
            await self.throttle_poster(uid)
        except Exception as e:
            self.logger.error(f"failed to update last post time of uid {uid}: {e}", exc_info=True)

        return outcome

    async def resolve_poster(self, username: str) -> int:
        """Resolve the feed's poster, falling back to the default uid."""
        default_uid = self.settings.forum.default_uid
        if not username:
            return default_uid
        try:
            uid = await self.forum.get_uid_by_username(username)
        except Exception as e:
            self.logger.warning(f"could not resolve user '{username}': {e}")
            return default_uid
        return uid or default_uid

    def backdate(self, topic: TopicResult, published: datetime) -> int:
        """Rewrite topic/post timestamps and re-score their time indexes.

        Returns:
            The timestamp in milliseconds, or 0 when no index store is
            configured and the topic keeps its post time
        """
        if self.index_store is None:
            self.logger.warning(
                f"timestamp=feed requested but no time index store is configured, "
                f"topic {topic.topic_id} keeps its post time"
            )
            return 0

        timestamp = to_milliseconds(published)
        batch = (
            ReindexBatch()
            .set_field(f"topic:{topic.topic_id}", "timestamp", timestamp)
            .add_to_indexes(topic_index_keys(topic), timestamp, topic.topic_id)
            .set_field(f"post:{topic.post_id}", "timestamp", timestamp)
            .add_to_indexes(post_index_keys(topic), timestamp, topic.post_id)
        )
        self.index_store.reindex(batch)
        return timestamp

    async def throttle_poster(self, uid: int) -> int:
        """Set lastposttime so the poster's next real post is not delayed.

        Returns:
            The lastposttime value written, in milliseconds
        """
        try:
            config = await self.forum.get_config()
        except Exception as e:
            self.logger.warning(f"could not read forum config, using defaults: {e}")
            config = {}

        post_delay = parse_delay(config.get("postDelay"), self.settings.forum.post_delay)
        newbie_delay = parse_delay(config.get("newbiePostDelay"), self.settings.forum.newbie_post_delay)
        max_delay = max(post_delay, newbie_delay) + 1

        last_post_time = to_milliseconds(self.clock()) - max_delay * 1000
        await self.forum.set_user_field(uid, "lastposttime", last_post_time)
        return last_post_time
