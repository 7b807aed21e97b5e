"""
Poll Scheduler Tests
====================

Interval grouping, feed failure isolation, interval task management and
topic purge handling.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from feedposter.processing.pipeline import FeedPipeline, FeedPullResult
from feedposter.scheduler.poll_scheduler import PollScheduler
from feedposter.utils.exceptions import DatabaseError


FEED_A = "http://feeds.example.com/a"
FEED_B = "http://feeds.example.com/b"
FEED_C = "http://feeds.example.com/c"


@pytest.fixture
def pipeline():
    pipeline = MagicMock(spec=FeedPipeline)
    pipeline.pull_feed = AsyncMock(
        side_effect=lambda feed: FeedPullResult(feed_url=feed.url, success=True, published=1)
    )
    return pipeline


@pytest.fixture
def scheduler(feed_repo, ledger, pipeline, settings):
    return PollScheduler(feed_repo, ledger, pipeline, settings=settings)


@pytest.fixture
def configured(feed_repo, make_feed):
    feed_repo.save_feed(make_feed(url=FEED_A, interval=300))
    feed_repo.save_feed(make_feed(url=FEED_B, interval=300))
    feed_repo.save_feed(make_feed(url=FEED_C, interval=3600))


def pulled_urls(pipeline):
    return [call.args[0].url for call in pipeline.pull_feed.await_args_list]


class TestRunInterval:

    @pytest.mark.asyncio
    async def test_pulls_only_feeds_of_interval(self, scheduler, pipeline, configured):
        result = await scheduler.run_interval(300)

        assert sorted(pulled_urls(pipeline)) == [FEED_A, FEED_B]
        assert result.feeds_processed == 2
        assert result.topics_published == 2

    @pytest.mark.asyncio
    async def test_interval_without_feeds(self, scheduler, pipeline, configured):
        result = await scheduler.run_interval(60)

        assert result.feeds_processed == 0
        pipeline.pull_feed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failing_feed_does_not_block_others(self, scheduler, pipeline, configured):
        def pull(feed):
            if feed.url == FEED_A:
                raise RuntimeError("feed exploded")
            return FeedPullResult(feed_url=feed.url, success=True, published=1)

        pipeline.pull_feed.side_effect = pull

        result = await scheduler.run_interval(300)

        assert sorted(pulled_urls(pipeline)) == [FEED_A, FEED_B]
        assert [r.feed_url for r in result.feed_results] == [FEED_B]

    @pytest.mark.asyncio
    async def test_run_once_pulls_every_feed(self, scheduler, pipeline, configured):
        result = await scheduler.run_once()

        assert sorted(pulled_urls(pipeline)) == [FEED_A, FEED_B, FEED_C]
        assert result.feeds_processed == 3

    @pytest.mark.asyncio
    async def test_run_once_for_interval(self, scheduler, pipeline, configured):
        await scheduler.run_once(3600)

        assert pulled_urls(pipeline) == [FEED_C]


class TestIntervalTasks:

    @pytest.mark.asyncio
    async def test_start_schedules_one_task_per_interval(self, scheduler, configured):
        intervals = await scheduler.start()
        try:
            assert intervals == [300, 3600]
            assert scheduler.is_running
        finally:
            await scheduler.stop()

        assert not scheduler.is_running
        assert scheduler.active_intervals == []

    @pytest.mark.asyncio
    async def test_sync_picks_up_configuration_changes(self, scheduler, feed_repo, make_feed, configured):
        await scheduler.start()
        try:
            feed_repo.delete_feed(FEED_C)
            feed_repo.save_feed(make_feed(url=FEED_C, interval=900))

            assert scheduler.sync_intervals() == [300, 900]
        finally:
            await scheduler.stop()

    @pytest.mark.asyncio
    async def test_start_without_feeds(self, scheduler):
        assert await scheduler.start() == []
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_run_on_start_pulls_immediately(self, scheduler, pipeline, settings, configured):
        settings.scheduler.run_on_start = True
        try:
            await scheduler.start()
            await asyncio.sleep(0.05)
            await scheduler.stop()
        finally:
            settings.scheduler.run_on_start = False

        assert sorted(pulled_urls(pipeline)) == [FEED_A, FEED_B, FEED_C]

    @pytest.mark.asyncio
    async def test_failing_first_tick_keeps_interval_loop_alive(
        self, scheduler, feed_repo, settings, configured
    ):
        settings.scheduler.run_on_start = True
        try:
            with patch.object(
                feed_repo, "list_feeds_for_interval", side_effect=DatabaseError("database is locked")
            ) as listing:
                await scheduler.start()
                await asyncio.sleep(0.05)

                assert listing.call_count == 2
                assert scheduler.active_intervals == [300, 3600]
        finally:
            await scheduler.stop()
            settings.scheduler.run_on_start = False

    @pytest.mark.asyncio
    async def test_run_forever_returns_after_stop(self, scheduler, configured):
        runner = asyncio.create_task(scheduler.run_forever())
        await asyncio.sleep(0.01)

        await scheduler.stop()
        await asyncio.wait_for(runner, timeout=1)

        assert not scheduler.is_running


class TestTopicPurge:

    def test_purge_removes_topic_from_every_feed(self, scheduler, ledger, configured):
        ledger.record(FEED_A, "guid-1", 42)
        ledger.record(FEED_C, "guid-9", 42)
        ledger.record(FEED_B, "guid-2", 43)

        removed = scheduler.on_topic_purge({"topic": {"tid": 42}})

        assert removed == 2
        assert ledger.is_new(FEED_A, "guid-1")
        assert ledger.is_new(FEED_C, "guid-9")
        assert not ledger.is_new(FEED_B, "guid-2")

    def test_purge_of_unknown_topic(self, scheduler, configured):
        assert scheduler.on_topic_purge({"topic": {"tid": 999}}) == 0

    def test_event_without_tid_is_ignored(self, scheduler, ledger, configured):
        ledger.record(FEED_A, "guid-1", 42)

        assert scheduler.on_topic_purge({"topic": {}}) == 0
        assert scheduler.on_topic_purge({}) == 0
        assert not ledger.is_new(FEED_A, "guid-1")
