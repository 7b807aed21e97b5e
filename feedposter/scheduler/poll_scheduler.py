"""
FeedPoster Poll Scheduler
=========================

Interval-driven polling. Each distinct configured interval gets its own
asyncio task; on every tick the task loads the feeds configured for that
interval and pulls them one after another.

Feeds that appear in overlapping ticks are protected from duplicate posts by
the ledger alone; there is no cross-tick locking.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..config.settings import FeedPosterSettings, get_settings
from ..processing.pipeline import FeedPipeline, PollResult
from ..storage.feed_repository import FeedRepository
from ..storage.ledger_repository import LedgerRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import handle_exception


class PollScheduler:
    """Runs feed pulls on their configured intervals."""

    def __init__(
        self,
        feeds: FeedRepository,
        ledger: LedgerRepository,
        pipeline: FeedPipeline,
        settings: Optional[FeedPosterSettings] = None,
        refresh_seconds: float = 60.0,
    ):
        """Initialize scheduler.

        Args:
            feeds: Feed configuration store
            ledger: Dedup ledger, cleaned up on topic purge
            pipeline: Per-feed pull pipeline
            settings: Application settings (default: global settings)
            refresh_seconds: How often run_forever re-reads configured intervals
        """
        self.feeds = feeds
        self.ledger = ledger
        self.pipeline = pipeline
        self.settings = settings or get_settings()
        self.refresh_seconds = refresh_seconds
        self.logger = get_logger_for_component("scheduler")

        self._tasks: Dict[int, asyncio.Task] = {}
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks.values())

    @property
    def active_intervals(self) -> List[int]:
        return sorted(i for i, task in self._tasks.items() if not task.done())

    async def run_interval(self, interval: int) -> PollResult:
        """Tick: pull every feed configured for this interval, sequentially."""
        result = PollResult(interval=interval)
        feeds = self.feeds.list_feeds_for_interval(interval)
        if not feeds:
            return result

        self.logger.info(f"Polling {len(feeds)} feeds for interval {interval}s")
        for feed in feeds:
            try:
                result.feed_results.append(await self.pipeline.pull_feed(feed))
            except Exception as e:
                handle_exception(e, self.logger, "pull feed", context={"feed_url": feed.url})

        self.logger.info(f"Interval {interval}s tick finished", extra=result.summary())
        return result

    async def run_once(self, interval: Optional[int] = None) -> PollResult:
        """Pull every feed once, or only the feeds of one interval."""
        if interval is not None:
            return await self.run_interval(interval)

        result = PollResult(interval=None)
        for feed in self.feeds.list_feeds():
            try:
                result.feed_results.append(await self.pipeline.pull_feed(feed))
            except Exception as e:
                handle_exception(e, self.logger, "pull feed", context={"feed_url": feed.url})
        return result

    async def _tick(self, interval: int) -> None:
        try:
            await self.run_interval(interval)
        except Exception as e:
            handle_exception(e, self.logger, f"interval {interval}s tick")

    async def _interval_loop(self, interval: int) -> None:
        if self.settings.scheduler.run_on_start:
            await self._tick(interval)

        while True:
            await asyncio.sleep(interval)
            started = datetime.now()
            await self._tick(interval)
            elapsed = (datetime.now() - started).total_seconds()
            if elapsed > interval:
                self.logger.warning(
                    f"Interval {interval}s tick took {elapsed:.1f}s; ticks are overlapping the schedule"
                )

    def sync_intervals(self) -> List[int]:
        """Start loops for newly configured intervals and stop unused ones.

        Returns:
            Intervals that have a running loop
        """
        configured = set(self.feeds.list_intervals())

        for interval in list(self._tasks):
            if interval not in configured or self._tasks[interval].done():
                self._tasks.pop(interval).cancel()

        for interval in configured - set(self._tasks):
            self.logger.info(f"Scheduling feeds every {interval}s")
            self._tasks[interval] = asyncio.create_task(
                self._interval_loop(interval), name=f"poll-{interval}s"
            )

        return self.active_intervals

    async def start(self) -> List[int]:
        """Start one polling loop per configured interval."""
        self._stop_event = asyncio.Event()
        intervals = self.sync_intervals()
        if not intervals:
            self.logger.warning("No feeds configured; nothing to schedule")
        return intervals

    async def run_forever(self) -> None:
        """Run until stop() is called, picking up interval changes."""
        await self.start()
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.refresh_seconds)
            except asyncio.TimeoutError:
                self.sync_intervals()
        await self._cancel_tasks()

    async def stop(self) -> None:
        """Stop all polling loops."""
        if self._stop_event is not None:
            self._stop_event.set()
        await self._cancel_tasks()
        self.logger.info("Scheduler stopped")

    async def _cancel_tasks(self) -> None:
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def on_topic_purge(self, event: Dict[str, Any]) -> int:
        """Handle a topic purge: drop the topic id from every feed's ledger.

        Args:
            event: {"topic": {"tid": <topic id>}}

        Returns:
            Number of ledger rows removed
        """
        topic = (event or {}).get("topic") or {}
        tid = topic.get("tid")
        if tid is None:
            self.logger.warning(f"Ignoring topic purge event without tid: {event}")
            return 0
        return self.ledger.purge_topic(int(tid), self.feeds.list_feed_urls())
