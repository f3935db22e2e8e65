"""Two independent timers on one asyncio loop.

The poll timer fires at startup and then every ``poll_interval`` seconds; a
tick that arrives while the previous poll is still running is skipped. The
digest timer is a one-shot that targets the next wall-clock occurrence of
``hour:minute`` in the configured zone and re-arms itself after every run.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Callable, Optional

import pytz
from loguru import logger


def next_daily_run(now: datetime, hour: int, minute: int, tz) -> datetime:
    """Next ``hour:minute`` in ``tz`` strictly after ``now`` (an aware datetime)."""
    if isinstance(tz, str):
        tz = pytz.timezone(tz)
    local_now = now.astimezone(tz)
    day = local_now.date()
    while True:
        naive = datetime(day.year, day.month, day.day, hour, minute)
        # normalize shifts wall times that fall in a spring-forward gap
        target = tz.normalize(tz.localize(naive))
        if target > local_now:
            return target
        day += timedelta(days=1)


def seconds_until(target: datetime, now: datetime) -> float:
    return max(0.0, (target - now).total_seconds())


class Scheduler:
    def __init__(
        self,
        poll_job: Callable[[], object],
        digest_job: Callable[[], object],
        poll_interval: float = 30 * 60,
        digest_hour: int = 9,
        digest_minute: int = 0,
        tz_name: str = "America/Chicago",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.poll_job = poll_job
        self.digest_job = digest_job
        self.poll_interval = poll_interval
        self.digest_hour = digest_hour
        self.digest_minute = digest_minute
        self.tz = pytz.timezone(tz_name)
        self.clock = clock or (lambda: datetime.now(pytz.utc))
        self._poll_task: Optional[asyncio.Task] = None
        self._stop = asyncio.Event()

    @property
    def poll_running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def _run_job(self, name: str, job: Callable[[], object]) -> bool:
        logger.info("Running {}", name)
        try:
            result = await asyncio.to_thread(job)
        except Exception:
            logger.exception("{} failed", name)
            return False
        logger.info("{} finished: {}", name, result)
        return True

    def tick_poll(self) -> bool:
        """Start a poll run unless one is still in flight. Returns whether it started."""
        if self.poll_running:
            logger.warning("Previous email poll still running; skipping this tick")
            return False
        self._poll_task = asyncio.create_task(self._run_job("email processing", self.poll_job))
        return True

    async def fire_digest(self, scheduled_for: Optional[datetime] = None) -> datetime:
        """Run the digest once and return the next time it should fire."""
        await self._run_job("daily summary", self.digest_job)
        now = self.clock()
        if scheduled_for is not None and scheduled_for > now:
            # woke slightly early; never target the same slot twice
            now = scheduled_for
        return next_daily_run(now, self.digest_hour, self.digest_minute, self.tz)

    async def poll_loop(self) -> None:
        while True:
            self.tick_poll()
            await asyncio.sleep(self.poll_interval)

    async def digest_loop(self) -> None:
        target = next_daily_run(self.clock(), self.digest_hour, self.digest_minute, self.tz)
        while True:
            logger.info("Daily summary scheduled for {} ({})", target.isoformat(), target.astimezone(pytz.utc).isoformat())
            await asyncio.sleep(seconds_until(target, self.clock()))
            target = await self.fire_digest(target)

    def stop(self) -> None:
        self._stop.set()

    async def run(self) -> None:
        tasks = [asyncio.create_task(self.poll_loop()), asyncio.create_task(self.digest_loop())]
        try:
            await self._stop.wait()
        finally:
            logger.info("Shutting down scheduler")
            if self._poll_task is not None:
                tasks.append(self._poll_task)
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
