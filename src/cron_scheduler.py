"""
Cron-style scheduler for recurring checks
Supports hourly expressions ("<minute> * * * *"); each firing runs as its own task
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional, Set

import pytz

logger = logging.getLogger(__name__)

_background_tasks: Set[asyncio.Task] = set()

def _report_failure(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        task.get_loop().call_exception_handler({
            'message': f"Unhandled error in background task {task.get_name()}",
            'exception': error,
            'task': task
        })

def spawn(coro: Awaitable, name: Optional[str] = None) -> asyncio.Task:
    """
    Fire-and-forget a coroutine. Failures go to the loop's exception handler
    instead of waiting for the task to be garbage collected.
    """
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_report_failure)
    return task

def parse_hourly_expression(expression: str) -> int:
    """Return the minute of an hourly cron expression like "0 * * * *" """
    fields = expression.split()
    if len(fields) != 5 or any(f != '*' for f in fields[1:]):
        raise ValueError(f"Only hourly cron expressions are supported: {expression!r}")
    if not fields[0].isdigit() or not 0 <= int(fields[0]) <= 59:
        raise ValueError(f"Invalid minute field in cron expression: {expression!r}")
    return int(fields[0])

def next_run_time(minute: int, now: datetime) -> datetime:
    """Next hh:minute:00 boundary strictly after now"""
    next_run = now.replace(minute=minute, second=0, microsecond=0)
    if next_run <= now:
        next_run += timedelta(hours=1)
    return next_run

def seconds_until_next_run(minute: int, now: datetime) -> float:
    """Seconds from now until the next hh:minute:00 boundary (always in the future)"""
    return (next_run_time(minute, now) - now).total_seconds()


class CronScheduler:
    """Runs async callbacks on hourly cron schedules"""

    def __init__(self, tz: Optional[pytz.BaseTzInfo] = None):
        self.tz = tz or pytz.utc
        self.schedules: List[asyncio.Task] = []

    def schedule(self, expression: str, callback: Callable[[], Awaitable]) -> asyncio.Task:
        minute = parse_hourly_expression(expression)
        task = asyncio.create_task(self._run(expression, minute, callback))
        self.schedules.append(task)
        logger.info(f"Scheduled {getattr(callback, '__name__', 'callback')} with '{expression}'")
        return task

    async def _run(self, expression: str, minute: int, callback: Callable[[], Awaitable]):
        last_run = None
        while True:
            now = datetime.now(self.tz)
            # A sleep that ends just before the boundary still counts as that boundary's run
            reference = now if last_run is None else max(now, last_run)
            last_run = next_run_time(minute, reference)
            wait_seconds = (last_run - now).total_seconds()
            logger.debug(f"Next run of '{expression}' in {wait_seconds:.0f}s")
            await asyncio.sleep(wait_seconds)

            # Firings are independent; a slow callback never delays the next one
            spawn(callback(), name=f"cron:{expression}")

    async def shutdown(self):
        """Cancel every schedule"""
        for task in self.schedules:
            task.cancel()
        if self.schedules:
            await asyncio.gather(*self.schedules, return_exceptions=True)
        self.schedules.clear()
        logger.info("Scheduler stopped")
