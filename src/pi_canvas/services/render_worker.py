"""Background worker re-rendering the wallpapers once a day."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from pi_canvas.db.time import utcnow
from pi_canvas.services.render_service import RenderService

logger = logging.getLogger(__name__)


def seconds_until(now: datetime, hour: int, minute: int) -> float:
    """Seconds from ``now`` to the next ``hour:minute`` (same timezone as ``now``)."""
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class DailyRenderWorker:
    """Re-renders and republishes at a fixed UTC time every day.

    Each run opens its own session through ``session_factory`` and executes
    the render in a worker thread so the event loop keeps serving requests.
    """

    def __init__(
        self,
        render_service: RenderService,
        session_factory: Callable[[], Session],
        *,
        hour: int,
        minute: int,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.render_service = render_service
        self.session_factory = session_factory
        self.hour = hour
        self.minute = minute
        self._clock = clock
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    async def start(self) -> None:
        """Start the background loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background loop."""
        if self._task is None:
            return
        self._stopping.set()
        await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stopping.is_set():
            delay = seconds_until(self._clock(), self.hour, self.minute)
            logger.debug("Next scheduled render in %.0f seconds", delay)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(self._stopping.wait(), timeout=delay)
            if self._stopping.is_set():
                return
            await asyncio.to_thread(self.run_once)

    def run_once(self) -> datetime | None:
        """Render once with a fresh session; failures are logged."""
        with self.session_factory() as db:
            return self.render_service.safe_render_and_publish(db)
