from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from request_hub.services.lifecycle_service import RequestLifecycleEngine

logger = logging.getLogger(__name__)


class SweepScheduler:
    """Background task that sweeps once on start and then every ``interval_seconds``."""

    def __init__(self, engine: RequestLifecycleEngine, interval_seconds: float) -> None:
        self.engine = engine
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _loop(self) -> None:
        while True:
            try:
                await asyncio.to_thread(self.engine.sweep)
            except Exception:
                # Keep the sweep alive; the next interval retries.
                logger.exception("Request sweep failed")
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("Request sweep scheduled every %ss", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Request sweep stopped")
