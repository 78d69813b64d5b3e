"""
Progress Reporting
==================

Ordered progress events for one attestation run.

ProgressReporter enforces the ordering rules: percent is strictly
increasing, 100 is only reached through complete(), and nothing is
delivered once the reporter is closed.

ProgressChannel decouples a slow consumer from the pipeline with a bounded,
non-blocking queue drained by a background task.

Version: 0.1.0
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from zkvip.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class ProgressEvent:
    """A progress update."""

    percent: int
    label: str

    def __post_init__(self) -> None:
        if not 0 <= self.percent <= 100:
            raise ValueError(f"percent must be within 0..100, got {self.percent}")


ProgressSink = Callable[[ProgressEvent], None]


def remap_progress(percent: float, start: int, end: int = 100) -> int:
    """Linearly map a 0-100 sub-progress value into [start, end]."""
    clamped = min(max(percent, 0), 100)
    return start + int(clamped * (end - start) // 100)


class ProgressReporter:
    """Gatekeeper between the engine and a progress sink."""

    def __init__(self, sink: ProgressSink | None = None) -> None:
        self._sink = sink
        self._last = -1
        self._closed = False

    @property
    def last_percent(self) -> int:
        return self._last

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, percent: int, label: str) -> bool:
        """
        Emit an intermediate event.

        Values are capped at 99 and dropped unless they exceed the last
        emitted value.

        Returns:
            True if the event was delivered
        """
        if self._closed:
            return False
        percent = min(int(percent), 99)
        if percent <= self._last:
            return False
        self._deliver(ProgressEvent(percent=percent, label=label))
        return True

    def complete(self, label: str = "done") -> None:
        """Emit the final 100% event."""
        if self._closed or self._last >= 100:
            return
        self._deliver(ProgressEvent(percent=100, label=label))

    def close(self) -> None:
        """Stop delivering events."""
        self._closed = True

    def _deliver(self, event: ProgressEvent) -> None:
        self._last = event.percent
        if self._sink is None:
            return
        try:
            self._sink(event)
        except Exception:
            # A failing consumer must not abort the attestation
            logger.warning(
                "progress_consumer_failed",
                percent=event.percent,
                label=event.label,
                exc_info=True,
            )


class ProgressChannel:
    """
    Bounded non-blocking delivery to a possibly slow consumer.

    The channel itself is a ProgressSink. When the queue is full the oldest
    undelivered event is dropped, so order is preserved and the newest
    state always gets through.

    Usage:
        async with ProgressChannel(websocket_send, maxsize=16) as channel:
            await pipeline.run_attestation(threshold, config, channel)
    """

    def __init__(
        self,
        consumer: Callable[[ProgressEvent], Awaitable[Any] | Any],
        maxsize: int = 32,
    ) -> None:
        self._consumer = consumer
        self._queue: asyncio.Queue[ProgressEvent | None] = asyncio.Queue(maxsize=maxsize)
        self._task: asyncio.Task[None] | None = None
        self.dropped = 0

    def __call__(self, event: ProgressEvent) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._queue.get_nowait()
            self.dropped += 1
            self._queue.put_nowait(event)

    async def __aenter__(self) -> "ProgressChannel":
        self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    def start(self) -> None:
        """Start the drain task."""
        if self._task is None:
            self._task = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        while True:
            event = await self._queue.get()
            if event is None:
                return
            try:
                result = self._consumer(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning(
                    "progress_consumer_failed",
                    percent=event.percent,
                    label=event.label,
                    exc_info=True,
                )

    async def aclose(self) -> None:
        """Deliver everything queued, then stop the drain task."""
        if self._task is None:
            return
        await self._queue.put(None)
        await self._task
        self._task = None
        if self.dropped:
            logger.debug("progress_events_dropped", dropped=self.dropped)
