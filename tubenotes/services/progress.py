"""
Progress feedback shared by every fetch.

Two independent pieces live here: a single countdown ticker (starting a new
one replaces the old one) and a registry of loading markers keyed by
operation, so overlapping fetches never clear each other's indicator. The
presentation layer only sees ``ProgressEvent`` objects via ``subscribe``.
"""

import asyncio
import uuid
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Set
from tubenotes.config import settings
from tubenotes.models.progress import ProgressEvent, ProgressState, StatusKind
from tubenotes.utils.logger import logger

IDLE_STATUS = "🎬 YouTube"
STILL_PROCESSING = "⏳ Still processing..."

# Seconds before a status of this kind clears itself
DEFAULT_CLEAR_AFTER = {
    StatusKind.SUCCESS: 3.0,
    StatusKind.FAILURE: 5.0,
}

Listener = Callable[[ProgressEvent], None]


def classify_status(text: str) -> StatusKind:
    if "⏳" in text or "🔄" in text:
        return StatusKind.LOADING
    if "✅" in text:
        return StatusKind.SUCCESS
    if "❌" in text:
        return StatusKind.FAILURE
    return StatusKind.NEUTRAL


def countdown_text(seconds: int) -> str:
    return f"⏳ Processing... {seconds}s"


class Countdown:
    def __init__(self, publish: Callable[[str], None], duration: int = 30, interval: float = 1.0):
        self._publish = publish
        self.duration = duration
        self.interval = interval
        self.remaining = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        self.stop()
        self.remaining = self.duration
        self._publish(countdown_text(self.remaining))
        self._task = asyncio.get_running_loop().create_task(self._run())

    def stop(self):
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.remaining = 0

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval)
            self.remaining -= 1
            if self.remaining <= 0:
                self.remaining = 0
                self._publish(STILL_PROCESSING)
                self._task = None
                return
            self._publish(countdown_text(self.remaining))


class MarkerRegistry:
    def __init__(self):
        self._markers: Set[str] = set()

    def acquire(self, operation_id: Optional[str] = None) -> str:
        marker_id = operation_id or f"tubenotes-loading-{uuid.uuid4().hex[:12]}"
        self._markers.add(marker_id)
        return marker_id

    def release(self, marker_id: str) -> bool:
        """Remove a marker; False when it was not active."""
        if marker_id not in self._markers:
            return False
        self._markers.discard(marker_id)
        return True

    def __contains__(self, marker_id: str) -> bool:
        return marker_id in self._markers

    def __len__(self) -> int:
        return len(self._markers)

    @property
    def ids(self) -> frozenset:
        return frozenset(self._markers)


class ProgressCoordinator:
    def __init__(self, countdown_seconds: Optional[int] = None, tick_interval: Optional[float] = None):
        self.status = IDLE_STATUS
        self.countdown = Countdown(
            self.show_status,
            duration=countdown_seconds if countdown_seconds is not None else settings.COUNTDOWN_SECONDS,
            interval=tick_interval if tick_interval is not None else settings.TICK_INTERVAL,
        )
        self.markers = MarkerRegistry()
        self._listeners: List[Listener] = []
        self._clear_handle: Optional[asyncio.TimerHandle] = None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _emit(self, event: ProgressEvent):
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Progress listener failed: {e}")

    # Status line

    def show_status(self, text: str, clear_after: Optional[float] = None):
        kind = classify_status(text)
        self._cancel_pending_clear()
        self.status = text
        self._emit(ProgressEvent(type="status", text=text, kind=kind))

        delay = clear_after if clear_after is not None else DEFAULT_CLEAR_AFTER.get(kind)
        if delay:
            self.clear_status(delay)

    def clear_status(self, delay: float = 0):
        if delay <= 0:
            self._cancel_pending_clear()
            self.status = IDLE_STATUS
            self._emit(ProgressEvent(type="status", text=IDLE_STATUS, kind=StatusKind.NEUTRAL))
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running loop, status {self.status!r} will not auto-clear")
            return
        self._cancel_pending_clear()
        self._clear_handle = loop.call_later(delay, self.clear_status)

    def _cancel_pending_clear(self):
        if self._clear_handle is not None:
            self._clear_handle.cancel()
            self._clear_handle = None

    # Countdown

    def start_countdown(self):
        self.countdown.start()

    def stop_countdown(self):
        self.countdown.stop()

    # Loading markers

    def acquire_marker(self, operation_id: Optional[str] = None) -> str:
        marker_id = self.markers.acquire(operation_id)
        self._emit(ProgressEvent(type="marker_acquired", marker_id=marker_id))
        return marker_id

    def release_marker(self, marker_id: str) -> bool:
        released = self.markers.release(marker_id)
        if released:
            self._emit(ProgressEvent(type="marker_released", marker_id=marker_id))
        return released

    @contextmanager
    def loading(self, operation_id: Optional[str] = None) -> Iterator[str]:
        marker_id = self.acquire_marker(operation_id)
        try:
            yield marker_id
        finally:
            self.release_marker(marker_id)

    @property
    def state(self) -> ProgressState:
        return ProgressState(
            countdown_seconds_remaining=self.countdown.remaining,
            active_loading_markers=self.markers.ids,
        )
