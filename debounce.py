"""
Debounced edit synchronization.

Editor inputs fire on every keystroke; these helpers keep a local draft and
push one consolidated update once input has been quiet for ``delay``
milliseconds. Everything runs on a single event loop: timers and edits
interleave but never run in parallel, so no locking is involved.

Timers come from a ``scheduler(delay_seconds, callback)`` returning a handle
with ``cancel()``. The default schedules on the running asyncio loop.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Scheduler = Callable[[float, Callable[[], None]], Any]

DEFAULT_DELAY_MS = 500


def loop_scheduler(delay_seconds: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    return asyncio.get_running_loop().call_later(delay_seconds, callback)


class _Debouncer:
    def __init__(self, delay: int = DEFAULT_DELAY_MS, scheduler: Optional[Scheduler] = None):
        self.delay = delay
        self._schedule = scheduler or loop_scheduler
        self._handle = None
        self.dirty = False

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def _restart(self) -> None:
        self.dirty = True
        self._cancel()
        self._handle = self._schedule(self.delay / 1000.0, self._fire)

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        raise NotImplementedError

    def flush(self) -> None:
        """Fire a pending update now instead of waiting for the timer."""
        if self._handle is not None:
            self._cancel()
            self._fire()

    def close(self) -> None:
        """Drop any pending timer. Unflushed edits are discarded."""
        self._cancel()
        self.dirty = False


class DebouncedValue(_Debouncer, Generic[T]):
    """
    Single-field debouncer.

    ``set`` replaces the local value and restarts the timer. When the timer
    elapses ``on_update`` receives the latest value once, and that value
    becomes the known external value. Unchanged values are still flushed.
    """

    def __init__(self, initial: T, on_update: Callable[[T], Any],
                 delay: int = DEFAULT_DELAY_MS, scheduler: Optional[Scheduler] = None):
        super().__init__(delay, scheduler)
        self._value = initial
        self.external = initial
        self._on_update = on_update

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        self._restart()

    def sync(self, upstream: T) -> None:
        """Take an upstream value unless a local edit is still pending."""
        if self.dirty:
            logger.debug("Ignoring upstream value while a local edit is pending")
            return
        self.external = upstream
        self._value = upstream

    def _fire(self) -> None:
        self._handle = None
        self.dirty = False
        self.external = self._value
        self._on_update(self._value)


class DebouncedConfig(_Debouncer):
    """
    Multi-field debouncer: one timer for the whole draft, so fields edited
    within the same window are flushed together as one update.
    """

    def __init__(self, config: Dict[str, Any], on_update: Callable[[Dict[str, Any]], Any],
                 delay: int = DEFAULT_DELAY_MS, scheduler: Optional[Scheduler] = None):
        super().__init__(delay, scheduler)
        self._draft = dict(config)
        self.external = dict(config)
        self._on_update = on_update

    @property
    def value(self) -> Dict[str, Any]:
        return dict(self._draft)

    def update_field(self, key: str, value: Any) -> None:
        self._draft = {**self._draft, key: value}
        self._restart()

    def update_fields(self, updates: Dict[str, Any]) -> None:
        self._draft = {**self._draft, **updates}
        self._restart()

    def sync(self, upstream: Dict[str, Any]) -> None:
        if self.dirty:
            logger.debug("Ignoring upstream config while %d fields are pending", len(self._draft))
            return
        self.external = dict(upstream)
        self._draft = dict(upstream)

    def _fire(self) -> None:
        self._handle = None
        self.dirty = False
        draft = self._draft
        self.external = dict(draft)
        logger.debug("Flushing debounced config update")
        self._on_update(draft)
