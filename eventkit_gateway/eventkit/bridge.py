"""
Callback-to-blocking bridge.

EventKit and CoreLocation report results through completion handlers. A
CallbackSlot receives exactly one such result and lets the calling thread
block on it with a deadline. When a pump is supplied the wait is cooperative:
the pump services the Cocoa run loop in short slices so handlers that are
delivered on the main thread can still fire.
"""

import logging
import threading
import time
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)

PUMP_SLICE = 0.1  # seconds per run-loop slice


class CallbackSlot:
    """
    Single-slot holder for one completion-handler result.

    The first call to resolve() wins; later calls are ignored, so a handler
    that fires twice or fires after the caller gave up cannot change the
    observed outcome.
    """

    def __init__(self):
        self._done = threading.Event()
        self._lock = threading.Lock()
        self._values: Optional[Tuple[Any, ...]] = None

    def resolve(self, *values: Any) -> bool:
        """
        Store the callback arguments.

        Returns:
            True if this call filled the slot, False if it was already filled
        """
        with self._lock:
            if self._values is not None:
                logger.debug("Ignoring duplicate callback")
                return False
            self._values = values
        self._done.set()
        return True

    @property
    def is_resolved(self) -> bool:
        return self._done.is_set()

    @property
    def values(self) -> Optional[Tuple[Any, ...]]:
        return self._values

    def wait(
        self,
        timeout: Optional[float],
        pump: Optional[Callable[[float], None]] = None
    ) -> bool:
        """
        Block until the slot is resolved or the timeout expires.

        Args:
            timeout: Ceiling in seconds (None waits forever)
            pump: Optional run-loop servicer called with a slice length

        Returns:
            True if resolved, False on timeout
        """
        if pump is None:
            return self._done.wait(timeout)

        deadline = None if timeout is None else time.monotonic() + timeout
        while not self._done.is_set():
            if deadline is None:
                slice_len = PUMP_SLICE
            else:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                slice_len = min(PUMP_SLICE, remaining)
            pump(slice_len)
            # pump may return early when the loop has no sources
            self._done.wait(0.01)
        return self._done.is_set()


def cocoa_run_loop_pump(interval: float) -> None:
    """Run the current NSRunLoop in default mode for up to interval seconds."""
    from Foundation import NSDate, NSDefaultRunLoopMode, NSRunLoop

    NSRunLoop.currentRunLoop().runMode_beforeDate_(
        NSDefaultRunLoopMode, NSDate.dateWithTimeIntervalSinceNow_(interval)
    )
