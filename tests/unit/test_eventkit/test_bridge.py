"""
Unit tests for CallbackSlot.
"""

import threading

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent.parent.parent))

from eventkit_gateway.eventkit.bridge import CallbackSlot


class TestCallbackSlot:
    """Tests for the single-slot callback holder."""

    def test_resolved_before_wait(self):
        slot = CallbackSlot()
        assert slot.resolve(True, None) is True
        assert slot.wait(0.1) is True
        assert slot.values == (True, None)

    def test_first_resolution_wins(self):
        """A late or duplicate callback cannot change the outcome."""
        slot = CallbackSlot()
        slot.resolve(True, None)
        assert slot.resolve(False, "late") is False
        assert slot.values == (True, None)

    def test_timeout_without_resolution(self):
        slot = CallbackSlot()
        assert slot.wait(0.05) is False
        assert not slot.is_resolved
        assert slot.values is None

    def test_resolution_from_other_thread(self):
        slot = CallbackSlot()
        timer = threading.Timer(0.02, slot.resolve, args=(1.0, 2.0, None))
        timer.start()
        try:
            assert slot.wait(2.0) is True
        finally:
            timer.cancel()
        assert slot.values == (1.0, 2.0, None)

    def test_pump_is_called_while_waiting(self):
        """The pump runs until the slot resolves."""
        slot = CallbackSlot()
        calls = []

        def pump(interval):
            calls.append(interval)
            if len(calls) == 3:
                slot.resolve("done")

        assert slot.wait(5.0, pump) is True
        assert len(calls) == 3
        assert all(0 < interval <= 0.1 for interval in calls)

    def test_pump_wait_times_out(self):
        slot = CallbackSlot()
        calls = []
        assert slot.wait(0.05, calls.append) is False
        assert calls
