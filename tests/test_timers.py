"""Tests for tick timers."""

from board_sync.client.timers import TickTimers


class TestTickTimers:
    def setup_method(self):
        self.timers = TickTimers()
        self.fired = []

    def _callback(self, name):
        return lambda: self.fired.append(name)

    def test_fires_once_on_expiry(self):
        assert self.timers.schedule("flash", 3, self._callback("flash")) == 3
        assert self.timers.advance(2) == []
        assert self.timers.is_pending("flash")

        assert self.timers.advance(3) == ["flash"]
        assert self.timers.advance(4) == []
        assert self.fired == ["flash"]

    def test_rescheduling_replaces(self):
        self.timers.schedule("flash", 2, self._callback("first"))
        self.timers.schedule("flash", 5, self._callback("second"))
        self.timers.advance(5)
        assert self.fired == ["second"]

    def test_cancel(self):
        self.timers.schedule("flash", 1, self._callback("flash"))
        assert self.timers.cancel("flash")
        assert not self.timers.cancel("flash")
        self.timers.advance(10)
        assert self.fired == []

    def test_oldest_expiry_fires_first(self):
        self.timers.schedule("late", 4, self._callback("late"))
        self.timers.schedule("early", 1, self._callback("early"))
        assert self.timers.advance(10) == ["early", "late"]
        assert self.timers.now == 10
