"""Tick timers — delayed effects expressed as expiry ticks instead of coroutines."""

from typing import Callable, Dict, List, Tuple


class TickTimers:
    """
    Keyed one-shot timers. Scheduling a key that is already pending replaces it.
    advance() is called once per tick by the client.
    """

    def __init__(self):
        self._now = 0
        self._timers: Dict[str, Tuple[int, Callable[[], None]]] = {}

    @property
    def now(self) -> int:
        return self._now

    def schedule(self, key: str, ticks: int, callback: Callable[[], None]) -> int:
        """Fire `callback` once `ticks` more ticks have elapsed. Returns the expiry tick."""
        expires_at = self._now + ticks
        self._timers[key] = (expires_at, callback)
        return expires_at

    def cancel(self, key: str) -> bool:
        return self._timers.pop(key, None) is not None

    def is_pending(self, key: str) -> bool:
        return key in self._timers

    def advance(self, tick: int) -> List[str]:
        """Move the clock to `tick` and fire every expired timer, oldest expiry first."""
        self._now = tick
        due = sorted(
            (expires_at, key)
            for key, (expires_at, _) in self._timers.items()
            if expires_at <= tick
        )
        fired = []
        for _, key in due:
            _, callback = self._timers.pop(key)
            callback()
            fired.append(key)
        return fired
