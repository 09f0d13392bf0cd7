import time


class SystemClock:
    """Wall clock used for message timestamps and key expiry."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)

    def now(self) -> float:
        return time.time()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000):
        self._ms = start_ms

    def now_ms(self) -> int:
        return self._ms

    def now(self) -> float:
        return self._ms / 1000

    def advance(self, seconds: float = 0, ms: int = 0):
        self._ms += int(seconds * 1000) + ms


system_clock = SystemClock()
