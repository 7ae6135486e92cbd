from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Puzzle and level logic depend on this interface rather than calling real
    time directly, so scripted runs can drive time by hand.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class Timer:
    """Handle for one scheduled callback owned by a TimerScope."""

    __slots__ = ("_callback", "_due_at_s", "_interval_s", "_active")

    def __init__(self, *, callback: Callable[[], None], due_at_s: float, interval_s: float | None) -> None:
        self._callback = callback
        self._due_at_s = float(due_at_s)
        self._interval_s = interval_s
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    @property
    def due_at_s(self) -> float:
        return self._due_at_s

    def cancel(self) -> None:
        self._active = False


class TimerScope:
    """Fire-and-forget timers with scoped acquisition/release.

    A widget owns exactly one scope. Timers fire only from ``poll()``, which the
    owner calls from its ``update()``; nothing runs on a background thread.
    Once ``close()`` has been called the scope refuses new timers and never
    fires again, so a stale callback can never reach a discarded widget.
    """

    # Bound on catch-up firings of one repeating timer per poll (frame hitch).
    _MAX_CATCH_UP = 8

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._timers: list[Timer] = []
        self._closed = False

    def __enter__(self) -> TimerScope:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def pending_count(self) -> int:
        return sum(1 for t in self._timers if t.active)

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> Timer:
        if delay_s < 0.0:
            raise ValueError("delay_s must be >= 0")
        return self._add(Timer(callback=callback, due_at_s=self._clock.now() + float(delay_s), interval_s=None))

    def schedule_repeating(self, interval_s: float, callback: Callable[[], None]) -> Timer:
        if interval_s <= 0.0:
            raise ValueError("interval_s must be > 0")
        interval = float(interval_s)
        return self._add(Timer(callback=callback, due_at_s=self._clock.now() + interval, interval_s=interval))

    def poll(self) -> int:
        """Fire every due timer. Returns the number of callbacks run."""

        if self._closed:
            return 0
        now = self._clock.now()
        fired = 0
        for timer in sorted(self._timers, key=lambda t: t.due_at_s):
            runs = 0
            while timer.active and timer.due_at_s <= now:
                if timer._interval_s is None:
                    timer._active = False
                else:
                    timer._due_at_s += timer._interval_s
                    runs += 1
                    if runs >= self._MAX_CATCH_UP:
                        timer._due_at_s = max(timer._due_at_s, now + timer._interval_s)
                timer._callback()
                fired += 1
                # A callback may have torn the whole scope down.
                if self._closed:
                    return fired
        self._timers = [t for t in self._timers if t.active]
        return fired

    def cancel_all(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers = []

    def close(self) -> None:
        self.cancel_all()
        self._closed = True

    def _add(self, timer: Timer) -> Timer:
        if self._closed:
            raise RuntimeError("timer scope is closed")
        self._timers.append(timer)
        return timer
