from __future__ import annotations

import logging
from dataclasses import dataclass

from .geometry import wrap_index
from .puzzle_core import FailureKind, FeedbackSink, PuzzleBase, PuzzleCallbacks, PuzzleStatus
from .timers import Clock

logger = logging.getLogger(__name__)


class WrappingCounter:
    """Integer in [0, max_value] that wraps modulo (max_value + 1)."""

    def __init__(self, *, max_value: int, value: int = 0) -> None:
        if max_value < 0:
            raise ValueError("max_value must be >= 0")
        self._max = int(max_value)
        self._value = wrap_index(value, self._max + 1)

    @property
    def value(self) -> int:
        return self._value

    @property
    def max_value(self) -> int:
        return self._max

    @property
    def fraction(self) -> float:
        return 0.0 if self._max == 0 else self._value / float(self._max)

    def step(self, delta: int) -> int:
        self._value = wrap_index(self._value + int(delta), self._max + 1)
        return self._value

    def increment(self) -> int:
        return self.step(1)

    def decrement(self) -> int:
        return self.step(-1)

    def set(self, value: int) -> None:
        self._value = wrap_index(value, self._max + 1)


class DigitRoller:
    """Single 0-9 drum used for numeric answers; every step clicks."""

    def __init__(self, *, feedback: FeedbackSink | None = None) -> None:
        self._counter = WrappingCounter(max_value=9)
        self._feedback = feedback

    @property
    def value(self) -> int:
        return self._counter.value

    def roll_up(self) -> int:
        self._click()
        return self._counter.increment()

    def roll_down(self) -> int:
        self._click()
        return self._counter.decrement()

    def reset(self) -> None:
        self._counter.set(0)

    def _click(self) -> None:
        if self._feedback is not None:
            self._feedback.play_click()


@dataclass(frozen=True, slots=True)
class DualKnobConfig:
    left_max: int = 12
    left_target: int = 8
    right_max: int = 40
    right_target: int = 20
    resolve_delay_s: float = 1.5
    left_label: str = "Input"
    right_label: str = "Frequency"


class DualKnobMatcher(PuzzleBase):
    """Two independent wrapping knobs and a discharge button.

    ``ready`` is derived after every knob change. Discharging while not ready is
    an explicit failure. A successful discharge enters RESOLVING and signals
    success once ``resolve_delay_s`` has elapsed.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        feedback: FeedbackSink | None = None,
        callbacks: PuzzleCallbacks | None = None,
        config: DualKnobConfig | None = None,
    ) -> None:
        cfg = config or DualKnobConfig()
        if not (0 <= cfg.left_target <= cfg.left_max):
            raise ValueError("left_target must be in [0, left_max]")
        if not (0 <= cfg.right_target <= cfg.right_max):
            raise ValueError("right_target must be in [0, right_max]")
        if cfg.resolve_delay_s < 0.0:
            raise ValueError("resolve_delay_s must be >= 0")

        super().__init__(clock=clock, feedback=feedback, callbacks=callbacks)
        self._cfg = cfg
        self._left = WrappingCounter(max_value=cfg.left_max)
        self._right = WrappingCounter(max_value=cfg.right_max)
        self._ready = False
        self._recompute()

    @property
    def config(self) -> DualKnobConfig:
        return self._cfg

    @property
    def left(self) -> int:
        return self._left.value

    @property
    def right(self) -> int:
        return self._right.value

    @property
    def left_fraction(self) -> float:
        return self._left.fraction

    @property
    def right_fraction(self) -> float:
        return self._right.fraction

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def resolving(self) -> bool:
        return self._status is PuzzleStatus.RESOLVING

    def step_left(self, delta: int) -> int:
        return self._turn(self._left, delta)

    def step_right(self, delta: int) -> int:
        return self._turn(self._right, delta)

    def discharge(self) -> bool:
        if not self._accepting_input():
            return False
        if not self._ready:
            self._fail(FailureKind.TARGET_NOT_MET, f"left {self.left} right {self.right}")
            return False
        self._feedback.play_click()
        self._status = PuzzleStatus.RESOLVING
        logger.debug("discharge accepted, resolving for %.2fs", self._cfg.resolve_delay_s)
        self._timers.schedule(self._cfg.resolve_delay_s, self._resolve)
        return True

    def _turn(self, counter: WrappingCounter, delta: int) -> int:
        if not self._accepting_input():
            return counter.value
        self._feedback.play_click()
        value = counter.step(delta)
        self._recompute()
        return value

    def _recompute(self) -> None:
        self._ready = self._left.value == self._cfg.left_target and self._right.value == self._cfg.right_target

    def _resolve(self) -> None:
        self._succeed("discharged")

    def _reset_state(self) -> None:
        self._left.set(0)
        self._right.set(0)
        self._recompute()
