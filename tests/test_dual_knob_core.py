from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from heal_code.dual_knob import DigitRoller, DualKnobConfig, DualKnobMatcher, WrappingCounter
from heal_code.puzzle_core import FailureKind, PuzzleCallbacks, PuzzleStatus


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += dt


@dataclass
class RecordingFeedback:
    clicks: int = 0
    errors: int = 0

    def play_click(self) -> None:
        self.clicks += 1

    def play_error(self) -> None:
        self.errors += 1


@dataclass
class Calls:
    successes: int = 0
    errors: list[FailureKind] = field(default_factory=list)

    def callbacks(self) -> PuzzleCallbacks:
        return PuzzleCallbacks(
            on_success=lambda: setattr(self, "successes", self.successes + 1),
            on_error=self.errors.append,
        )


def test_wrapping_counter_wraps_both_ways() -> None:
    counter = WrappingCounter(max_value=12, value=12)
    assert counter.increment() == 0
    assert counter.decrement() == 12
    assert counter.step(-13) == 12
    assert counter.fraction == pytest.approx(1.0)
    counter.set(27)
    assert counter.value == 1
    with pytest.raises(ValueError):
        WrappingCounter(max_value=-1)


def test_digit_roller_wraps_and_clicks() -> None:
    feedback = RecordingFeedback()
    roller = DigitRoller(feedback=feedback)
    assert roller.roll_down() == 9
    assert roller.roll_up() == 0
    for _ in range(7):
        roller.roll_up()
    assert roller.value == 7
    assert feedback.clicks == 9
    roller.reset()
    assert roller.value == 0


def test_ready_tracks_both_targets_after_every_change() -> None:
    matcher = DualKnobMatcher(clock=FakeClock())
    assert matcher.ready is False

    matcher.step_left(8)
    assert matcher.ready is False
    matcher.step_right(20)
    assert matcher.ready is True
    matcher.step_right(1)
    assert matcher.ready is False
    matcher.step_right(-1)
    assert matcher.ready is True


def test_discharge_while_not_ready_is_a_failure() -> None:
    feedback = RecordingFeedback()
    calls = Calls()
    matcher = DualKnobMatcher(clock=FakeClock(), feedback=feedback, callbacks=calls.callbacks())
    matcher.step_left(8)

    assert matcher.discharge() is False
    assert calls.errors == [FailureKind.TARGET_NOT_MET]
    assert feedback.errors == 1
    assert matcher.status is PuzzleStatus.ACTIVE
    # Knob values survive a premature discharge.
    assert matcher.left == 8


def test_discharge_resolves_after_delay_and_succeeds_once() -> None:
    clock = FakeClock()
    calls = Calls()
    matcher = DualKnobMatcher(clock=clock, callbacks=calls.callbacks())
    matcher.step_left(-5)
    matcher.step_right(20)
    assert matcher.left == 8
    assert matcher.ready

    assert matcher.discharge() is True
    assert matcher.resolving
    # Resolving ignores further input.
    assert matcher.discharge() is False
    assert matcher.step_left(1) == 8

    clock.advance(1.4)
    matcher.update()
    assert calls.successes == 0
    clock.advance(0.2)
    matcher.update()
    assert calls.successes == 1
    assert matcher.solved

    clock.advance(5.0)
    matcher.update()
    assert calls.successes == 1


def test_reset_cancels_pending_resolution() -> None:
    clock = FakeClock()
    calls = Calls()
    matcher = DualKnobMatcher(clock=clock, callbacks=calls.callbacks())
    matcher.step_left(8)
    matcher.step_right(20)
    matcher.discharge()
    assert matcher.pending_timers() == 1

    matcher.reset()
    assert matcher.pending_timers() == 0
    assert (matcher.left, matcher.right, matcher.ready) == (0, 0, False)
    clock.advance(2.0)
    matcher.update()
    assert calls.successes == 0


def test_close_prevents_stale_success() -> None:
    clock = FakeClock()
    calls = Calls()
    matcher = DualKnobMatcher(clock=clock, callbacks=calls.callbacks())
    matcher.step_left(8)
    matcher.step_right(20)
    matcher.discharge()
    matcher.close()

    clock.advance(2.0)
    matcher.update()
    assert calls.successes == 0
    with pytest.raises(RuntimeError):
        matcher.step_left(1)


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        DualKnobMatcher(clock=FakeClock(), config=DualKnobConfig(left_target=13))
    with pytest.raises(ValueError):
        DualKnobMatcher(clock=FakeClock(), config=DualKnobConfig(resolve_delay_s=-1.0))
