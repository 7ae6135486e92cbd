from __future__ import annotations

import math
from dataclasses import dataclass, field

import pytest

from heal_code.geometry import ORIGIN, Vec2
from heal_code.puzzle_core import FailureKind, PuzzleCallbacks, PuzzleEventKind, PuzzleStatus
from heal_code.rotary_lock import DragOutcome, RotaryLock, RotaryLockConfig


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
    progress: list[str] = field(default_factory=list)

    def callbacks(self) -> PuzzleCallbacks:
        return PuzzleCallbacks(
            on_success=lambda: setattr(self, "successes", self.successes + 1),
            on_error=self.errors.append,
            on_progress=self.progress.append,
        )


def _on_circle(deg: float) -> Vec2:
    rad = math.radians(deg)
    return Vec2(math.cos(rad) * 100.0, math.sin(rad) * 100.0)


def _turn(lock: RotaryLock, to_deg: float) -> DragOutcome:
    lock.begin_drag(_on_circle(0.0))
    steps = 6
    for i in range(1, steps + 1):
        lock.drag_to(_on_circle(to_deg * i / steps))
    return lock.end_drag()


def _make(calls: Calls | None = None, feedback: RecordingFeedback | None = None) -> RotaryLock:
    return RotaryLock(
        center=ORIGIN,
        clock=FakeClock(),
        feedback=feedback,
        callbacks=calls.callbacks() if calls is not None else None,
    )


def test_layers_solve_in_order_to_overall_success() -> None:
    calls = Calls()
    lock = _make(calls)

    assert _turn(lock, 18.0) is DragOutcome.LAYER_SOLVED
    assert lock.current_layer == 1
    assert _turn(lock, 90.0) is DragOutcome.LAYER_SOLVED
    assert lock.current_layer == 2
    # 252 degrees is reached by turning 108 the other way.
    assert _turn(lock, -108.0) is DragOutcome.SOLVED

    assert lock.unlocked_layers == (True, True, True)
    assert lock.solved
    assert calls.successes == 1
    assert calls.progress == ["layer 0", "layer 1"]
    assert calls.errors == []


def test_later_layer_target_has_no_effect_before_predecessor() -> None:
    calls = Calls()
    lock = _make(calls)

    # Tick 5 is layer 1's target; layer 0 still wants tick 1.
    assert _turn(lock, 90.0) is DragOutcome.REJECTED
    assert lock.current_layer == 0
    assert lock.unlocked_layers == (False, False, False)
    assert calls.errors == [FailureKind.TARGET_NOT_MET]


def test_mismatch_resets_rotation_and_signals_once() -> None:
    feedback = RecordingFeedback()
    calls = Calls()
    lock = _make(calls, feedback)

    assert _turn(lock, 36.0) is DragOutcome.REJECTED
    assert lock.rotation_deg == 0.0
    assert lock.status is PuzzleStatus.ACTIVE
    assert feedback.errors == 1
    assert calls.errors == [FailureKind.TARGET_NOT_MET]


def test_tap_below_motion_threshold_is_a_silent_no_op() -> None:
    calls = Calls()
    lock = _make(calls)

    lock.begin_drag(_on_circle(0.0))
    lock.drag_to(_on_circle(0.5))
    assert lock.end_drag() is DragOutcome.TAP
    assert lock.rotation_deg == 0.0
    assert calls.errors == []
    assert calls.successes == 0
    assert lock.events() == []


def test_tick_changes_click_once_per_boundary() -> None:
    feedback = RecordingFeedback()
    lock = _make(feedback=feedback)

    lock.begin_drag(_on_circle(0.0))
    assert lock.drag_to(_on_circle(10.0)) == 1
    assert lock.drag_to(_on_circle(10.0)) is None
    assert lock.drag_to(_on_circle(12.0)) is None
    assert lock.drag_to(_on_circle(30.0)) == 2
    assert feedback.clicks == 2
    assert [e.kind for e in lock.events()] == [PuzzleEventKind.TICK, PuzzleEventKind.TICK]


def test_cancel_drag_snaps_back_without_verdict() -> None:
    lock = _make()
    lock.begin_drag(_on_circle(0.0))
    lock.drag_to(_on_circle(18.0))
    lock.cancel_drag()
    assert not lock.dragging
    assert lock.rotation_deg == 0.0
    assert lock.end_drag() is DragOutcome.IGNORED


def test_drag_relative_to_off_center_dial() -> None:
    center = Vec2(480.0, 300.0)
    lock = RotaryLock(center=center, clock=FakeClock())
    lock.begin_drag(center + _on_circle(200.0))
    lock.drag_to(center + _on_circle(205.0))
    lock.drag_to(center + _on_circle(212.0))
    lock.drag_to(center + _on_circle(218.0))
    assert lock.current_tick == 1
    assert lock.end_drag() is DragOutcome.LAYER_SOLVED


def test_reset_and_close_lifecycle() -> None:
    lock = _make()
    _turn(lock, 18.0)
    lock.reset()
    assert lock.current_layer == 0
    assert lock.unlocked_layers == (False, False, False)

    lock.close()
    assert lock.status is PuzzleStatus.CLOSED
    with pytest.raises(RuntimeError):
        lock.begin_drag(_on_circle(0.0))


@pytest.mark.parametrize(
    "config",
    [
        RotaryLockConfig(targets=()),
        RotaryLockConfig(step_deg=0.0),
        RotaryLockConfig(targets=(1, 20)),
        RotaryLockConfig(min_motion_deg=-1.0),
    ],
)
def test_invalid_config_is_rejected(config: RotaryLockConfig) -> None:
    with pytest.raises(ValueError):
        RotaryLock(center=ORIGIN, clock=FakeClock(), config=config)
