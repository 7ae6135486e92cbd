from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from heal_code.geometry import Vec2
from heal_code.letter_restoration import DropOutcome, LetterRestoration, LetterRestorationConfig
from heal_code.puzzle_core import FailureKind, PuzzleCallbacks, PuzzleStatus

ZONE_CENTER = Vec2(50.0, 50.0)
OUTSIDE = Vec2(5.0, 5.0)


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


def _drop(puzzle: LetterRestoration, symbol: str, at: Vec2) -> DropOutcome:
    grab_at = puzzle.token(symbol).position + Vec2(1.0, 1.0)
    assert puzzle.grab(symbol, grab_at)
    puzzle.drag_to(at)
    return puzzle.release(at)


def test_spawn_mixes_targets_among_decoys() -> None:
    puzzle = LetterRestoration(clock=FakeClock(), seed=7)
    floating = puzzle.floating()
    assert len(floating) == 26
    assert {t.symbol for t in floating if t.is_target} == {"E", "G", "O", "M"}
    cfg = puzzle.config
    for tok in floating:
        assert cfg.spawn_min <= tok.position.x <= cfg.spawn_max
        assert abs(tok.velocity.x) <= cfg.max_speed
        assert abs(tok.velocity.y) <= cfg.max_speed


def test_same_seed_same_layout() -> None:
    a = LetterRestoration(clock=FakeClock(), seed=99)
    b = LetterRestoration(clock=FakeClock(), seed=99)
    assert [t.position for t in a.floating()] == [t.position for t in b.floating()]


def test_decoy_and_out_of_zone_drops_are_inert() -> None:
    feedback = RecordingFeedback()
    calls = Calls()
    puzzle = LetterRestoration(clock=FakeClock(), seed=3, feedback=feedback, callbacks=calls.callbacks())

    assert _drop(puzzle, "A", ZONE_CENTER) is DropOutcome.INERT
    assert _drop(puzzle, "E", OUTSIDE) is DropOutcome.INERT
    assert puzzle.restored == ()
    assert calls.errors == []
    assert feedback.errors == 0
    # Released letters resume drifting from the release point.
    released = puzzle.token("A").position
    assert (released.x, released.y) == (pytest.approx(49.0), pytest.approx(49.0))
    assert not puzzle.token("A").dragging


def test_release_past_the_bounds_drifts_back_from_the_release_point() -> None:
    clock = FakeClock()
    puzzle = LetterRestoration(clock=clock, seed=3)
    assert _drop(puzzle, "A", Vec2(-40.0, 50.0)) is DropOutcome.INERT
    before = puzzle.token("A").position
    assert (before.x, before.y) == (pytest.approx(-41.0), pytest.approx(49.0))

    clock.advance(0.017)
    puzzle.update()
    after = puzzle.token("A").position
    cfg = puzzle.config
    assert 0.0 < after.x - before.x <= cfg.max_speed
    assert abs(after.y - before.y) <= cfg.max_speed
    assert puzzle.token("A").velocity.x > 0.0


def test_target_drop_in_zone_is_captured_for_good() -> None:
    calls = Calls()
    puzzle = LetterRestoration(clock=FakeClock(), seed=3, callbacks=calls.callbacks())

    assert _drop(puzzle, "G", ZONE_CENTER) is DropOutcome.CAPTURED
    assert puzzle.restored == ("G",)
    assert calls.progress == ["G"]
    assert puzzle.restoration_ratio == pytest.approx(0.25)
    assert "G" not in {t.symbol for t in puzzle.floating()}
    # Captured letters leave the pool and cannot be grabbed again.
    assert puzzle.grab("G", ZONE_CENTER) is False
    assert puzzle.token_at(puzzle.token("G").position) != "G"


def test_grab_suspends_motion_and_keeps_offset() -> None:
    clock = FakeClock()
    puzzle = LetterRestoration(clock=clock, seed=5)
    start = puzzle.token("M").position
    assert puzzle.grab("M", start + Vec2(2.0, 3.0))
    assert puzzle.held == "M"
    # Only one letter in hand at a time.
    assert puzzle.grab("E", puzzle.token("E").position) is False

    clock.advance(0.1)
    puzzle.update()
    assert puzzle.token("M").position == start

    puzzle.drag_to(Vec2(20.0, 30.0))
    moved = puzzle.token("M").position
    assert (moved.x, moved.y) == (pytest.approx(18.0), pytest.approx(27.0))


def test_ambient_motion_stays_within_bounds() -> None:
    clock = FakeClock()
    puzzle = LetterRestoration(clock=clock, seed=11)
    before = {t.symbol: t.position for t in puzzle.floating()}
    for _ in range(400):
        clock.advance(0.016)
        puzzle.update()
    after = {t.symbol: t.position for t in puzzle.floating()}

    assert before != after
    cfg = puzzle.config
    for pos in after.values():
        assert cfg.bounds_min <= pos.x <= cfg.bounds_max
        assert cfg.bounds_min <= pos.y <= cfg.bounds_max


def test_completion_fires_once_after_delay() -> None:
    clock = FakeClock()
    calls = Calls()
    puzzle = LetterRestoration(clock=clock, seed=21, callbacks=calls.callbacks())

    for symbol in ("M", "O", "G", "E"):
        assert _drop(puzzle, symbol, ZONE_CENTER) is DropOutcome.CAPTURED
    assert len(puzzle.restored) == 4
    assert puzzle.status is PuzzleStatus.RESOLVING
    assert calls.successes == 0

    clock.advance(1.9)
    puzzle.update()
    assert calls.successes == 0
    clock.advance(0.2)
    puzzle.update()
    assert calls.successes == 1
    assert puzzle.solved

    clock.advance(5.0)
    puzzle.update()
    assert calls.successes == 1


def test_reset_respawns_same_layout_and_clears_restored() -> None:
    puzzle = LetterRestoration(clock=FakeClock(), seed=8)
    initial = [t.position for t in puzzle.floating()]
    _drop(puzzle, "E", ZONE_CENTER)
    puzzle.reset()
    assert puzzle.restored == ()
    assert [t.position for t in puzzle.floating()] == initial


def test_close_stops_pending_completion() -> None:
    clock = FakeClock()
    calls = Calls()
    puzzle = LetterRestoration(clock=clock, seed=2, callbacks=calls.callbacks())
    for symbol in ("E", "G", "O", "M"):
        _drop(puzzle, symbol, ZONE_CENTER)
    puzzle.close()
    clock.advance(3.0)
    puzzle.update()
    assert calls.successes == 0
    assert puzzle.pending_timers() == 0


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        LetterRestoration(clock=FakeClock(), seed=0, config=LetterRestorationConfig(targets=()))
    with pytest.raises(ValueError):
        LetterRestoration(clock=FakeClock(), seed=0, config=LetterRestorationConfig(targets=("E", "E")))
    with pytest.raises(ValueError):
        LetterRestoration(clock=FakeClock(), seed=0, config=LetterRestorationConfig(targets=("1",)))
