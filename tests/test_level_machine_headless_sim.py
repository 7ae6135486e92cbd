from __future__ import annotations

import math
from dataclasses import dataclass

from heal_code.anomaly_scan import AnomalyScan
from heal_code.dual_knob import DualKnobMatcher
from heal_code.engine import GameEngine, MemoryProgress
from heal_code.geometry import Vec2
from heal_code.gestures import parse_directions
from heal_code.joystick_sequence import JoystickSequence
from heal_code.letter_restoration import LetterRestoration
from heal_code.level_machine import GameCompleted, LevelMachineConfig, LevelProgress
from heal_code.rotary_lock import RotaryLock

CENTER = Vec2(480.0, 300.0)


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


def _on_dial(deg: float) -> Vec2:
    rad = math.radians(deg)
    return CENTER + Vec2(math.cos(rad) * 120.0, math.sin(rad) * 120.0)


def test_headless_scripted_playthrough_reaches_completion() -> None:
    clock = FakeClock()
    feedback = RecordingFeedback()
    progress = MemoryProgress()
    reported: list[int] = []
    engine = GameEngine(
        clock=clock,
        progress=progress,
        feedback=feedback,
        config=LevelMachineConfig(rotary_center=CENTER, seed=1234),
        on_progress=reported.append,
    )
    m = engine.machine
    finished: list[GameCompleted] = []
    m.subscribe(lambda e: finished.append(e) if isinstance(e, GameCompleted) else None)

    def tick(dt: float) -> None:
        clock.advance(dt)
        engine.update()

    # Level 1: narrative, a timed screen, then the node token (one wrong try).
    m.advance_screen()
    tick(7.2)
    m.advance_screen()
    assert m.submit_answer("20NWV") is False
    assert m.submit_answer("20nwvsm") is True
    assert m.progress == LevelProgress(2, 1)

    # Level 2: digit roller.
    m.advance_screen()
    assert m.submit_answer("7") is True

    # Level 3: colour, code, continue.
    for _ in range(3):
        m.advance_screen()
    m.submit_answer("orange")
    m.submit_answer("67662")
    m.submit_answer()
    assert m.progress == LevelProgress(4, 1)

    # Level 4: four counted fields.
    m.advance_screen()
    assert m.submit_answer({"panda": "5", "bird": "3", "apple": "4", "pot": "1"}) is True

    # Level 5: rotary lock with one tap and one wrong layer attempt.
    m.advance_screen()
    m.advance_screen()
    lock = m.widget
    assert isinstance(lock, RotaryLock)
    lock.begin_drag(_on_dial(0.0))
    lock.end_drag()
    for target_deg in (36.0, 18.0, 90.0, -108.0):
        lock.begin_drag(_on_dial(0.0))
        for i in range(1, 7):
            lock.drag_to(_on_dial(target_deg * i / 6))
        lock.end_drag()
    assert m.progress == LevelProgress(6, 1)

    # Level 6: dual knob, discharged early once.
    m.advance_screen()
    m.advance_screen()
    knobs = m.widget
    assert isinstance(knobs, DualKnobMatcher)
    knobs.discharge()
    for _ in range(8):
        knobs.step_left(1)
    knobs.step_right(-21)
    assert knobs.right == 20
    assert knobs.discharge()
    tick(1.6)
    assert m.progress == LevelProgress(7, 1)

    # Level 7: Player B is refused until Player A purges the anomalies.
    scan = m.widget
    assert isinstance(scan, AnomalyScan)
    m.toggle_perspective()
    assert m.submit_answer("29") is False
    m.toggle_perspective()
    for zone in scan.config.zones:
        scan.place_marker(zone.center)
    scan.purge()
    m.toggle_perspective()
    assert m.submit_answer("29") is True

    # Level 8.
    m.advance_screen()
    assert m.submit_answer("芬里尔") is True

    # Level 9: key, letter restoration, restored core, sync.
    m.advance_screen()
    m.submit_answer("EGOM")
    letters = m.widget
    assert isinstance(letters, LetterRestoration)
    tick(0.5)
    letters.grab("A", letters.token("A").position)
    letters.release(Vec2(50.0, 50.0))
    for symbol in ("E", "G", "O", "M"):
        letters.grab(symbol, letters.token(symbol).position)
        letters.drag_to(Vec2(48.0, 52.0))
        letters.release(Vec2(48.0, 52.0))
    tick(2.1)
    assert m.progress == LevelProgress(9, 4)
    m.advance_screen()
    m.submit_answer()
    assert m.progress == LevelProgress(10, 1)

    # Level 10: joystick, including a pre-ignition slip and a mid-phase mismatch.
    m.advance_screen()
    stick = m.widget
    assert isinstance(stick, JoystickSequence)
    for d in parse_directions("L" "ULU"):
        stick.input(d)
    for d in parse_directions("ULRL" "LLLRLL" "LRLR" "LLL" "LD"):
        stick.input(d)
    assert m.progress == LevelProgress(10, 3)
    m.submit_answer()

    assert m.complete
    assert reported == list(range(2, 12))
    assert progress.saved == list(range(2, 12))
    assert len(finished) == 1
    assert engine.persistence_failures == 0
    # Puzzle and answer failures: L1 token, L5 layer, L6 early discharge,
    # L10 pre-ignition and mismatch. The L7 refusal is not a failure cue.
    assert feedback.errors == 5

    engine.restart()
    assert m.progress == LevelProgress(1, 1)
    engine.close()
