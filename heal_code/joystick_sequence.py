from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from .geometry import ORIGIN, Vec2
from .gestures import Direction, classify_direction, parse_directions, track_stick
from .puzzle_core import FailureKind, FeedbackSink, PuzzleBase, PuzzleCallbacks
from .sequence import Complete, Mismatch, feed
from .timers import Clock

logger = logging.getLogger(__name__)


DEFAULT_PHASES: tuple[tuple[Direction, ...], ...] = (
    parse_directions("ULRL"),
    parse_directions("LLLRLL"),
    parse_directions("LRLR"),
    parse_directions("LLL"),
    parse_directions("LD"),
)


@dataclass(frozen=True, slots=True)
class JoystickSequenceConfig:
    phases: tuple[tuple[Direction, ...], ...] = DEFAULT_PHASES
    max_radius: float = 60.0
    threshold: float = 30.0
    ignition: Direction = Direction.UP


class InputOutcome(StrEnum):
    DISCARDED = "discarded"
    IGNITED = "ignited"
    ACCEPTED = "accepted"
    PHASE_COMPLETE = "phase_complete"
    SOLVED = "solved"
    REJECTED = "rejected"
    MISMATCH = "mismatch"


class JoystickSequence(PuzzleBase):
    """Spring-loaded joystick that must be flicked through phased sequences.

    Until ignition only the ignition direction is accepted; anything else is an
    input rejection that leaves the buffer untouched. The ignition input itself
    is fed into the first phase. After that every classified release is
    matched prefix-wise against the active phase.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        feedback: FeedbackSink | None = None,
        callbacks: PuzzleCallbacks | None = None,
        config: JoystickSequenceConfig | None = None,
    ) -> None:
        cfg = config or JoystickSequenceConfig()
        if not cfg.phases or any(len(p) == 0 for p in cfg.phases):
            raise ValueError("phases must be non-empty sequences")
        if cfg.max_radius <= 0.0:
            raise ValueError("max_radius must be > 0")
        if not (0.0 < cfg.threshold < cfg.max_radius):
            raise ValueError("threshold must be in (0, max_radius)")

        super().__init__(clock=clock, feedback=feedback, callbacks=callbacks)
        self._cfg = cfg
        self._ignited = False
        self._phase = 0
        self._buffer: tuple[Direction, ...] = ()
        self._completed = [False] * len(cfg.phases)
        self._knob = ORIGIN
        self._held = False

    @property
    def config(self) -> JoystickSequenceConfig:
        return self._cfg

    @property
    def ignited(self) -> bool:
        return self._ignited

    @property
    def phase(self) -> int:
        return self._phase

    @property
    def phase_count(self) -> int:
        return len(self._cfg.phases)

    @property
    def phase_target(self) -> tuple[Direction, ...]:
        return self._cfg.phases[self._phase]

    @property
    def buffer(self) -> tuple[Direction, ...]:
        return self._buffer

    @property
    def completed_phases(self) -> tuple[bool, ...]:
        return tuple(self._completed)

    @property
    def knob(self) -> Vec2:
        return self._knob

    @property
    def held(self) -> bool:
        return self._held

    def press(self) -> None:
        if self._accepting_input():
            self._held = True

    def move(self, offset: Vec2) -> Vec2:
        """Pointer offset from the stick center -> clamped knob displacement."""

        if not self._held:
            return self._knob
        self._knob = track_stick(offset, max_radius=self._cfg.max_radius)
        return self._knob

    def release(self) -> InputOutcome:
        if not self._held:
            return InputOutcome.DISCARDED
        self._held = False
        knob = self._knob
        self._knob = ORIGIN
        # Snap-back click happens on every release, classified or not.
        self._feedback.play_click()
        direction = classify_direction(knob, threshold=self._cfg.threshold)
        if direction is None:
            return InputOutcome.DISCARDED
        return self.input(direction)

    def input(self, direction: Direction) -> InputOutcome:
        if not self._accepting_input():
            return InputOutcome.DISCARDED
        logger.debug("joystick input %s (phase %d, buffer %s)", direction.value, self._phase, self._buffer)

        if not self._ignited:
            if direction is not self._cfg.ignition:
                self._fail(FailureKind.INPUT_REJECTED, f"{direction.value} before ignition")
                return InputOutcome.REJECTED
            self._ignited = True
            outcome = self._match(direction)
            return InputOutcome.IGNITED if outcome is InputOutcome.ACCEPTED else outcome

        return self._match(direction)

    def _match(self, direction: Direction) -> InputOutcome:
        result = feed(self._buffer, direction, self.phase_target)
        if isinstance(result, Mismatch):
            self._buffer = ()
            self._fail(FailureKind.SEQUENCE_MISMATCH, f"phase {self._phase} position {result.position}")
            return InputOutcome.MISMATCH
        if isinstance(result, Complete):
            self._completed[self._phase] = True
            self._buffer = ()
            if self._phase < len(self._cfg.phases) - 1:
                self._phase += 1
                self._progress(f"phase {self._phase - 1}")
                return InputOutcome.PHASE_COMPLETE
            self._succeed(f"phase {self._phase}")
            return InputOutcome.SOLVED
        self._buffer = result.buffer
        return InputOutcome.ACCEPTED

    def _reset_state(self) -> None:
        self._ignited = False
        self._phase = 0
        self._buffer = ()
        self._completed = [False] * len(self._cfg.phases)
        self._knob = ORIGIN
        self._held = False
