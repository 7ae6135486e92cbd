from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import Protocol

from .timers import Clock, TimerScope

logger = logging.getLogger(__name__)


class FeedbackSink(Protocol):
    """Audio/haptic cue collaborator. Fire-and-forget, no effect on logic."""

    def play_click(self) -> None: ...

    def play_error(self) -> None: ...


class SilentFeedback:
    def play_click(self) -> None:
        return None

    def play_error(self) -> None:
        return None


class FailureKind(StrEnum):
    INPUT_REJECTED = "input_rejected"
    SEQUENCE_MISMATCH = "sequence_mismatch"
    TARGET_NOT_MET = "target_not_met"


class PuzzleStatus(str, Enum):
    ACTIVE = "active"
    RESOLVING = "resolving"
    SOLVED = "solved"
    CLOSED = "closed"


class PuzzleEventKind(StrEnum):
    TICK = "tick"
    PROGRESS = "progress"
    FAILURE = "failure"
    SUCCESS = "success"


@dataclass(frozen=True, slots=True)
class PuzzleEvent:
    kind: PuzzleEventKind
    at_s: float
    detail: str = ""
    failure: FailureKind | None = None


@dataclass(frozen=True, slots=True)
class PuzzleCallbacks:
    on_success: Callable[[], None] | None = None
    on_error: Callable[[FailureKind], None] | None = None
    on_progress: Callable[[str], None] | None = None


class PuzzleBase:
    """Shared lifecycle for puzzle widgets.

    - Owns a TimerScope; ``close()`` and ``reset()`` cancel every pending
      timer, so nothing scheduled by an earlier attempt can fire later.
    - Failures are recovered by the subclass (reset to a known baseline) and
      surfaced once via ``_fail``. They never escalate beyond ``on_error``.
    - ``on_success`` is fired at most once per widget lifetime.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        feedback: FeedbackSink | None = None,
        callbacks: PuzzleCallbacks | None = None,
    ) -> None:
        self._clock = clock
        self._feedback: FeedbackSink = feedback or SilentFeedback()
        self._callbacks = callbacks or PuzzleCallbacks()
        self._timers = TimerScope(clock)
        self._status = PuzzleStatus.ACTIVE
        self._events: list[PuzzleEvent] = []
        self._success_fired = False

    @property
    def status(self) -> PuzzleStatus:
        return self._status

    @property
    def solved(self) -> bool:
        return self._status is PuzzleStatus.SOLVED

    def events(self) -> list[PuzzleEvent]:
        return list(self._events)

    def pending_timers(self) -> int:
        return self._timers.pending_count()

    def update(self) -> None:
        if self._status is PuzzleStatus.CLOSED:
            return
        self._timers.poll()

    def reset(self) -> None:
        self._ensure_open()
        self._timers.cancel_all()
        self._status = PuzzleStatus.ACTIVE
        self._success_fired = False
        self._events = []
        self._reset_state()

    def close(self) -> None:
        if self._status is PuzzleStatus.CLOSED:
            return
        self._timers.close()
        self._status = PuzzleStatus.CLOSED

    def _reset_state(self) -> None:
        raise NotImplementedError

    def _ensure_open(self) -> None:
        if self._status is PuzzleStatus.CLOSED:
            raise RuntimeError(f"{type(self).__name__} is closed")

    def _accepting_input(self) -> bool:
        self._ensure_open()
        return self._status is PuzzleStatus.ACTIVE

    def _record(self, kind: PuzzleEventKind, detail: str = "", failure: FailureKind | None = None) -> None:
        self._events.append(PuzzleEvent(kind=kind, at_s=self._clock.now(), detail=detail, failure=failure))

    def _tick(self, detail: str) -> None:
        self._record(PuzzleEventKind.TICK, detail)
        self._feedback.play_click()

    def _progress(self, detail: str) -> None:
        self._record(PuzzleEventKind.PROGRESS, detail)
        self._feedback.play_click()
        if self._callbacks.on_progress is not None:
            self._callbacks.on_progress(detail)

    def _fail(self, kind: FailureKind, detail: str = "") -> None:
        logger.debug("%s failure: %s %s", type(self).__name__, kind.value, detail)
        self._record(PuzzleEventKind.FAILURE, detail, failure=kind)
        self._feedback.play_error()
        if self._callbacks.on_error is not None:
            self._callbacks.on_error(kind)

    def _succeed(self, detail: str = "") -> None:
        if self._success_fired:
            return
        self._success_fired = True
        self._status = PuzzleStatus.SOLVED
        self._record(PuzzleEventKind.SUCCESS, detail)
        if self._callbacks.on_success is not None:
            self._callbacks.on_success()
