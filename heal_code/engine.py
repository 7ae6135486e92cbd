from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable
from typing import Protocol

from .level_machine import (
    GameCompleted,
    LevelComplete,
    LevelMachineConfig,
    LevelStateMachine,
    MachineEvent,
)
from .levels import LevelCatalog
from .puzzle_core import FeedbackSink
from .timers import Clock

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    def load_level(self) -> int: ...

    def save_level(self, level: int) -> None: ...

    def clear(self) -> None: ...


class MemoryProgress:
    """In-process progress sink; used by tests and when no store is wanted."""

    def __init__(self, level: int | None = None) -> None:
        self.level = level
        self.saved: list[int] = []

    def load_level(self) -> int:
        return 1 if self.level is None else int(self.level)

    def save_level(self, level: int) -> None:
        self.level = int(level)
        self.saved.append(int(level))

    def clear(self) -> None:
        self.level = None


_PERSISTENCE_ERRORS = (sqlite3.Error, OSError)


class GameEngine:
    """Root object: seeds the level machine and forwards progress outward.

    ``on_progress`` receives the new level number after each completion, once
    the machine has already moved on. Storage failures are logged and counted
    but never undo or block an advance.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        progress: ProgressSink,
        feedback: FeedbackSink | None = None,
        catalog: LevelCatalog | None = None,
        config: LevelMachineConfig | None = None,
        on_progress: Callable[[int], None] | None = None,
        on_exit: Callable[[], None] | None = None,
    ) -> None:
        self._clock = clock
        self._progress = progress
        self._feedback = feedback
        self._catalog = catalog
        self._config = config
        self._on_progress = on_progress
        self._on_exit = on_exit
        self._persistence_failures = 0
        self._exit_requested = False

        start = self._load_start_level()
        logger.info("starting at level %d", start)
        self._machine = self._build_machine(start)

    @property
    def machine(self) -> LevelStateMachine:
        return self._machine

    @property
    def persistence_failures(self) -> int:
        return self._persistence_failures

    @property
    def exit_requested(self) -> bool:
        return self._exit_requested

    def update(self) -> None:
        self._machine.update()

    def restart(self) -> None:
        self._machine.restart()

    def reset_progress(self) -> None:
        """Forget stored progress and start over from level 1."""

        try:
            self._progress.clear()
        except _PERSISTENCE_ERRORS:
            self._persistence_failures += 1
            logger.warning("could not clear stored progress", exc_info=True)
        self._machine.restart()

    def request_exit(self) -> None:
        self._exit_requested = True
        if self._on_exit is not None:
            self._on_exit()

    def close(self) -> None:
        self._machine.close()

    def _build_machine(self, start_level: int) -> LevelStateMachine:
        machine = LevelStateMachine(
            clock=self._clock,
            catalog=self._catalog,
            feedback=self._feedback,
            config=self._config,
            start_level=start_level,
        )
        machine.subscribe(self._on_machine_event)
        return machine

    def _load_start_level(self) -> int:
        try:
            level = int(self._progress.load_level())
        except _PERSISTENCE_ERRORS:
            self._persistence_failures += 1
            logger.warning("could not load stored progress, starting at level 1", exc_info=True)
            return 1
        return max(1, level)

    def _on_machine_event(self, event: MachineEvent) -> None:
        if isinstance(event, LevelComplete):
            self._persist(event.next_level)
            if self._on_progress is not None:
                self._on_progress(event.next_level)
        elif isinstance(event, GameCompleted):
            logger.info("all levels complete (last: %d)", event.final_level)

    def _persist(self, level: int) -> None:
        try:
            self._progress.save_level(level)
        except _PERSISTENCE_ERRORS:
            self._persistence_failures += 1
            logger.warning("could not persist level %d", level, exc_info=True)
