from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum

from .anomaly_scan import AnomalyScan, AnomalyScanConfig
from .dual_knob import DualKnobConfig, DualKnobMatcher
from .geometry import Vec2
from .joystick_sequence import JoystickSequence, JoystickSequenceConfig
from .letter_restoration import LetterRestoration, LetterRestorationConfig
from .levels import (
    AnswerGate,
    ContinueGate,
    FieldsGate,
    LevelCatalog,
    LevelDefinition,
    PuzzleGate,
    PuzzleKind,
    ScreenSpec,
    UnknownLevelError,
    build_default_catalog,
)
from .puzzle_core import FailureKind, FeedbackSink, PuzzleBase, PuzzleCallbacks, SilentFeedback
from .rotary_lock import RotaryLock, RotaryLockConfig
from .timers import Clock, TimerScope

logger = logging.getLogger(__name__)


class MachineMode(StrEnum):
    PLAYING = "playing"
    COMPLETE = "complete"


class Perspective(StrEnum):
    A = "A"
    B = "B"


class BannerTone(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    NOTICE = "notice"


@dataclass(frozen=True, slots=True)
class LevelProgress:
    level_number: int
    screen_index: int


@dataclass(frozen=True, slots=True)
class Banner:
    text: str
    tone: BannerTone


@dataclass(frozen=True, slots=True)
class LevelComplete:
    level_number: int
    next_level: int


@dataclass(frozen=True, slots=True)
class AttemptFailed:
    level_number: int
    screen_index: int
    reason: str


@dataclass(frozen=True, slots=True)
class PuzzleFailed:
    level_number: int
    puzzle: PuzzleKind
    failure: FailureKind


@dataclass(frozen=True, slots=True)
class ScreenChanged:
    progress: LevelProgress


@dataclass(frozen=True, slots=True)
class GameCompleted:
    final_level: int


@dataclass(frozen=True, slots=True)
class Restarted:
    pass


MachineEvent = LevelComplete | AttemptFailed | PuzzleFailed | ScreenChanged | GameCompleted | Restarted
Listener = Callable[[MachineEvent], None]
AnswerInput = str | Mapping[str, str] | None


@dataclass(frozen=True, slots=True)
class LevelMachineConfig:
    success_banner_s: float = 3.0
    failure_banner_s: float = 1.5
    notice_banner_s: float = 2.5
    error_flash_s: float = 0.6
    seed: int = 0
    rotary_center: Vec2 = Vec2(0.0, 0.0)
    rotary_lock: RotaryLockConfig | None = None
    dual_knob: DualKnobConfig | None = None
    letter_restoration: LetterRestorationConfig | None = None
    joystick_sequence: JoystickSequenceConfig | None = None
    anomaly_scan: AnomalyScanConfig | None = None


class LevelStateMachine:
    """Owns (level, screen) and routes every check to the right gate.

    Transitions are synchronous. Listeners see a LevelComplete only after the
    machine has already moved to (level + 1, 1). Puzzle failures stay inside
    the widget; the machine only mirrors them as a transient error flash.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        catalog: LevelCatalog | None = None,
        feedback: FeedbackSink | None = None,
        config: LevelMachineConfig | None = None,
        start_level: int = 1,
    ) -> None:
        self._clock = clock
        self._catalog = catalog or build_default_catalog()
        self._feedback: FeedbackSink = feedback or SilentFeedback()
        self._cfg = config or LevelMachineConfig()
        self._listeners: list[Listener] = []

        # Screen scope: timed unlocks. View scope: banner/flash auto-clear,
        # which must outlive a screen change so success text stays readable.
        self._screen_timers = TimerScope(clock)
        self._view_timers = TimerScope(clock)

        self._mode = MachineMode.PLAYING
        self._level = 1
        self._screen = 1
        self._screen_entered_at_s = clock.now()
        self._screen_unlocked = True
        self._widget: PuzzleBase | None = None
        self._widget_generation = 0

        self._perspective = Perspective.A
        self._hint_prompt_open = False
        self._hint_visible = False
        self._banner: Banner | None = None
        self._banner_timer = None
        self._error_flash = False
        self._flash_timer = None

        self._seed_level(start_level)

    # ----------------------------------------------------------------- queries

    @property
    def catalog(self) -> LevelCatalog:
        return self._catalog

    @property
    def mode(self) -> MachineMode:
        return self._mode

    @property
    def complete(self) -> bool:
        return self._mode is MachineMode.COMPLETE

    @property
    def progress(self) -> LevelProgress:
        return LevelProgress(level_number=self._level, screen_index=self._screen)

    @property
    def level(self) -> LevelDefinition | None:
        if self.complete:
            return None
        return self._catalog.get(self._level)

    @property
    def screen(self) -> ScreenSpec | None:
        lvl = self.level
        return None if lvl is None else lvl.screen(self._screen)

    @property
    def widget(self) -> PuzzleBase | None:
        return self._widget

    @property
    def perspective(self) -> Perspective:
        return self._perspective

    @property
    def hint_prompt_open(self) -> bool:
        return self._hint_prompt_open

    @property
    def hint_visible(self) -> bool:
        return self._hint_visible

    @property
    def banner(self) -> Banner | None:
        return self._banner

    @property
    def error_flash(self) -> bool:
        return self._error_flash

    @property
    def screen_unlocked(self) -> bool:
        return self._screen_unlocked

    @property
    def screen_alert(self) -> bool:
        screen = self.screen
        if screen is None or screen.alert_after_s <= 0.0:
            return False
        return self._clock.now() - self._screen_entered_at_s >= screen.alert_after_s

    def can_advance(self) -> bool:
        screen = self.screen
        lvl = self.level
        if screen is None or lvl is None:
            return False
        return screen.gate is None and self._screen < lvl.screen_count and self._screen_unlocked

    def can_retreat(self) -> bool:
        lvl = self.level
        if lvl is None:
            return False
        return self._screen > 1 and not lvl.screen_locked

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------- navigation

    def advance_screen(self) -> bool:
        if not self.can_advance():
            return False
        self._enter_screen(self._screen + 1)
        return True

    def retreat_screen(self) -> bool:
        if not self.can_retreat():
            return False
        self._enter_screen(self._screen - 1)
        return True

    def submit_answer(self, raw: AnswerInput = None) -> bool:
        """Route an answer to the current screen's checker.

        Returns True when the gate passed. Screens without a literal checker
        (narrative screens, puzzle screens) ignore submissions.
        """

        screen = self.screen
        if screen is None:
            return False
        gate = screen.gate

        if isinstance(gate, AnswerGate):
            text = gate.match(raw) if isinstance(raw, str) else None
            if text is None:
                self._reject("answer rejected")
                return False
            # A correct answer is still held back until the paired puzzle is solved.
            if gate.requires_solved and not (self._widget is not None and self._widget.solved):
                logger.info("level %d answer denied: puzzle not solved", self._level)
                self._show_banner(gate.denied_text or "Access denied", BannerTone.NOTICE, self._cfg.notice_banner_s)
                return False
            self._pass_gate(gate.next_screen, text)
            return True

        if isinstance(gate, FieldsGate):
            if not isinstance(raw, Mapping) or not gate.matches(raw):
                self._reject("fields rejected")
                return False
            self._pass_gate(gate.next_screen, gate.feedback)
            return True

        if isinstance(gate, ContinueGate):
            self._pass_gate(gate.next_screen, gate.feedback)
            return True

        if raw is not None:
            logger.warning("submission ignored on level %d screen %d", self._level, self._screen)
        return False

    def toggle_perspective(self) -> Perspective:
        lvl = self.level
        if lvl is None or not lvl.perspectives:
            return self._perspective
        self._perspective = Perspective.B if self._perspective is Perspective.A else Perspective.A
        self._hint_visible = False
        self._hint_prompt_open = False
        return self._perspective

    def request_hint(self) -> None:
        if self.level is not None and not self._hint_visible:
            self._hint_prompt_open = True

    def confirm_hint(self) -> None:
        if not self._hint_prompt_open:
            return
        self._hint_prompt_open = False
        self._hint_visible = True

    def dismiss_hint(self) -> None:
        self._hint_prompt_open = False

    def restart(self) -> None:
        logger.info("restart requested at level %d", self._level)
        self._view_timers.cancel_all()
        self._banner = None
        self._error_flash = False
        self._mode = MachineMode.PLAYING
        self._level = 1
        self._perspective = Perspective.A
        self._reset_hints()
        self._enter_screen(1)
        self._emit(Restarted())

    def update(self) -> None:
        self._screen_timers.poll()
        self._view_timers.poll()
        if self._widget is not None:
            self._widget.update()

    def close(self) -> None:
        self._close_widget()
        self._screen_timers.close()
        self._view_timers.close()

    # -------------------------------------------------------------- internals

    def _seed_level(self, start_level: int) -> None:
        if start_level < 1:
            raise UnknownLevelError(f"invalid start level {start_level}")
        if start_level > self._catalog.count:
            self._level = start_level
            self._screen = 1
            self._mode = MachineMode.COMPLETE
            return
        self._level = start_level
        self._enter_screen(1, announce=False)

    def _enter_screen(self, index: int, *, announce: bool = True) -> None:
        self._close_widget()
        self._screen_timers.cancel_all()
        self._screen = index
        self._screen_entered_at_s = self._clock.now()
        screen = self.screen
        assert screen is not None

        self._screen_unlocked = screen.unlock_after_s <= 0.0
        if not self._screen_unlocked:
            self._screen_timers.schedule(screen.unlock_after_s, self._unlock_screen)
        if screen.puzzle is not None:
            self._widget = self._build_widget(screen.puzzle)

        logger.debug("entered level %d screen %d", self._level, self._screen)
        if announce:
            self._emit(ScreenChanged(self.progress))

    def _unlock_screen(self) -> None:
        self._screen_unlocked = True

    def _pass_gate(self, next_screen: int | None, text: str) -> None:
        if text:
            self._show_banner(text, BannerTone.SUCCESS, self._cfg.success_banner_s)
        if next_screen is not None:
            self._enter_screen(next_screen)
            return
        self._complete_level()

    def _complete_level(self) -> None:
        completed = self._level
        self._level = completed + 1
        self._perspective = Perspective.A
        self._reset_hints()
        logger.info("level %d complete", completed)

        if self._level > self._catalog.count:
            self._close_widget()
            self._screen_timers.cancel_all()
            self._screen = 1
            self._mode = MachineMode.COMPLETE
            self._emit(LevelComplete(level_number=completed, next_level=self._level))
            self._emit(GameCompleted(final_level=completed))
            return

        self._enter_screen(1, announce=False)
        self._emit(LevelComplete(level_number=completed, next_level=self._level))

    def _reject(self, reason: str) -> None:
        logger.debug("level %d screen %d: %s", self._level, self._screen, reason)
        self._feedback.play_error()
        self._flash_error()
        self._emit(AttemptFailed(level_number=self._level, screen_index=self._screen, reason=reason))

    def _reset_hints(self) -> None:
        self._hint_visible = False
        self._hint_prompt_open = False

    def _show_banner(self, text: str, tone: BannerTone, duration_s: float) -> None:
        if self._banner_timer is not None:
            self._banner_timer.cancel()
        self._banner = Banner(text=text, tone=tone)
        self._banner_timer = self._view_timers.schedule(duration_s, self._clear_banner)

    def _clear_banner(self) -> None:
        self._banner = None
        self._banner_timer = None

    def _flash_error(self) -> None:
        if self._flash_timer is not None:
            self._flash_timer.cancel()
        self._error_flash = True
        self._flash_timer = self._view_timers.schedule(self._cfg.error_flash_s, self._clear_flash)

    def _clear_flash(self) -> None:
        self._error_flash = False
        self._flash_timer = None

    def _close_widget(self) -> None:
        if self._widget is not None:
            self._widget.close()
            self._widget = None
        self._widget_generation += 1

    def _build_widget(self, kind: PuzzleKind) -> PuzzleBase:
        generation = self._widget_generation

        def on_success() -> None:
            if generation == self._widget_generation:
                self._on_puzzle_success(kind)

        def on_error(failure: FailureKind) -> None:
            if generation == self._widget_generation:
                self._on_puzzle_error(kind, failure)

        callbacks = PuzzleCallbacks(on_success=on_success, on_error=on_error)
        common = {"clock": self._clock, "feedback": self._feedback, "callbacks": callbacks}
        cfg = self._cfg
        if kind is PuzzleKind.ROTARY_LOCK:
            return RotaryLock(center=cfg.rotary_center, config=cfg.rotary_lock, **common)
        if kind is PuzzleKind.DUAL_KNOB:
            return DualKnobMatcher(config=cfg.dual_knob, **common)
        if kind is PuzzleKind.LETTER_RESTORATION:
            return LetterRestoration(seed=cfg.seed, config=cfg.letter_restoration, **common)
        if kind is PuzzleKind.JOYSTICK_SEQUENCE:
            return JoystickSequence(config=cfg.joystick_sequence, **common)
        if kind is PuzzleKind.ANOMALY_SCAN:
            return AnomalyScan(config=cfg.anomaly_scan, **common)
        raise ValueError(f"unknown puzzle kind: {kind}")

    def _on_puzzle_success(self, kind: PuzzleKind) -> None:
        screen = self.screen
        assert screen is not None
        gate = screen.gate
        logger.info("level %d puzzle %s solved", self._level, kind.value)
        if isinstance(gate, PuzzleGate):
            self._pass_gate(gate.next_screen, gate.feedback)
            return
        # Puzzle unlocks another checker on the same screen (e.g. Player B's answer).
        self._show_banner("Source integrity restored", BannerTone.SUCCESS, self._cfg.success_banner_s)

    def _on_puzzle_error(self, kind: PuzzleKind, failure: FailureKind) -> None:
        # The widget already played the error cue and recovered its own state.
        self._flash_error()
        if kind is PuzzleKind.ANOMALY_SCAN:
            self._show_banner("Target mismatch", BannerTone.ERROR, self._cfg.failure_banner_s)
        self._emit(PuzzleFailed(level_number=self._level, puzzle=kind, failure=failure))

    def _emit(self, event: MachineEvent) -> None:
        for listener in list(self._listeners):
            listener(event)
