from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from .geometry import Vec2
from .gestures import RotationState, begin_rotation, classify_rotation, tick_for_rotation
from .puzzle_core import FailureKind, FeedbackSink, PuzzleBase, PuzzleCallbacks
from .timers import Clock


@dataclass(frozen=True, slots=True)
class RotaryLockConfig:
    targets: tuple[int, ...] = (1, 5, 14)
    step_deg: float = 18.0
    tick_count: int = 20
    # Releases whose net rotation stays below this are treated as taps.
    min_motion_deg: float = 1.0
    layer_names: tuple[str, ...] = ("HEAD", "BODY", "LOWER BODY")


class DragOutcome(StrEnum):
    IGNORED = "ignored"
    TAP = "tap"
    LAYER_SOLVED = "layer_solved"
    SOLVED = "solved"
    REJECTED = "rejected"


class RotaryLock(PuzzleBase):
    """Tri-layer combination dial.

    The player drags the dial around ``center``; the tick under the pointer is
    compared to the current layer's target on release. Layers unlock strictly
    in order: only the current layer is ever compared.
    """

    def __init__(
        self,
        *,
        center: Vec2,
        clock: Clock,
        feedback: FeedbackSink | None = None,
        callbacks: PuzzleCallbacks | None = None,
        config: RotaryLockConfig | None = None,
    ) -> None:
        cfg = config or RotaryLockConfig()
        if not cfg.targets:
            raise ValueError("targets must not be empty")
        if cfg.step_deg <= 0.0:
            raise ValueError("step_deg must be > 0")
        if cfg.tick_count <= 0:
            raise ValueError("tick_count must be > 0")
        if any(not (0 <= t < cfg.tick_count) for t in cfg.targets):
            raise ValueError("targets must be in [0, tick_count)")
        if cfg.min_motion_deg < 0.0:
            raise ValueError("min_motion_deg must be >= 0")

        super().__init__(clock=clock, feedback=feedback, callbacks=callbacks)
        self._cfg = cfg
        self._center = center
        self._layer = 0
        self._unlocked = [False] * len(cfg.targets)
        self._rotation_deg = 0.0
        self._drag: RotationState | None = None

    @property
    def config(self) -> RotaryLockConfig:
        return self._cfg

    @property
    def center(self) -> Vec2:
        return self._center

    @property
    def current_layer(self) -> int:
        return self._layer

    @property
    def layer_name(self) -> str:
        names = self._cfg.layer_names
        return names[self._layer] if self._layer < len(names) else f"LAYER {self._layer + 1}"

    @property
    def unlocked_layers(self) -> tuple[bool, ...]:
        return tuple(self._unlocked)

    @property
    def rotation_deg(self) -> float:
        return self._rotation_deg

    @property
    def dragging(self) -> bool:
        return self._drag is not None

    @property
    def current_tick(self) -> int:
        return tick_for_rotation(self._rotation_deg, step_deg=self._cfg.step_deg, tick_count=self._cfg.tick_count)

    def move_center(self, center: Vec2) -> None:
        """Re-anchor after a layout change. Ignored while dragging."""

        if self._drag is None:
            self._center = center

    def begin_drag(self, pointer: Vec2) -> bool:
        if not self._accepting_input():
            return False
        self._drag = begin_rotation(
            self._center,
            pointer,
            step_deg=self._cfg.step_deg,
            tick_count=self._cfg.tick_count,
            current_rotation_deg=self._rotation_deg,
        )
        return True

    def drag_to(self, pointer: Vec2) -> int | None:
        """Track the pointer. Returns the new tick when a boundary was crossed."""

        if self._drag is None or not self._accepting_input():
            return None
        self._drag, emitted = classify_rotation(
            self._center,
            pointer,
            self._drag,
            step_deg=self._cfg.step_deg,
            tick_count=self._cfg.tick_count,
        )
        self._rotation_deg = self._drag.rotation_deg
        if emitted is not None:
            self._tick(f"tick {emitted}")
        return emitted

    def end_drag(self) -> DragOutcome:
        if self._drag is None or not self._accepting_input():
            return DragOutcome.IGNORED
        drag = self._drag
        self._drag = None

        if abs(drag.net_rotation_deg) < self._cfg.min_motion_deg:
            self._rotation_deg = 0.0
            return DragOutcome.TAP

        tick = self.current_tick
        self._rotation_deg = 0.0
        layer = self._layer
        if tick != self._cfg.targets[layer]:
            self._fail(FailureKind.TARGET_NOT_MET, f"layer {layer} tick {tick}")
            return DragOutcome.REJECTED

        self._unlocked[layer] = True
        if layer < len(self._cfg.targets) - 1:
            self._layer = layer + 1
            self._progress(f"layer {layer}")
            return DragOutcome.LAYER_SOLVED
        self._succeed(f"layer {layer}")
        return DragOutcome.SOLVED

    def cancel_drag(self) -> None:
        """Pointer left the dial without a release: snap back, no verdict."""

        self._drag = None
        self._rotation_deg = 0.0

    def _reset_state(self) -> None:
        self._layer = 0
        self._unlocked = [False] * len(self._cfg.targets)
        self._rotation_deg = 0.0
        self._drag = None
