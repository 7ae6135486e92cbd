"""Continuous pointer motion -> discrete ticks and directions.

Everything here is a pure function of the current raw sample plus an
immutable state record. Re-running a classifier on an unchanged sample yields
the same state and emits nothing, so high-frequency move handlers can call it
freely without accumulating drift.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import StrEnum

from .geometry import Vec2, clamp_length, normalize_deg, pointer_angle_deg, signed_deg


class Direction(StrEnum):
    UP = "U"
    DOWN = "D"
    LEFT = "L"
    RIGHT = "R"

    @property
    def glyph(self) -> str:
        return _GLYPHS[self]


_GLYPHS = {
    Direction.UP: "^",
    Direction.DOWN: "v",
    Direction.LEFT: "<",
    Direction.RIGHT: ">",
}


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def tick_for_rotation(rotation_deg: float, *, step_deg: float, tick_count: int) -> int:
    """``round(normalizedRotation / step) mod tickCount``."""

    if step_deg <= 0.0:
        raise ValueError("step_deg must be > 0")
    if tick_count <= 0:
        raise ValueError("tick_count must be > 0")
    return round_half_up(normalize_deg(rotation_deg) / step_deg) % tick_count


@dataclass(frozen=True, slots=True)
class RotationState:
    """One drag of a rotary dial.

    ``offset_deg`` is captured at drag start so rotation is relative to where
    the pointer first touched the dial, not to the dial's zero mark.
    """

    offset_deg: float
    rotation_deg: float
    tick: int

    @property
    def net_rotation_deg(self) -> float:
        return signed_deg(self.rotation_deg)


def begin_rotation(
    center: Vec2,
    pointer: Vec2,
    *,
    step_deg: float,
    tick_count: int,
    current_rotation_deg: float = 0.0,
) -> RotationState:
    angle = pointer_angle_deg(center, pointer)
    return RotationState(
        offset_deg=angle - current_rotation_deg,
        rotation_deg=current_rotation_deg,
        tick=tick_for_rotation(current_rotation_deg, step_deg=step_deg, tick_count=tick_count),
    )


def classify_rotation(
    center: Vec2,
    pointer: Vec2,
    state: RotationState,
    *,
    step_deg: float,
    tick_count: int,
) -> tuple[RotationState, int | None]:
    """Reduce one pointer sample. Emits the new tick only when it changed."""

    rotation = pointer_angle_deg(center, pointer) - state.offset_deg
    tick = tick_for_rotation(rotation, step_deg=step_deg, tick_count=tick_count)
    emitted = tick if tick != state.tick else None
    return replace(state, rotation_deg=rotation, tick=tick), emitted


def track_stick(offset: Vec2, *, max_radius: float) -> Vec2:
    """Knob displacement for a pointer ``offset`` from the stick center."""

    if max_radius <= 0.0:
        raise ValueError("max_radius must be > 0")
    return clamp_length(offset, max_radius)


def classify_direction(vec: Vec2, *, threshold: float) -> Direction | None:
    """Axis-dominance classification of a released stick.

    A direction is recognised only when its own axis exceeds ``threshold`` and
    the perpendicular axis stays below it. Diagonals and small nudges yield
    None.
    """

    if vec.y < -threshold and abs(vec.x) < threshold:
        return Direction.UP
    if vec.x < -threshold and abs(vec.y) < threshold:
        return Direction.LEFT
    if vec.x > threshold and abs(vec.y) < threshold:
        return Direction.RIGHT
    if vec.y > threshold and abs(vec.x) < threshold:
        return Direction.DOWN
    return None


def parse_directions(text: str) -> tuple[Direction, ...]:
    """``"ULRL"`` -> (UP, LEFT, RIGHT, LEFT). Whitespace is ignored."""

    return tuple(Direction(ch) for ch in text.upper() if not ch.isspace())
