from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Vec2:
    x: float
    y: float

    def __add__(self, other: Vec2) -> Vec2:
        return Vec2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vec2) -> Vec2:
        return Vec2(self.x - other.x, self.y - other.y)

    def scaled(self, factor: float) -> Vec2:
        return Vec2(self.x * factor, self.y * factor)

    def length(self) -> float:
        return math.hypot(self.x, self.y)


ORIGIN = Vec2(0.0, 0.0)


def pointer_angle_deg(center: Vec2, point: Vec2) -> float:
    """Screen-space angle of ``point`` around ``center`` in degrees (-180, 180].

    Screen y grows downward, so positive angles turn clockwise on screen.
    """

    return math.degrees(math.atan2(point.y - center.y, point.x - center.x))


def normalize_deg(angle: float) -> float:
    """Map any angle onto [0, 360)."""

    out = math.fmod(float(angle), 360.0)
    if out < 0.0:
        out += 360.0
    # fmod of a tiny negative can land exactly on 360.0 after the add.
    return 0.0 if out >= 360.0 else out


def signed_deg(angle: float) -> float:
    """Map any angle onto (-180, 180]."""

    out = normalize_deg(angle)
    return out - 360.0 if out > 180.0 else out


def wrap_index(value: int, modulus: int) -> int:
    if modulus <= 0:
        raise ValueError("modulus must be > 0")
    return int(value) % int(modulus)


def clamp(value: float, lo: float, hi: float) -> float:
    return lo if value < lo else hi if value > hi else float(value)


def clamp_length(vec: Vec2, max_length: float) -> Vec2:
    """Scale ``vec`` down so its length does not exceed ``max_length``."""

    dist = vec.length()
    if dist <= max_length or dist == 0.0:
        return vec
    return vec.scaled(max_length / dist)


def reflect_axis(position: float, velocity: float, lo: float, hi: float) -> tuple[float, float]:
    """Advance one axis by ``velocity`` inside [lo, hi], inverting at a wall.

    A position already past a wall drifts back inside from where it is.
    """

    if position < lo:
        velocity = abs(velocity)
        return position + velocity, velocity
    if position > hi:
        velocity = -abs(velocity)
        return position + velocity, velocity
    nxt = position + velocity
    if nxt < lo:
        return lo + (lo - nxt), abs(velocity)
    if nxt > hi:
        return hi - (nxt - hi), -abs(velocity)
    return nxt, velocity
