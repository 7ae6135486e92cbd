from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .geometry import Vec2


@dataclass(frozen=True, slots=True)
class Zone:
    """Axis-aligned rectangle; edges count as inside."""

    left: float
    top: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("zone width/height must be >= 0")

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> Vec2:
        return Vec2(self.left + self.width / 2.0, self.top + self.height / 2.0)

    def contains(self, point: Vec2) -> bool:
        return self.left <= point.x <= self.right and self.top <= point.y <= self.bottom


def zone_at(point: Vec2, zones: Sequence[Zone]) -> int | None:
    """Index of the first zone containing ``point``."""

    for idx, zone in enumerate(zones):
        if zone.contains(point):
            return idx
    return None


def zones_hit(points: Iterable[Vec2], zones: Sequence[Zone]) -> frozenset[int]:
    """Indices of every zone containing at least one of ``points``.

    Overlapping zones are all credited by the same point.
    """

    hit: set[int] = set()
    for point in points:
        for idx, zone in enumerate(zones):
            if zone.contains(point):
                hit.add(idx)
    return frozenset(hit)


def to_percent(point: Vec2, frame: Zone) -> Vec2:
    """Convert an absolute point into percent coordinates of ``frame``."""

    if frame.width == 0 or frame.height == 0:
        raise ValueError("frame must have a non-zero size")
    return Vec2(
        (point.x - frame.left) / frame.width * 100.0,
        (point.y - frame.top) / frame.height * 100.0,
    )
