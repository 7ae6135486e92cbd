from __future__ import annotations

from dataclasses import dataclass

from .geometry import Vec2
from .puzzle_core import FailureKind, FeedbackSink, PuzzleBase, PuzzleCallbacks
from .timers import Clock
from .zones import Zone, zones_hit

# Anomalies in the gallery backup image, percent of the image.
DEFAULT_ANOMALY_ZONES: tuple[Zone, ...] = (
    Zone(left=36, top=29, width=10, height=12),
    Zone(left=41, top=45, width=8, height=11),
    Zone(left=4, top=67, width=9, height=12),
    Zone(left=50, top=65, width=10, height=15),
    Zone(left=75, top=59, width=9, height=12),
    Zone(left=81, top=34, width=9, height=13),
)


@dataclass(frozen=True, slots=True)
class AnomalyScanConfig:
    zones: tuple[Zone, ...] = DEFAULT_ANOMALY_ZONES
    max_markers: int = 6


class AnomalyScan(PuzzleBase):
    """Place a bounded number of markers, then purge.

    A purge succeeds only if every anomaly zone holds at least one marker.
    A failed purge wipes the markers so the player starts clean.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        feedback: FeedbackSink | None = None,
        callbacks: PuzzleCallbacks | None = None,
        config: AnomalyScanConfig | None = None,
    ) -> None:
        cfg = config or AnomalyScanConfig()
        if not cfg.zones:
            raise ValueError("zones must not be empty")
        if cfg.max_markers < len(cfg.zones):
            raise ValueError("max_markers must cover every zone")

        super().__init__(clock=clock, feedback=feedback, callbacks=callbacks)
        self._cfg = cfg
        self._markers: list[Vec2] = []
        self._cleared: frozenset[int] = frozenset()

    @property
    def config(self) -> AnomalyScanConfig:
        return self._cfg

    @property
    def markers(self) -> tuple[Vec2, ...]:
        return tuple(self._markers)

    @property
    def cleared_zones(self) -> frozenset[int]:
        return self._cleared

    def place_marker(self, point: Vec2) -> bool:
        if not self._accepting_input():
            return False
        if len(self._markers) >= self._cfg.max_markers:
            return False
        self._markers.append(point)
        self._feedback.play_click()
        return True

    def clear_markers(self) -> None:
        if self._accepting_input():
            self._markers = []

    def purge(self) -> bool:
        if not self._accepting_input():
            return False
        hit = zones_hit(self._markers, self._cfg.zones)
        if len(hit) == len(self._cfg.zones):
            self._cleared = hit
            self._feedback.play_click()
            self._succeed(f"{len(hit)} zones")
            return True
        self._markers = []
        self._fail(FailureKind.TARGET_NOT_MET, f"{len(hit)}/{len(self._cfg.zones)} zones")
        return False

    def _reset_state(self) -> None:
        self._markers = []
        self._cleared = frozenset()
