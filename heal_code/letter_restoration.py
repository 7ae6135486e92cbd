from __future__ import annotations

import logging
import random
import string
from dataclasses import dataclass, field
from enum import StrEnum

from .geometry import ORIGIN, Vec2, reflect_axis
from .puzzle_core import FeedbackSink, PuzzleBase, PuzzleCallbacks, PuzzleStatus
from .timers import Clock
from .zones import Zone

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LetterRestorationConfig:
    targets: tuple[str, ...] = ("E", "G", "O", "M")
    alphabet: str = string.ascii_uppercase
    # All coordinates are percent of the play field.
    spawn_min: float = 10.0
    spawn_max: float = 90.0
    bounds_min: float = 0.0
    bounds_max: float = 90.0
    max_speed: float = 0.1
    tick_s: float = 0.016
    drop_zone: Zone = Zone(left=40.0, top=37.5, width=20.0, height=25.0)
    # Letter glyph box used for pointer hit testing.
    token_size: float = 6.0
    completion_delay_s: float = 2.0


class DropOutcome(StrEnum):
    IGNORED = "ignored"
    INERT = "inert"
    CAPTURED = "captured"


@dataclass(slots=True)
class LetterToken:
    symbol: str
    position: Vec2
    velocity: Vec2
    is_target: bool
    captured: bool = False
    dragging: bool = False
    grab_offset: Vec2 = field(default=ORIGIN)


class LetterRestoration(PuzzleBase):
    """Drag the target letters out of a drifting alphabet into the core zone.

    Decoys and out-of-zone drops are inert: the letter just resumes drifting
    from where it was released. Target letters dropped in the zone are
    captured for good and leave the floating pool. Completion is signalled
    ``completion_delay_s`` after the last capture.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        seed: int,
        feedback: FeedbackSink | None = None,
        callbacks: PuzzleCallbacks | None = None,
        config: LetterRestorationConfig | None = None,
    ) -> None:
        cfg = config or LetterRestorationConfig()
        if not cfg.targets:
            raise ValueError("targets must not be empty")
        if len(set(cfg.targets)) != len(cfg.targets):
            raise ValueError("targets must be unique")
        if any(t not in cfg.alphabet for t in cfg.targets):
            raise ValueError("every target must be part of the alphabet")
        if cfg.bounds_max <= cfg.bounds_min:
            raise ValueError("bounds_max must be > bounds_min")
        if cfg.spawn_max <= cfg.spawn_min:
            raise ValueError("spawn_max must be > spawn_min")
        if cfg.tick_s <= 0.0:
            raise ValueError("tick_s must be > 0")

        super().__init__(clock=clock, feedback=feedback, callbacks=callbacks)
        self._cfg = cfg
        self._seed = int(seed)
        self._rng = random.Random(self._seed)
        self._tokens: dict[str, LetterToken] = {}
        self._restored: list[str] = []
        self._held: str | None = None
        self._spawn()

    @property
    def config(self) -> LetterRestorationConfig:
        return self._cfg

    @property
    def restored(self) -> tuple[str, ...]:
        return tuple(self._restored)

    @property
    def restoration_ratio(self) -> float:
        return len(self._restored) / float(len(self._cfg.targets))

    @property
    def held(self) -> str | None:
        return self._held

    def floating(self) -> list[LetterToken]:
        return [t for t in self._tokens.values() if not t.captured]

    def token(self, symbol: str) -> LetterToken:
        return self._tokens[symbol]

    def token_at(self, point: Vec2) -> str | None:
        """Topmost floating letter under ``point``, by glyph box."""

        size = self._cfg.token_size
        hit: str | None = None
        for tok in self._tokens.values():
            if tok.captured:
                continue
            p = tok.position
            if p.x <= point.x <= p.x + size and p.y <= point.y <= p.y + size:
                hit = tok.symbol
        return hit

    def grab(self, symbol: str, pointer: Vec2) -> bool:
        if not self._accepting_input() or self._held is not None:
            return False
        tok = self._tokens.get(symbol)
        if tok is None or tok.captured:
            return False
        tok.dragging = True
        tok.grab_offset = pointer - tok.position
        self._held = symbol
        return True

    def drag_to(self, pointer: Vec2) -> None:
        if self._held is None:
            return
        tok = self._tokens[self._held]
        tok.position = pointer - tok.grab_offset

    def release(self, pointer: Vec2) -> DropOutcome:
        if self._held is None:
            return DropOutcome.IGNORED
        tok = self._tokens[self._held]
        self._held = None
        tok.dragging = False
        tok.grab_offset = ORIGIN

        if tok.is_target and not tok.captured and self._cfg.drop_zone.contains(pointer):
            tok.captured = True
            self._restored.append(tok.symbol)
            self._progress(tok.symbol)
            if len(self._restored) == len(self._cfg.targets):
                self._status = PuzzleStatus.RESOLVING
                self._timers.schedule(self._cfg.completion_delay_s, self._complete)
            return DropOutcome.CAPTURED
        return DropOutcome.INERT

    def _complete(self) -> None:
        logger.debug("all %d letters restored", len(self._restored))
        self._succeed("".join(self._restored))

    def _step(self) -> None:
        lo = self._cfg.bounds_min
        hi = self._cfg.bounds_max
        for tok in self._tokens.values():
            if tok.captured or tok.dragging:
                continue
            x, vx = reflect_axis(tok.position.x, tok.velocity.x, lo, hi)
            y, vy = reflect_axis(tok.position.y, tok.velocity.y, lo, hi)
            tok.position = Vec2(x, y)
            tok.velocity = Vec2(vx, vy)

    def _spawn(self) -> None:
        cfg = self._cfg
        targets = set(cfg.targets)
        # Decoys first, targets last, each symbol once.
        order = [c for c in dict.fromkeys(cfg.alphabet) if c not in targets] + list(cfg.targets)
        self._tokens = {}
        for symbol in order:
            pos = Vec2(
                self._rng.uniform(cfg.spawn_min, cfg.spawn_max),
                self._rng.uniform(cfg.spawn_min, cfg.spawn_max),
            )
            vel = Vec2(
                self._rng.uniform(-cfg.max_speed, cfg.max_speed),
                self._rng.uniform(-cfg.max_speed, cfg.max_speed),
            )
            self._tokens[symbol] = LetterToken(symbol=symbol, position=pos, velocity=vel, is_target=symbol in targets)
        self._timers.schedule_repeating(cfg.tick_s, self._step)

    def _reset_state(self) -> None:
        self._restored = []
        self._held = None
        self._rng = random.Random(self._seed)
        self._spawn()
