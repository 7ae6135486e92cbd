from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Continue(Generic[T]):
    buffer: tuple[T, ...]


@dataclass(frozen=True, slots=True)
class Complete(Generic[T]):
    buffer: tuple[T, ...]


@dataclass(frozen=True, slots=True)
class Mismatch(Generic[T]):
    buffer: tuple[T, ...]
    position: int


MatchResult = Continue[T] | Complete[T] | Mismatch[T]


def is_prefix(buffer: Sequence[T], target: Sequence[T]) -> bool:
    if len(buffer) > len(target):
        return False
    return all(a == b for a, b in zip(buffer, target))


def feed(buffer: Sequence[T], symbol: T, target: Sequence[T]) -> MatchResult[T]:
    """Append ``symbol`` and compare the extended buffer against ``target``.

    ``Mismatch.buffer`` carries the rejected extension for reporting; callers
    restart from an empty buffer.
    """

    if not target:
        raise ValueError("target sequence must not be empty")
    extended = tuple(buffer) + (symbol,)
    if not is_prefix(extended, target):
        return Mismatch(buffer=extended, position=len(extended) - 1)
    if len(extended) == len(target):
        return Complete(buffer=extended)
    return Continue(buffer=extended)
