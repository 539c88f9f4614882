"""Pointer resolver: turn a pointer position into ranked drop collisions.

The resolver is an explicit, ordered list of collision tiers.  Each tier is a
plain function ``(pointer, targets) -> list[Collision]`` and the first tier
that returns anything wins:

1. direct hit on a task card (closest centre only);
2. task card overlapping the pointer's vicinity (best overlap only);
3. column hit with an expanded margin (all matching columns);
4. closest centre across every target.

Task precision wins when available so cards can be reordered, while column
drops stay easy to hit at the board edges where columns sit almost flush.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence

from loguru import logger

from .constants import COLUMN_HIT_MARGIN, POINTER_VICINITY
from .geometry import Point, Rect, distance
from .model import TaskStatus


class TargetKind(str, Enum):
    TASK = "task"
    COLUMN = "column"


@dataclass(frozen=True)
class DropTarget:
    """A registered card or column the dragged task can be released onto."""

    id: str
    kind: TargetKind
    rect: Rect

    @classmethod
    def task(cls, task_id: str, rect: Rect) -> "DropTarget":
        return cls(task_id, TargetKind.TASK, rect)

    @classmethod
    def column(cls, status: TaskStatus, rect: Rect) -> "DropTarget":
        return cls(status.value, TargetKind.COLUMN, rect)

    @property
    def is_column(self) -> bool:
        return self.kind == TargetKind.COLUMN


@dataclass(frozen=True)
class Collision:
    target: DropTarget
    score: float = 0.0
    tier: str = ""

    @property
    def id(self) -> str:
        return self.target.id

    @property
    def is_column(self) -> bool:
        return self.target.is_column


Strategy = Callable[[Point, Sequence[DropTarget]], list[Collision]]


# ---------------------------------------------------------------------------
# Tiers
# ---------------------------------------------------------------------------

def _task_targets(targets: Sequence[DropTarget]) -> list[DropTarget]:
    return [t for t in targets if t.kind == TargetKind.TASK]


def direct_task_hit(pointer: Point, targets: Sequence[DropTarget]) -> list[Collision]:
    hits = [
        Collision(t, distance(pointer, t.rect.center), "direct_task_hit")
        for t in _task_targets(targets)
        if t.rect.contains(pointer)
    ]
    if not hits:
        return []
    hits.sort(key=lambda c: c.score)
    return [hits[0]]


def make_task_rect_overlap(vicinity: float = POINTER_VICINITY) -> Strategy:
    """Build the overlap tier for a pointer vicinity of half-size *vicinity*."""

    def task_rect_overlap(pointer: Point, targets: Sequence[DropTarget]) -> list[Collision]:
        probe = Rect.around(pointer, vicinity)
        ranked: list[Collision] = []
        for target in _task_targets(targets):
            overlap = target.rect.intersection_area(probe)
            if overlap <= 0:
                continue
            union = target.rect.area + probe.area - overlap
            ratio = overlap / union if union else 0.0
            ranked.append(Collision(target, ratio, "task_rect_overlap"))
        if not ranked:
            return []
        # sort() is stable, so ties keep registration order
        ranked.sort(key=lambda c: c.score, reverse=True)
        return [ranked[0]]

    return task_rect_overlap


def make_expanded_column_hit(margin: float = COLUMN_HIT_MARGIN) -> Strategy:
    """Build the column tier with rectangles grown by *margin* on every side."""

    def expanded_column_hit(pointer: Point, targets: Sequence[DropTarget]) -> list[Collision]:
        return [
            Collision(t, distance(pointer, t.rect.center), "expanded_column_hit")
            for t in targets
            if t.is_column and t.rect.expanded(margin).contains(pointer)
        ]

    return expanded_column_hit


def closest_center(pointer: Point, targets: Sequence[DropTarget]) -> list[Collision]:
    ranked = [Collision(t, distance(pointer, t.rect.center), "closest_center") for t in targets]
    ranked.sort(key=lambda c: c.score)
    return ranked


def first_non_empty(strategies: Iterable[Strategy]) -> Strategy:
    """Compose tiers so that the first one producing collisions wins."""
    ordered = list(strategies)

    def resolve(pointer: Point, targets: Sequence[DropTarget]) -> list[Collision]:
        for strategy in ordered:
            found = strategy(pointer, targets)
            if found:
                return found
        return []

    return resolve


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

class PointerResolver:
    """Rank drop targets under the pointer.

    Parameters
    ----------
    column_margin:
        Slack added around each column rectangle before hit-testing.
    vicinity:
        Half-size of the square probe used by the overlap tier.
    """

    def __init__(
        self,
        column_margin: float = COLUMN_HIT_MARGIN,
        vicinity: float = POINTER_VICINITY,
    ) -> None:
        self.column_margin = column_margin
        self.vicinity = vicinity
        self.strategies: list[Strategy] = [
            direct_task_hit,
            make_task_rect_overlap(vicinity),
            make_expanded_column_hit(column_margin),
            closest_center,
        ]
        self._resolve = first_non_empty(self.strategies)

    @classmethod
    def from_config(cls, config: dict) -> "PointerResolver":
        return cls(
            column_margin=float(config.get("column_margin", COLUMN_HIT_MARGIN)),
            vicinity=float(config.get("vicinity", POINTER_VICINITY)),
        )

    def resolve(self, pointer: Point, targets: Sequence[DropTarget]) -> list[Collision]:
        collisions = self._resolve(pointer, targets)
        if collisions:
            logger.debug(
                "Pointer ({}, {}) resolved to {} via {}",
                pointer.x, pointer.y, collisions[0].id, collisions[0].tier,
            )
        return collisions

    def top(self, pointer: Point, targets: Sequence[DropTarget]) -> Optional[Collision]:
        collisions = self.resolve(pointer, targets)
        return collisions[0] if collisions else None
