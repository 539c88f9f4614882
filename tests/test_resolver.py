"""Tests for the pointer resolver tiers."""

from __future__ import annotations

import pytest

from task_workflow.geometry import Point, Rect
from task_workflow.model import TaskStatus
from task_workflow.resolver import (
    DropTarget,
    PointerResolver,
    closest_center,
    direct_task_hit,
    first_non_empty,
    make_expanded_column_hit,
    make_task_rect_overlap,
)


# Two adjacent columns, 200 wide, with a 4 unit gap, and cards inside them.
PENDING_COL = DropTarget.column(TaskStatus.PENDING, Rect(0, 0, 200, 600))
PROGRESS_COL = DropTarget.column(TaskStatus.IN_PROGRESS, Rect(204, 0, 200, 600))
CARD_A = DropTarget.task("a", Rect(10, 10, 180, 100))
CARD_B = DropTarget.task("b", Rect(10, 120, 180, 100))
CARD_C = DropTarget.task("c", Rect(214, 10, 180, 100))

TARGETS = [PENDING_COL, PROGRESS_COL, CARD_A, CARD_B, CARD_C]


@pytest.fixture
def resolver() -> PointerResolver:
    return PointerResolver()


class TestDirectHit:
    def test_task_beats_column(self, resolver: PointerResolver) -> None:
        result = resolver.resolve(Point(100, 60), TARGETS)
        assert [c.id for c in result] == ["a"]
        assert result[0].tier == "direct_task_hit"

    def test_overlapping_cards_pick_closest_center(self) -> None:
        big = DropTarget.task("big", Rect(0, 0, 400, 400))
        small = DropTarget.task("small", Rect(90, 90, 40, 40))
        result = direct_task_hit(Point(100, 100), [big, small])
        assert [c.id for c in result] == ["small"]

    def test_edges_are_inclusive(self) -> None:
        assert direct_task_hit(Point(10, 10), [CARD_A])


class TestOverlap:
    def test_near_miss_hits_card(self, resolver: PointerResolver) -> None:
        # 5 units below card A, inside the pointer vicinity but outside the card.
        result = resolver.resolve(Point(100, 115), [CARD_A, PENDING_COL])
        assert [c.id for c in result] == ["a"]
        assert result[0].tier == "task_rect_overlap"

    def test_returns_single_best_overlap(self) -> None:
        tier = make_task_rect_overlap(8)
        # Between card A (ends at y=110) and card B (starts at y=120), closer to B.
        result = tier(Point(100, 117), [CARD_A, CARD_B])
        assert [c.id for c in result] == ["b"]

    def test_empty_when_nothing_close(self) -> None:
        assert make_task_rect_overlap(8)(Point(100, 400), [CARD_A, CARD_B]) == []


class TestExpandedColumns:
    def test_gap_between_columns_is_droppable(self, resolver: PointerResolver) -> None:
        # x=202 lies in the gap; both expanded columns contain it.
        result = resolver.resolve(Point(202, 400), [PENDING_COL, PROGRESS_COL])
        assert [c.id for c in result] == ["PENDING", "IN_PROGRESS"]

    def test_margin_below_column(self) -> None:
        tier = make_expanded_column_hit(20)
        assert [c.id for c in tier(Point(100, 615), [PENDING_COL])] == ["PENDING"]
        assert tier(Point(100, 625), [PENDING_COL]) == []

    def test_custom_margin(self) -> None:
        resolver = PointerResolver(column_margin=0)
        result = resolver.resolve(Point(100, 615), [PENDING_COL, PROGRESS_COL])
        assert result[0].tier == "closest_center"


class TestFallback:
    def test_never_empty_with_targets(self, resolver: PointerResolver) -> None:
        result = resolver.resolve(Point(5000, 5000), TARGETS)
        assert len(result) == len(TARGETS)
        assert result[0].tier == "closest_center"

    def test_closest_center_ordering(self) -> None:
        result = closest_center(Point(300, 60), [CARD_A, CARD_C])
        assert [c.id for c in result] == ["c", "a"]

    def test_no_targets(self, resolver: PointerResolver) -> None:
        assert resolver.resolve(Point(0, 0), []) == []
        assert resolver.top(Point(0, 0), []) is None


def test_first_non_empty_stops_at_first_match() -> None:
    seen: list[str] = []

    def empty(pointer, targets):
        seen.append("empty")
        return []

    def hit(pointer, targets):
        seen.append("hit")
        return closest_center(pointer, targets)

    def never(pointer, targets):
        seen.append("never")
        return []

    result = first_non_empty([empty, hit, never])(Point(0, 0), [CARD_A])
    assert [c.id for c in result] == ["a"]
    assert seen == ["empty", "hit"]


def test_from_config() -> None:
    resolver = PointerResolver.from_config({"column_margin": 5, "vicinity": 2})
    assert resolver.column_margin == 5.0
    assert resolver.vicinity == 2.0
