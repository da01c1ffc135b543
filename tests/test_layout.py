"""Tests for hierarchical timeline layout and the stateful layout engine.

Default metrics: root rows are 40px + 12px spacing (52px pitch), sub rows
are 34px + 4px spacing (38px pitch).
"""
from datetime import date

import pytest

from planner_server.models import Plan
from timeline.layout import TimelineLayoutEngine, compute_layout
from timeline.models import AxisConfig, RowMetrics

ROOT_PITCH = 52
SUB_PITCH = 38


def make_plan(plan_id: str, start: date, end: date, parent: str = None, **kwargs) -> Plan:
    return Plan(id=plan_id, name=plan_id.title(), start_date=start, end_date=end, parent_plan_id=parent, **kwargs)


@pytest.fixture
def family() -> list[Plan]:
    """A root with one child, which itself has one grandchild."""
    return [
        make_plan("root", date(2025, 1, 1), date(2025, 12, 31)),
        make_plan("child", date(2025, 2, 1), date(2025, 6, 30), parent="root"),
        make_plan("grandchild", date(2025, 3, 1), date(2025, 4, 30), parent="child"),
    ]


def test_collapsed_roots_stack_one_row_each() -> None:
    plans = [
        make_plan("a", date(2025, 1, 1), date(2025, 3, 31)),
        make_plan("b", date(2025, 2, 1), date(2025, 2, 10)),
        make_plan("c", date(2026, 1, 1), date(2026, 3, 31)),
    ]
    layout = compute_layout(plans)

    assert layout.root_offsets == {"a": 0, "b": ROOT_PITCH, "c": 2 * ROOT_PITCH}
    assert layout.total_height == 3 * ROOT_PITCH
    assert [bar.row for bar in layout.bars] == [0, 1, 2]


def test_roots_are_ordered_by_start_date_then_input_order() -> None:
    plans = [
        make_plan("late", date(2026, 1, 1), date(2026, 2, 1)),
        make_plan("first", date(2025, 1, 1), date(2025, 2, 1)),
        make_plan("second", date(2025, 1, 1), date(2025, 3, 1)),
    ]
    layout = compute_layout(plans)

    assert layout.visible_ids == ["first", "second", "late"]


def test_grandchild_height_accumulates_through_expanded_levels(family: list[Plan]) -> None:
    """Root + expanded child + expanded grandchild: 40+12 + 34+4 + 34+4."""
    layout = compute_layout(family, expanded={"root": True, "child": True})

    assert layout.total_height == 40 + 12 + 34 + 4 + 34 + 4
    assert layout.subtree_heights == {"root": 2 * SUB_PITCH, "child": SUB_PITCH}
    assert layout.bar_for("child").top == ROOT_PITCH
    assert layout.bar_for("grandchild").top == ROOT_PITCH + SUB_PITCH
    assert layout.bar_for("grandchild").depth == 2


def test_collapsed_subtrees_contribute_nothing(family: list[Plan]) -> None:
    # child is flagged expanded but its parent is not
    layout = compute_layout(family, expanded={"child": True})

    assert layout.total_height == ROOT_PITCH
    assert layout.visible_ids == ["root"]
    assert layout.bar_for("root").has_children


def test_overlapping_children_pack_into_separate_rows() -> None:
    plans = [
        make_plan("root", date(2025, 1, 1), date(2025, 6, 30)),
        make_plan("c1", date(2025, 1, 1), date(2025, 3, 31), parent="root"),
        make_plan("c2", date(2025, 2, 1), date(2025, 4, 30), parent="root"),
        make_plan("next", date(2025, 3, 1), date(2025, 9, 30)),
    ]
    layout = compute_layout(plans, expanded={"root": True})

    assert layout.bar_for("c1").row == 0
    assert layout.bar_for("c2").row == 1
    assert layout.bar_for("c1").top == ROOT_PITCH
    assert layout.bar_for("c2").top == ROOT_PITCH + SUB_PITCH
    assert layout.root_offsets["next"] == ROOT_PITCH + 2 * SUB_PITCH
    assert layout.total_height == 2 * ROOT_PITCH + 2 * SUB_PITCH


def test_disjoint_children_share_one_row() -> None:
    plans = [
        make_plan("root", date(2025, 1, 1), date(2025, 12, 31)),
        make_plan("jan", date(2025, 1, 1), date(2025, 1, 31), parent="root"),
        make_plan("may", date(2025, 5, 1), date(2025, 5, 31), parent="root"),
    ]
    layout = compute_layout(plans, expanded={"root": True})

    assert layout.bar_for("jan").row == layout.bar_for("may").row == 0
    assert layout.bar_for("jan").top == layout.bar_for("may").top
    assert layout.subtree_heights["root"] == SUB_PITCH


def test_root_offset_is_sum_of_preceding_root_heights() -> None:
    plans = [
        make_plan("r1", date(2025, 1, 1), date(2025, 12, 31)),
        make_plan("r1a", date(2025, 1, 1), date(2025, 2, 1), parent="r1"),
        make_plan("r1b", date(2025, 1, 15), date(2025, 3, 1), parent="r1"),
        make_plan("r2", date(2025, 2, 1), date(2025, 5, 1)),
        make_plan("r2a", date(2025, 2, 1), date(2025, 3, 1), parent="r2"),
        make_plan("r3", date(2025, 3, 1), date(2025, 4, 1)),
    ]
    layout = compute_layout(plans, expanded={"r1": True, "r2": True})

    heights = {root: ROOT_PITCH + layout.subtree_heights.get(root, 0) for root in ("r1", "r2", "r3")}
    assert layout.root_offsets["r1"] == 0
    assert layout.root_offsets["r2"] == heights["r1"]
    assert layout.root_offsets["r3"] == heights["r1"] + heights["r2"]
    assert layout.total_height == sum(heights.values())


def test_expanding_a_childless_plan_changes_nothing() -> None:
    plans = [make_plan("solo", date(2025, 1, 1), date(2025, 1, 31))]

    assert compute_layout(plans, expanded={"solo": True}).total_height == ROOT_PITCH


def test_out_of_range_plan_is_skipped_with_its_subtree() -> None:
    plans = [
        make_plan("old", date(2024, 1, 1), date(2025, 6, 30)),
        make_plan("old-child", date(2025, 1, 1), date(2025, 2, 1), parent="old"),
        make_plan("ok", date(2025, 1, 1), date(2025, 2, 1)),
    ]
    layout = compute_layout(plans, expanded={"old": True})

    assert layout.skipped == ["old"]
    assert layout.visible_ids == ["ok"]
    assert layout.total_height == ROOT_PITCH


def test_plan_with_missing_parent_is_an_orphan() -> None:
    plans = [
        make_plan("ok", date(2025, 1, 1), date(2025, 2, 1)),
        make_plan("lost", date(2025, 1, 1), date(2025, 2, 1), parent="gone"),
    ]
    layout = compute_layout(plans)

    assert layout.orphans == ["lost"]
    assert "lost" not in layout.visible_ids


def test_custom_metrics_and_axis() -> None:
    plans = [
        make_plan("root", date(2030, 1, 1), date(2030, 12, 31)),
        make_plan("child", date(2030, 1, 1), date(2030, 3, 31), parent="root"),
    ]
    layout = compute_layout(
        plans,
        expanded={"root": True},
        axis=AxisConfig(start_year=2030, years=1, cell_width=100),
        metrics=RowMetrics(root_row_height=20, root_row_spacing=0, sub_row_height=10, sub_row_spacing=0),
    )

    assert layout.total_width == 400
    assert layout.total_height == 30
    assert layout.bar_for("child").width == pytest.approx(100)


def test_bar_colours_follow_plan_colour_and_status() -> None:
    plans = [
        make_plan("picked", date(2025, 1, 1), date(2025, 2, 1), color="teal"),
        make_plan("done", date(2025, 1, 1), date(2025, 2, 1), status="completed"),
    ]
    layout = compute_layout(plans)

    assert layout.bar_for("picked").color == "#14b8a6"
    assert layout.bar_for("done").color == "#22c55e"


class TestTimelineLayoutEngine:
    """The engine recomputes the full layout on every change."""

    def test_collapse_reduces_height_by_subtree_height(self, family: list[Plan]) -> None:
        engine = TimelineLayoutEngine()
        engine.load(family)
        engine.expand("root")
        engine.expand("child")
        expanded_height = engine.layout.total_height
        child_subtree = engine.layout.subtree_heights["child"]

        engine.collapse("child")

        assert engine.layout.total_height == expanded_height - child_subtree
        assert "grandchild" not in engine.layout.visible_ids

    def test_expand_and_collapse_are_idempotent(self, family: list[Plan]) -> None:
        engine = TimelineLayoutEngine()
        engine.load(family)

        engine.expand("root")
        once = engine.layout.total_height
        engine.expand("root")
        assert engine.layout.total_height == once

        engine.collapse("root")
        engine.collapse("root")
        assert engine.layout.total_height == ROOT_PITCH
        assert not engine.is_expanded("root")

    def test_toggle_flips_one_plan(self, family: list[Plan]) -> None:
        engine = TimelineLayoutEngine()
        engine.load(family)

        assert engine.toggle("root") is True
        assert engine.layout.visible_ids == ["root", "child"]
        assert engine.toggle("root") is False
        assert engine.layout.visible_ids == ["root"]

    def test_remove_drops_the_whole_subtree(self, family: list[Plan]) -> None:
        engine = TimelineLayoutEngine()
        engine.load(family + [make_plan("other", date(2025, 5, 1), date(2025, 5, 2))])

        removed = engine.remove("child")

        assert removed == {"child", "grandchild"}
        assert sorted(plan.id for plan in engine.plans) == ["other", "root"]
        assert not engine.layout.bar_for("root").has_children

    def test_add_and_update_recompute(self) -> None:
        engine = TimelineLayoutEngine()
        engine.add(make_plan("a", date(2025, 1, 1), date(2025, 1, 31)))
        assert engine.layout.total_height == ROOT_PITCH

        engine.update(make_plan("a", date(2025, 4, 1), date(2025, 4, 30)))
        assert engine.layout.bar_for("a").left == pytest.approx(300)

    def test_descendants_survive_a_parent_cycle(self) -> None:
        engine = TimelineLayoutEngine()
        engine.load([
            make_plan("x", date(2025, 1, 1), date(2025, 2, 1), parent="y"),
            make_plan("y", date(2025, 1, 1), date(2025, 2, 1), parent="x"),
        ])

        assert engine.descendants_of("x") == ["y"]
        assert engine.layout.visible_ids == []

    def test_today_marker(self) -> None:
        engine = TimelineLayoutEngine(today=date(2025, 4, 1))
        engine.load([])

        assert engine.layout.today_offset == pytest.approx(300)
        assert engine.layout.total_height == 0
