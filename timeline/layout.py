"""
Hierarchical timeline layout.

Plans form a forest. Root plans each get a dedicated lane; the direct
children of a plan are packed first-fit into sub rows beneath it, and the
same rule applies recursively to deeper levels. Only expanded plans show
their children, so the vertical cursor advances by the height of expanded
subtrees only. A layout is always recomputed from scratch.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
import typing as t

from timeline.axis import marker_offset
from timeline.colors import display_color
from timeline.geometry import compute_bar
from timeline.models import (
    AxisConfig,
    BarGeometry,
    PlacedPlan,
    PlanLike,
    RowMetrics,
    TimelineLayout,
)
from timeline.packing import first_fit_rows

logger = logging.getLogger(__name__)


@dataclass
class _Index:
    """Flat arena over the plan list: id map, parent index and input order."""
    plans: dict[str, PlanLike]
    children: dict[t.Optional[str], list[str]]
    order: dict[str, int]

    @classmethod
    def build(cls, plans: t.Iterable[PlanLike]) -> "_Index":
        by_id: dict[str, PlanLike] = {}
        children: dict[t.Optional[str], list[str]] = {}
        order: dict[str, int] = {}
        for position, plan in enumerate(plans):
            by_id[plan.id] = plan
            order[plan.id] = position
        for plan_id, plan in by_id.items():
            children.setdefault(plan.parent_plan_id, []).append(plan_id)
        return cls(plans=by_id, children=children, order=order)

    def sorted_by_start(self, plan_ids: t.Iterable[str]) -> list[str]:
        # Stable: equal start dates keep input order
        return sorted(plan_ids, key=lambda pid: (self.plans[pid].start_date, self.order[pid]))


def compute_layout(
        plans: t.Iterable[PlanLike],
        expanded: t.Optional[t.Mapping[str, bool]] = None,
        axis: t.Optional[AxisConfig] = None,
        metrics: t.Optional[RowMetrics] = None,
        today: t.Optional[date] = None,
) -> TimelineLayout:
    """
    Lay out every visible plan.

    :param plans: All plan records; children reference parents through `parent_plan_id`.
    :param expanded: Plan id to expanded flag; missing ids are collapsed.
    :param axis: Axis configuration (defaults to 2025 + 5 years, 300 px cells).
    :param metrics: Row heights and spacings.
    :param today: When given, the pixel x of this day is reported as `today_offset`.
    :return: A TimelineLayout with absolute positions of visible bars.
    """
    axis = axis or AxisConfig()
    metrics = metrics or RowMetrics()
    expanded = expanded or {}
    index = _Index.build(plans)

    layout = TimelineLayout(total_width=axis.total_width)
    geometry: dict[str, BarGeometry] = {}
    for plan_id, plan in index.plans.items():
        bar = compute_bar(plan.start_date, plan.end_date, axis)
        if bar is None:
            logger.debug("Skipping plan %s: dates outside %s-%s", plan_id, axis.start_year, axis.end_year)
            layout.skipped.append(plan_id)
            continue
        geometry[plan_id] = bar

    for parent_id in index.children:
        if parent_id is not None and parent_id not in index.plans:
            layout.orphans.extend(index.children[parent_id])

    def renderable_children(plan_id: str) -> list[str]:
        return [cid for cid in index.children.get(plan_id, []) if cid in geometry]

    def is_open(plan_id: str) -> bool:
        return bool(expanded.get(plan_id)) and bool(renderable_children(plan_id))

    def place(plan_id: str, depth: int, row: int, top: float, height: float) -> None:
        plan = index.plans[plan_id]
        bar = geometry[plan_id]
        layout.bars.append(PlacedPlan(
            plan_id=plan_id,
            name=plan.name,
            parent_id=plan.parent_plan_id,
            depth=depth,
            row=row,
            left=bar.left,
            width=bar.width,
            top=top,
            height=height,
            color=display_color(plan),
            expanded=bool(expanded.get(plan_id)),
            has_children=bool(index.children.get(plan_id)),
        ))

    def place_children(parent_id: str, top: float, depth: int) -> float:
        """Place the children of an expanded plan below `top`; return height used."""
        child_ids = index.sorted_by_start(renderable_children(parent_id))
        rows = first_fit_rows((cid, geometry[cid]) for cid in child_ids)

        lanes: dict[int, list[str]] = {}
        for cid in child_ids:
            lanes.setdefault(rows[cid], []).append(cid)

        cursor = top
        for row_index in sorted(lanes):
            for cid in lanes[row_index]:
                place(cid, depth, row_index, cursor, metrics.sub_row_height)
            cursor += metrics.sub_pitch
            for cid in lanes[row_index]:
                if is_open(cid):
                    nested = place_children(cid, cursor, depth + 1)
                    layout.subtree_heights[cid] = nested
                    cursor += nested
        return cursor - top

    roots = index.sorted_by_start(pid for pid in index.children.get(None, []) if pid in geometry)
    cursor = 0.0
    for row_index, root_id in enumerate(roots):
        layout.root_offsets[root_id] = cursor
        place(root_id, 0, row_index, cursor, metrics.root_row_height)
        cursor += metrics.root_pitch
        if is_open(root_id):
            nested = place_children(root_id, cursor, 1)
            layout.subtree_heights[root_id] = nested
            cursor += nested

    layout.total_height = cursor
    if today is not None:
        layout.today_offset = marker_offset(today, axis)
    return layout


class TimelineLayoutEngine:
    """
    Stateful wrapper around `compute_layout`.

    Holds the current plan list (as a flat id map with a parent index) and
    the expand/collapse state. Every change, whether a plan mutation or a
    toggle, triggers a full recomputation, and `layout` always reflects the
    current state.
    """

    def __init__(
            self,
            axis: t.Optional[AxisConfig] = None,
            metrics: t.Optional[RowMetrics] = None,
            today: t.Optional[date] = None,
    ) -> None:
        self.axis = axis or AxisConfig()
        self.metrics = metrics or RowMetrics()
        self.today = today
        self._plans: dict[str, PlanLike] = {}
        self._expanded: dict[str, bool] = {}
        self._layout = TimelineLayout(total_width=self.axis.total_width)

    @property
    def layout(self) -> TimelineLayout:
        return self._layout

    @property
    def plans(self) -> list[PlanLike]:
        return list(self._plans.values())

    def load(self, plans: t.Iterable[PlanLike]) -> TimelineLayout:
        """Replace the whole plan list."""
        self._plans = {plan.id: plan for plan in plans}
        self._expanded = {pid: flag for pid, flag in self._expanded.items() if pid in self._plans}
        return self.recompute()

    def add(self, plan: PlanLike) -> TimelineLayout:
        self._plans[plan.id] = plan
        return self.recompute()

    def update(self, plan: PlanLike) -> TimelineLayout:
        """Replace a plan record in place, keeping its input position."""
        self._plans[plan.id] = plan
        return self.recompute()

    def remove(self, plan_id: str) -> set[str]:
        """Drop a plan and its whole subtree; return the removed ids."""
        removed = {plan_id, *self.descendants_of(plan_id)}
        for pid in removed:
            self._plans.pop(pid, None)
            self._expanded.pop(pid, None)
        self.recompute()
        return removed

    def children_of(self, plan_id: t.Optional[str]) -> list[PlanLike]:
        return [plan for plan in self._plans.values() if plan.parent_plan_id == plan_id]

    def descendants_of(self, plan_id: str) -> list[str]:
        """Ids of every transitive descendant, parents before children."""
        index = _Index.build(self._plans.values())
        found: list[str] = []
        seen = {plan_id}
        stack = list(reversed(index.children.get(plan_id, [])))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            found.append(current)
            stack.extend(reversed(index.children.get(current, [])))
        return found

    def is_expanded(self, plan_id: str) -> bool:
        return self._expanded.get(plan_id, False)

    def toggle(self, plan_id: str) -> bool:
        """Flip the expand state of one plan; return the new state."""
        state = not self.is_expanded(plan_id)
        self._expanded[plan_id] = state
        self.recompute()
        return state

    def expand(self, plan_id: str) -> TimelineLayout:
        self._expanded[plan_id] = True
        return self.recompute()

    def collapse(self, plan_id: str) -> TimelineLayout:
        self._expanded[plan_id] = False
        return self.recompute()

    def recompute(self) -> TimelineLayout:
        self._layout = compute_layout(
            self._plans.values(),
            expanded=self._expanded,
            axis=self.axis,
            metrics=self.metrics,
            today=self.today,
        )
        return self._layout
