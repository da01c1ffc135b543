"""
Data models for the timeline layout engine.

This module contains the dataclasses used to describe the quarter axis,
the horizontal bar of a plan, and the computed placement of every visible
plan on the timeline. None of these are persisted; they are rebuilt from the
plan list on every recomputation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
import typing as t


class PlanLike(t.Protocol):
    """Attributes the layout engine reads from a plan record."""
    id: str
    name: str
    start_date: date
    end_date: date
    status: str
    parent_plan_id: t.Optional[str]
    color: t.Optional[str]


@dataclass(frozen=True)
class AxisConfig:
    """Fixed horizontal axis: `years` calendar years split into quarter cells."""
    start_year: int = 2025
    years: int = 5
    cell_width: float = 300.0

    @property
    def end_year(self) -> int:
        """Last year (inclusive) covered by the axis."""
        return self.start_year + self.years - 1

    @property
    def cell_count(self) -> int:
        return self.years * 4

    @property
    def total_width(self) -> float:
        return self.cell_count * self.cell_width


@dataclass(frozen=True)
class QuarterCell:
    """One quarter of one year on the axis."""
    year: int
    quarter: int
    months: tuple[int, int, int]
    origin: float
    width: float

    @property
    def label(self) -> str:
        return f"Q{self.quarter} {self.year}"


@dataclass(frozen=True)
class AxisPosition:
    """A date mapped onto the axis: cell ordinal plus fraction (0-1) inside it."""
    cell_index: int
    offset: float


@dataclass(frozen=True)
class BarGeometry:
    """Horizontal extent of a plan bar in pixels."""
    left: float
    width: float

    @property
    def right(self) -> float:
        return self.left + self.width


@dataclass(frozen=True)
class RowMetrics:
    """Vertical sizes used when stacking root rows and nested sub rows."""
    root_row_height: float = 40.0
    root_row_spacing: float = 12.0
    sub_row_height: float = 34.0
    sub_row_spacing: float = 4.0

    @property
    def root_pitch(self) -> float:
        return self.root_row_height + self.root_row_spacing

    @property
    def sub_pitch(self) -> float:
        return self.sub_row_height + self.sub_row_spacing


@dataclass
class PlacedPlan:
    """
    A plan positioned on the timeline.

    `row` is the lane index among the plan's siblings (roots count every
    root as its own lane). `top` is absolute from the top of the timeline.
    """
    plan_id: str
    name: str
    parent_id: t.Optional[str]
    depth: int
    row: int
    left: float
    width: float
    top: float
    height: float
    color: str
    expanded: bool = False
    has_children: bool = False

    @property
    def right(self) -> float:
        return self.left + self.width


@dataclass
class TimelineLayout:
    """Result of one layout pass over the full plan list."""
    bars: list[PlacedPlan] = field(default_factory=list)
    root_offsets: dict[str, float] = field(default_factory=dict)
    subtree_heights: dict[str, float] = field(default_factory=dict)
    total_width: float = 0.0
    total_height: float = 0.0
    skipped: list[str] = field(default_factory=list)
    orphans: list[str] = field(default_factory=list)
    today_offset: t.Optional[float] = None

    def bar_for(self, plan_id: str) -> t.Optional[PlacedPlan]:
        for bar in self.bars:
            if bar.plan_id == plan_id:
                return bar
        return None

    @property
    def visible_ids(self) -> list[str]:
        return [bar.plan_id for bar in self.bars]
