"""
Quarter-axis coordinate mapping.

The timeline spans a fixed range of years. Each year is split into four
quarter cells of three months and every cell has the same pixel width. A date
maps to the cell holding its month plus a fraction inside that cell: each
month takes one third of the cell, and the day is placed proportionally to
the real length of its month.
"""
from __future__ import annotations

import calendar
from datetime import date
import typing as t

from timeline.models import AxisConfig, AxisPosition, QuarterCell

QUARTER_MONTHS: dict[int, tuple[int, int, int]] = {
    1: (1, 2, 3),
    2: (4, 5, 6),
    3: (7, 8, 9),
    4: (10, 11, 12),
}


def build_quarter_cells(config: AxisConfig) -> list[QuarterCell]:
    """Generate every (year, quarter) cell of the axis in display order."""
    cells: list[QuarterCell] = []
    for year_idx in range(config.years):
        year = config.start_year + year_idx
        for quarter, months in QUARTER_MONTHS.items():
            index = year_idx * 4 + (quarter - 1)
            cells.append(QuarterCell(
                year=year,
                quarter=quarter,
                months=months,
                origin=index * config.cell_width,
                width=config.cell_width,
            ))
    return cells


def cell_index_for(day: date, config: AxisConfig) -> t.Optional[int]:
    """Ordinal of the quarter cell holding `day`, or None when outside the axis."""
    if day.year < config.start_year or day.year > config.end_year:
        return None
    return (day.year - config.start_year) * 4 + (day.month - 1) // 3


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def locate(day: date, config: AxisConfig, inclusive_end: bool = False) -> t.Optional[AxisPosition]:
    """
    Map a date onto the axis.

    A start edge sits at the beginning of its day, so the elapsed part of the
    month is `day - 1`. With `inclusive_end` the edge sits at the end of the
    day instead, which is how a plan's last day is drawn.

    :param day: The date to map.
    :param config: Axis configuration.
    :param inclusive_end: Place the edge after the day rather than before it.
    :return: The cell ordinal and fractional offset, or None when not renderable.
    """
    index = cell_index_for(day, config)
    if index is None:
        return None

    month_in_quarter = (day.month - 1) % 3
    elapsed = day.day if inclusive_end else day.day - 1
    day_fraction = elapsed / days_in_month(day.year, day.month)
    return AxisPosition(cell_index=index, offset=(month_in_quarter + day_fraction) / 3)


def marker_offset(day: date, config: AxisConfig) -> t.Optional[float]:
    """Pixel x of the start of `day`, e.g. for the "today" marker line."""
    position = locate(day, config)
    if position is None:
        return None
    return (position.cell_index + position.offset) * config.cell_width
