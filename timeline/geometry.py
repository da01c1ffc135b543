"""Horizontal bar geometry for a plan's date range."""
from __future__ import annotations

from datetime import date
import typing as t

from timeline.axis import locate
from timeline.models import AxisConfig, BarGeometry

MIN_BAR_WIDTH = 10.0


def compute_bar(start: date, end: date, config: AxisConfig) -> t.Optional[BarGeometry]:
    """
    Compute the left edge and width of the bar drawn for [start, end].

    Both dates are mapped independently; the bar may span several quarter
    cells. A zero-length plan (start == end) and any very short plan are
    widened to MIN_BAR_WIDTH so they stay visible.

    :return: The bar, or None when either date falls outside the axis.
    """
    start_pos = locate(start, config)
    end_pos = locate(end, config, inclusive_end=True)
    if start_pos is None or end_pos is None:
        return None

    cell = config.cell_width
    left = start_pos.cell_index * cell + start_pos.offset * cell

    if start_pos.cell_index == end_pos.cell_index:
        if start == end:
            width = MIN_BAR_WIDTH
        else:
            width = (end_pos.offset - start_pos.offset) * cell
    else:
        width = (
            (end_pos.cell_index - start_pos.cell_index) * cell
            + end_pos.offset * cell
            - start_pos.offset * cell
        )

    return BarGeometry(left=left, width=max(width, MIN_BAR_WIDTH))
