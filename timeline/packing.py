"""
First-fit row packing.

Bars are placed into the lowest row where they collide with nothing already
placed. Collision uses closed intervals, so two bars that merely touch
(one's right edge equals the other's left edge) still go to different rows.
"""
from __future__ import annotations

import typing as t

from timeline.models import BarGeometry

K = t.TypeVar("K")


def intervals_overlap(a: BarGeometry, b: BarGeometry) -> bool:
    """Closed-interval intersection test; touching endpoints overlap."""
    return a.left <= b.right and b.left <= a.right


def first_fit_rows(bars: t.Iterable[tuple[K, BarGeometry]]) -> dict[K, int]:
    """
    Assign each bar to a row index.

    Bars are consumed in the order given; callers sort by start date first so
    the result is deterministic.

    :param bars: (key, geometry) pairs in placement order.
    :return: Mapping of key to its row index.
    """
    rows: list[list[BarGeometry]] = []
    assignment: dict[K, int] = {}

    for key, bar in bars:
        for row_index, row in enumerate(rows):
            if not any(intervals_overlap(bar, placed) for placed in row):
                row.append(bar)
                assignment[key] = row_index
                break
        else:
            rows.append([bar])
            assignment[key] = len(rows) - 1

    return assignment
