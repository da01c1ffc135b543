"""Tests for bar geometry and first-fit row packing."""
from datetime import date

import pytest

from timeline.geometry import MIN_BAR_WIDTH, compute_bar
from timeline.models import AxisConfig, BarGeometry
from timeline.packing import first_fit_rows, intervals_overlap


def test_single_day_plan_gets_minimum_width() -> None:
    """A one-day plan on 2025-01-10 sits at the day-10 offset of Q1 2025."""
    bar = compute_bar(date(2025, 1, 10), date(2025, 1, 10), AxisConfig())

    assert bar.width == MIN_BAR_WIDTH == 10
    assert bar.left == pytest.approx(300 * (9 / 31) / 3)
    assert 0 <= bar.left < 300


def test_bar_crossing_a_quarter_boundary() -> None:
    """Feb 15 to May 15 starts in Q1 2025 and extends into Q2 2025."""
    bar = compute_bar(date(2025, 2, 15), date(2025, 5, 15), AxisConfig())

    start_offset = 1.5 / 3
    end_offset = (1 + 15 / 31) / 3
    assert bar.left == pytest.approx(150)
    assert bar.width == pytest.approx((1 - 0) * 300 + end_offset * 300 - start_offset * 300)
    assert 300 < bar.right < 600


def test_same_cell_width_is_difference_of_offsets() -> None:
    bar = compute_bar(date(2025, 1, 1), date(2025, 3, 31), AxisConfig())

    assert bar.left == 0
    assert bar.width == pytest.approx(300)


def test_short_plan_is_clamped_to_minimum_width() -> None:
    """Two days in a 31-day month is under 10px on a 300px quarter."""
    bar = compute_bar(date(2025, 1, 10), date(2025, 1, 11), AxisConfig())

    assert bar.width == MIN_BAR_WIDTH


def test_multi_year_plan() -> None:
    bar = compute_bar(date(2025, 1, 1), date(2026, 12, 31), AxisConfig())

    assert bar.left == 0
    assert bar.width == pytest.approx(2400)


def test_out_of_range_plan_has_no_bar() -> None:
    config = AxisConfig()

    assert compute_bar(date(2024, 11, 1), date(2025, 2, 1), config) is None
    assert compute_bar(date(2029, 11, 1), date(2030, 2, 1), config) is None


def test_touching_intervals_overlap() -> None:
    a = BarGeometry(left=0, width=10)
    b = BarGeometry(left=10, width=10)
    c = BarGeometry(left=20.5, width=10)

    assert intervals_overlap(a, b)
    assert intervals_overlap(b, a)
    assert not intervals_overlap(a, c)


def test_overlapping_siblings_get_rows_zero_and_one() -> None:
    config = AxisConfig()
    first = compute_bar(date(2025, 1, 1), date(2025, 2, 28), config)
    second = compute_bar(date(2025, 2, 1), date(2025, 3, 31), config)

    rows = first_fit_rows([("first", first), ("second", second)])

    assert rows == {"first": 0, "second": 1}


def test_first_fit_reuses_the_lowest_free_row() -> None:
    rows = first_fit_rows([
        ("a", BarGeometry(left=0, width=100)),
        ("b", BarGeometry(left=50, width=100)),
        ("c", BarGeometry(left=120, width=20)),
        ("d", BarGeometry(left=160, width=20)),
    ])

    # c and d clear a, so both drop back to row 0
    assert rows == {"a": 0, "b": 1, "c": 0, "d": 0}


def test_touching_bars_never_share_a_row() -> None:
    rows = first_fit_rows([
        ("a", BarGeometry(left=0, width=10)),
        ("b", BarGeometry(left=10, width=10)),
    ])

    assert rows == {"a": 0, "b": 1}
