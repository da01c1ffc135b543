"""Aggregate study statistics."""
from __future__ import annotations

import math
from datetime import date, timedelta
import typing as t

from planner_server.models import DailyMinutes, Plan, Stats, StudyLog


def start_of_week(day: date) -> date:
    """Sunday on or before `day`."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_stats(plans: t.Sequence[Plan], logs: t.Sequence[StudyLog], today: t.Optional[date] = None) -> Stats:
    """
    Summarise study time and plan progress.

    The daily average divides total minutes by the inclusive number of days
    between the oldest and newest log. The weekly trend covers the week
    (Sunday first) containing `today`.
    """
    today = today or date.today()
    total = sum(log.duration for log in logs)

    daily_average = 0
    if logs:
        log_days = sorted(log.date.date() for log in logs)
        span = (log_days[-1] - log_days[0]).days + 1
        daily_average = _round_half_up(total / span)

    minutes_by_day: dict[date, int] = {}
    for log in logs:
        day = log.date.date()
        minutes_by_day[day] = minutes_by_day.get(day, 0) + log.duration

    week_start = start_of_week(today)
    weekly_trend = []
    for offset in range(7):
        day = week_start + timedelta(days=offset)
        weekly_trend.append(DailyMinutes(day=day.strftime("%a"), minutes=minutes_by_day.get(day, 0)))

    return Stats(
        total_study_time=total,
        completed_plans=sum(1 for plan in plans if plan.status == "completed"),
        in_progress_plans=sum(1 for plan in plans if plan.status == "in-progress"),
        daily_average=daily_average,
        weekly_trend=weekly_trend,
    )
