"""
Data models for the study planner.

This module contains the dataclasses used to represent users, study plans,
study logs and pomodoro settings held by the planner store.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
import typing as t


PlanStatus = t.Literal["not-started", "in-progress", "completed", "canceled"]
PLAN_STATUSES: tuple[str, ...] = t.get_args(PlanStatus)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_aware(value: datetime) -> datetime:
    """Attach UTC to a naive datetime; aware values keep their offset."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass
class User:
    """A registered account."""
    id: str
    name: str
    email: str
    password_hash: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Plan:
    """A study goal with a date range, optionally nested under a parent plan."""
    id: str
    name: str
    start_date: date
    end_date: date
    description: t.Optional[str] = None
    status: PlanStatus = "not-started"
    progress: int = 0  # 0-100
    parent_plan_id: t.Optional[str] = None
    color: t.Optional[str] = None
    user_id: t.Optional[str] = None  # None on plans created before ownership existed
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class StudyLog:
    """One completed study session."""
    id: str
    title: str
    date: datetime
    duration: int  # minutes
    content: t.Optional[str] = None
    plan_id: t.Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class PomodoroSettings:
    """Timer durations in minutes and the long-break interval in sessions."""
    work_duration: int = 30
    break_duration: int = 5
    long_break_duration: int = 15
    long_break_interval: int = 4


@dataclass
class DailyMinutes:
    """Study minutes for one weekday of the current week."""
    day: str
    minutes: int


@dataclass
class Stats:
    """Aggregate study statistics."""
    total_study_time: int = 0
    completed_plans: int = 0
    in_progress_plans: int = 0
    daily_average: int = 0
    weekly_trend: list[DailyMinutes] = field(default_factory=list)
