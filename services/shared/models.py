"""
Shared Pydantic models for REST API serialization.

This module contains Pydantic equivalents of the dataclass models used by the
planner store and the timeline engine. Fields are snake_case in Python and
camelCase on the wire (`startDate`, `parentPlanId`, ...).
"""
from __future__ import annotations

from datetime import date, datetime
import typing as t

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


PlanStatus = t.Literal["not-started", "in-progress", "completed", "canceled"]


class ApiModel(BaseModel):
    """Base model: camelCase aliases, population by either name."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Auth Models
class RegisterRequest(ApiModel):
    """Request model for registering an account."""
    name: t.Optional[str] = None
    email: t.Optional[str] = None
    password: t.Optional[str] = None


class UserOut(ApiModel):
    """Public view of a user."""
    id: str
    name: str
    email: str


class RegisterResponse(ApiModel):
    """Response model for a successful registration."""
    success: bool = True
    message: str
    user: UserOut


class LoginRequest(ApiModel):
    """Request model for a credential login."""
    email: t.Optional[str] = None
    password: t.Optional[str] = None


class LoginResponse(ApiModel):
    """Signed session token plus the logged-in user."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut


# Plan Models
class PlanOut(ApiModel):
    """A plan as returned by the API."""
    id: str
    name: str
    description: t.Optional[str] = None
    start_date: date
    end_date: date
    status: PlanStatus = "not-started"
    progress: int = 0
    parent_plan_id: t.Optional[str] = None
    color: t.Optional[str] = None
    display_color: str = ""
    user_id: t.Optional[str] = None
    created_at: t.Optional[datetime] = None
    updated_at: t.Optional[datetime] = None


class CreatePlanRequest(ApiModel):
    """Request model for creating a plan or sub plan."""
    name: str
    description: t.Optional[str] = None
    start_date: date
    end_date: date
    color: t.Optional[str] = None
    parent_plan_id: t.Optional[str] = None


class UpdatePlanRequest(ApiModel):
    """Partial update; only fields present in the body are applied."""
    name: t.Optional[str] = None
    description: t.Optional[str] = None
    start_date: t.Optional[date] = None
    end_date: t.Optional[date] = None
    color: t.Optional[str] = None
    status: t.Optional[PlanStatus] = None
    progress: t.Optional[int] = None


class DeletePlanResponse(ApiModel):
    """Response model for a cascading plan delete."""
    message: str
    deleted_ids: list[str] = Field(default_factory=list)


class MigrationResponse(ApiModel):
    """Response model for assigning owner-less plans."""
    message: str
    migrated_count: int
    user: t.Optional[str] = None


# Study Log Models
class StudyLogOut(ApiModel):
    """A study session as returned by the API."""
    id: str
    title: str
    content: t.Optional[str] = None
    date: datetime
    duration: int
    plan_id: t.Optional[str] = None
    created_at: t.Optional[datetime] = None
    updated_at: t.Optional[datetime] = None


class CreateStudyLogRequest(ApiModel):
    """Request model for logging a study session."""
    title: str
    content: t.Optional[str] = None
    date: datetime
    duration: int = Field(ge=0)
    plan_id: t.Optional[str] = None


class UpdateStudyLogRequest(ApiModel):
    """Partial update of a study session."""
    title: t.Optional[str] = None
    content: t.Optional[str] = None
    date: t.Optional[datetime] = None
    duration: t.Optional[int] = Field(default=None, ge=0)
    plan_id: t.Optional[str] = None


class MessageResponse(ApiModel):
    """Plain confirmation message."""
    message: str


# Stats Models
class DailyMinutesOut(ApiModel):
    """Minutes studied on one weekday."""
    day: str
    minutes: int


class StatsResponse(ApiModel):
    """Aggregate statistics for the dashboard."""
    total_study_time: int
    completed_plans: int
    in_progress_plans: int
    daily_average: int
    weekly_trend: list[DailyMinutesOut] = Field(default_factory=list)


# Pomodoro Models
class PomodoroSettingsModel(ApiModel):
    """Pomodoro durations in minutes and long-break interval in sessions."""
    work_duration: int = 30
    break_duration: int = 5
    long_break_duration: int = 15
    long_break_interval: int = 4


class UpdatePomodoroSettingsRequest(ApiModel):
    """Partial merge into the pomodoro settings."""
    work_duration: t.Optional[int] = None
    break_duration: t.Optional[int] = None
    long_break_duration: t.Optional[int] = None
    long_break_interval: t.Optional[int] = None


# Timeline Models
class QuarterCellOut(ApiModel):
    """One quarter cell of the axis header."""
    year: int
    quarter: int
    label: str
    months: list[int]
    origin: float
    width: float


class PlacedPlanOut(ApiModel):
    """A plan bar positioned on the timeline."""
    plan_id: str
    name: str
    parent_id: t.Optional[str] = None
    depth: int
    row: int
    left: float
    width: float
    top: float
    height: float
    color: str
    expanded: bool = False
    has_children: bool = False


class TimelineResponse(ApiModel):
    """Full timeline layout for the current user's plans."""
    cells: list[QuarterCellOut] = Field(default_factory=list)
    bars: list[PlacedPlanOut] = Field(default_factory=list)
    root_offsets: dict[str, float] = Field(default_factory=dict)
    total_width: float
    total_height: float
    skipped: list[str] = Field(default_factory=list)
    orphans: list[str] = Field(default_factory=list)
    today_offset: t.Optional[float] = None
