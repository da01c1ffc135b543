"""
HTTP client for the planner service.

Every call goes through `_request`, which attaches the bearer token, encodes
bodies with the shared Pydantic models (camelCase on the wire) and turns
non-2xx responses back into the typed errors of `planner_server.errors`.
Results are converted to the dataclass models used by the layout engine.
"""
from __future__ import annotations

import os
from datetime import date, datetime
import typing as t

import httpx

from planner_server.errors import PlannerServiceError, error_for_status
from planner_server.models import DailyMinutes, Plan, PomodoroSettings, Stats, StudyLog, utcnow
from services.shared.models import (
    CreatePlanRequest,
    CreateStudyLogRequest,
    DeletePlanResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    MigrationResponse,
    PlanOut,
    PomodoroSettingsModel,
    RegisterRequest,
    RegisterResponse,
    StatsResponse,
    StudyLogOut,
    TimelineResponse,
    UpdatePlanRequest,
    UpdatePomodoroSettingsRequest,
    UpdateStudyLogRequest,
    UserOut,
)

# Service URL - configurable via environment variable
PLANNER_SERVICE_URL = os.getenv("PLANNER_SERVICE_URL", "http://localhost:8000")
PLANNER_TOKEN = os.getenv("PLANNER_TOKEN")

# Timeout settings for fast operations (in seconds)
STANDARD_TIMEOUT = 30.0


class PlannerClient:
    """
    Plan repository backed by the planner REST service.

    :param base_url: Root URL of the service.
    :param token: Session token sent as `Authorization: Bearer`.
    :param timeout: Per-request timeout in seconds.
    :param http_client: Optional pre-built `httpx.Client` (e.g. FastAPI's
        TestClient); a short-lived client is opened per call otherwise.
    """

    def __init__(
            self,
            base_url: str = PLANNER_SERVICE_URL,
            token: t.Optional[str] = PLANNER_TOKEN,
            timeout: float = STANDARD_TIMEOUT,
            http_client: t.Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._http = http_client

    def _request(
            self,
            method: str,
            path: str,
            json: t.Any = None,
            params: t.Any = None,
    ) -> t.Any:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        url = f"{self.base_url}{path}"
        try:
            if self._http is not None:
                response = self._http.request(method, url, json=json, params=params, headers=headers)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    response = client.request(method, url, json=json, params=params, headers=headers)
        except httpx.TimeoutException:
            raise PlannerServiceError(f"{method} {path} timed out after {self.timeout} seconds")
        except httpx.RequestError as e:
            raise PlannerServiceError(f"Error calling planner service: {e}")

        if response.is_error:
            raise error_for_status(response.status_code, _error_message(response))
        return response.json()

    # Auth

    def register(self, name: str, email: str, password: str) -> UserOut:
        request = RegisterRequest(name=name, email=email, password=password)
        result = self._request("POST", "/api/auth/register", json=request.model_dump(by_alias=True))
        return RegisterResponse.model_validate(result).user

    def login(self, email: str, password: str) -> LoginResponse:
        """Log in and keep the returned token for subsequent calls."""
        request = LoginRequest(email=email, password=password)
        result = LoginResponse.model_validate(
            self._request("POST", "/api/auth/login", json=request.model_dump(by_alias=True))
        )
        self.token = result.access_token
        return result

    def session(self) -> UserOut:
        return UserOut.model_validate(self._request("GET", "/api/auth/session"))

    # Plans

    def list_plans(self) -> list[Plan]:
        """Plans of the current user, newest first."""
        return [_plan_from_wire(PlanOut.model_validate(item)) for item in self._request("GET", "/api/plans")]

    def get_plan(self, plan_id: str) -> Plan:
        return _plan_from_wire(PlanOut.model_validate(self._request("GET", f"/api/plans/{plan_id}")))

    def create_plan(
            self,
            name: str,
            start_date: date,
            end_date: date,
            description: t.Optional[str] = None,
            color: t.Optional[str] = None,
            parent_plan_id: t.Optional[str] = None,
    ) -> Plan:
        request = CreatePlanRequest(
            name=name,
            start_date=start_date,
            end_date=end_date,
            description=description,
            color=color,
            parent_plan_id=parent_plan_id,
        )
        result = self._request("POST", "/api/plans", json=request.model_dump(mode="json", by_alias=True, exclude_none=True))
        return _plan_from_wire(PlanOut.model_validate(result))

    def update_plan(self, plan_id: str, **changes: t.Any) -> Plan:
        """
        Partially update a plan.

        Only the keyword arguments given are sent, e.g.
        `update_plan(plan_id, status="completed", progress=100)`.
        """
        request = UpdatePlanRequest(**changes)
        result = self._request(
            "PATCH",
            f"/api/plans/{plan_id}",
            json=request.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return _plan_from_wire(PlanOut.model_validate(result))

    def delete_plan(self, plan_id: str) -> list[str]:
        """Delete a plan and its subtree; return every removed id."""
        result = DeletePlanResponse.model_validate(self._request("DELETE", f"/api/plans/{plan_id}"))
        return result.deleted_ids

    def migrate_plans(self) -> int:
        return MigrationResponse.model_validate(self._request("POST", "/api/admin/migrate-plans")).migrated_count

    # Study logs

    def list_study_logs(self, plan_id: t.Optional[str] = None) -> list[StudyLog]:
        params = {"planId": plan_id} if plan_id else None
        return [
            _study_log_from_wire(StudyLogOut.model_validate(item))
            for item in self._request("GET", "/api/study-logs", params=params)
        ]

    def create_study_log(
            self,
            title: str,
            date: datetime,
            duration: int,
            content: t.Optional[str] = None,
            plan_id: t.Optional[str] = None,
    ) -> StudyLog:
        request = CreateStudyLogRequest(title=title, date=date, duration=duration, content=content, plan_id=plan_id)
        result = self._request(
            "POST",
            "/api/study-logs",
            json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return _study_log_from_wire(StudyLogOut.model_validate(result))

    def update_study_log(self, log_id: str, **changes: t.Any) -> StudyLog:
        request = UpdateStudyLogRequest(**changes)
        result = self._request(
            "PUT",
            f"/api/study-logs/{log_id}",
            json=request.model_dump(mode="json", by_alias=True, exclude_unset=True),
        )
        return _study_log_from_wire(StudyLogOut.model_validate(result))

    def delete_study_log(self, log_id: str) -> str:
        return MessageResponse.model_validate(self._request("DELETE", f"/api/study-logs/{log_id}")).message

    # Stats and timeline

    def get_stats(self, today: t.Optional[date] = None) -> Stats:
        params = {"today": today.isoformat()} if today else None
        result = StatsResponse.model_validate(self._request("GET", "/api/stats", params=params))
        return Stats(
            total_study_time=result.total_study_time,
            completed_plans=result.completed_plans,
            in_progress_plans=result.in_progress_plans,
            daily_average=result.daily_average,
            weekly_trend=[DailyMinutes(day=item.day, minutes=item.minutes) for item in result.weekly_trend],
        )

    def get_timeline(
            self,
            expanded: t.Iterable[str] = (),
            start_year: t.Optional[int] = None,
            years: t.Optional[int] = None,
            today: t.Optional[date] = None,
    ) -> TimelineResponse:
        """Server-side layout of the current user's plans."""
        params: list[tuple[str, str]] = [("expanded", plan_id) for plan_id in expanded]
        if start_year is not None:
            params.append(("startYear", str(start_year)))
        if years is not None:
            params.append(("years", str(years)))
        if today is not None:
            params.append(("today", today.isoformat()))
        return TimelineResponse.model_validate(self._request("GET", "/api/timeline", params=params or None))

    # Pomodoro settings

    def get_pomodoro_settings(self) -> PomodoroSettings:
        result = PomodoroSettingsModel.model_validate(self._request("GET", "/api/pomodoro-settings"))
        return PomodoroSettings(**result.model_dump())

    def update_pomodoro_settings(self, **changes: int) -> PomodoroSettings:
        request = UpdatePomodoroSettingsRequest(**changes)
        result = PomodoroSettingsModel.model_validate(
            self._request("PATCH", "/api/pomodoro-settings", json=request.model_dump(by_alias=True, exclude_unset=True))
        )
        return PomodoroSettings(**result.model_dump())


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.text


def _plan_from_wire(plan: PlanOut) -> Plan:
    """Convert Pydantic PlanOut to the dataclass Plan."""
    return Plan(
        id=plan.id,
        name=plan.name,
        start_date=plan.start_date,
        end_date=plan.end_date,
        description=plan.description,
        status=plan.status,
        progress=plan.progress,
        parent_plan_id=plan.parent_plan_id,
        color=plan.color,
        user_id=plan.user_id,
        created_at=plan.created_at or utcnow(),
        updated_at=plan.updated_at or utcnow(),
    )


def _study_log_from_wire(log: StudyLogOut) -> StudyLog:
    """Convert Pydantic StudyLogOut to the dataclass StudyLog."""
    return StudyLog(
        id=log.id,
        title=log.title,
        date=log.date,
        duration=log.duration,
        content=log.content,
        plan_id=log.plan_id,
        created_at=log.created_at or utcnow(),
        updated_at=log.updated_at or utcnow(),
    )
