"""
View-model state for a planner front end.

`PlannerState` is an ordinary object handed to whatever renders the plans
(the CLI, a test, a UI adapter). It owns the local copies of plans, study
logs and pomodoro settings plus a `TimelineLayoutEngine`, and only mutates
them after the service has accepted a change.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
import typing as t

from planner_client.client import PlannerClient
from planner_server.errors import PlannerError
from planner_server.models import Plan, PomodoroSettings, Stats, StudyLog, as_aware
from planner_server import config
from services.shared.models import LoginResponse
from timeline.layout import TimelineLayoutEngine
from timeline.models import AxisConfig, TimelineLayout

logger = logging.getLogger(__name__)

T = t.TypeVar("T")


def default_axis() -> AxisConfig:
    return AxisConfig(
        start_year=config.TIMELINE_START_YEAR,
        years=config.TIMELINE_YEARS,
        cell_width=config.TIMELINE_CELL_WIDTH,
    )


class PlannerState:
    """
    Local state mirrored from the planner service.

    A failed request leaves every collection untouched and stores the error
    message in `error`; the next successful request clears it.
    """

    def __init__(self, client: PlannerClient, engine: t.Optional[TimelineLayoutEngine] = None) -> None:
        self.client = client
        self.engine = engine or TimelineLayoutEngine(axis=default_axis(), today=date.today())
        self.plans: list[Plan] = []
        self.study_logs: list[StudyLog] = []
        self.pomodoro_settings = PomodoroSettings()
        self.error: t.Optional[str] = None

    @property
    def layout(self) -> TimelineLayout:
        return self.engine.layout

    def _call(self, action: str, fn: t.Callable[..., T], *args: t.Any, **kwargs: t.Any) -> t.Optional[T]:
        try:
            result = fn(*args, **kwargs)
        except PlannerError as e:
            logger.warning("Failed to %s: %s", action, e.message)
            self.error = e.message
            return None
        self.error = None
        return result

    def login(self, email: str, password: str) -> t.Optional[LoginResponse]:
        return self._call("log in", self.client.login, email, password)

    def refresh(self) -> bool:
        """Reload plans, study logs and pomodoro settings from the service."""
        plans = self._call("load plans", self.client.list_plans)
        if plans is None:
            return False
        logs = self._call("load study logs", self.client.list_study_logs)
        if logs is None:
            return False
        settings = self._call("load pomodoro settings", self.client.get_pomodoro_settings)
        if settings is None:
            return False

        self.plans = plans
        self.study_logs = logs
        self.pomodoro_settings = settings
        self.engine.load(self.plans)
        return True

    # Plans

    def add_plan(
            self,
            name: str,
            start_date: date,
            end_date: date,
            description: t.Optional[str] = None,
            color: t.Optional[str] = None,
            parent_plan_id: t.Optional[str] = None,
    ) -> t.Optional[Plan]:
        plan = self._call(
            "create plan",
            self.client.create_plan,
            name,
            start_date,
            end_date,
            description=description,
            color=color,
            parent_plan_id=parent_plan_id,
        )
        if plan is None:
            return None
        self.plans.insert(0, plan)
        self.engine.add(plan)
        return plan

    def update_plan(self, plan_id: str, **changes: t.Any) -> t.Optional[Plan]:
        plan = self._call("update plan", self.client.update_plan, plan_id, **changes)
        if plan is None:
            return None
        self.plans = [plan if existing.id == plan.id else existing for existing in self.plans]
        self.engine.update(plan)
        return plan

    def delete_plan(self, plan_id: str) -> t.Optional[set[str]]:
        """
        Delete a plan on the service, then drop its whole subtree locally.

        Study logs that referenced a removed plan keep existing without a plan.

        :return: The removed ids, or None when the service refused.
        """
        deleted = self._call("delete plan", self.client.delete_plan, plan_id)
        if deleted is None:
            return None

        removed = set(deleted) | self.engine.remove(plan_id)
        self.plans = [plan for plan in self.plans if plan.id not in removed]
        self.study_logs = [
            replace(log, plan_id=None) if log.plan_id in removed else log
            for log in self.study_logs
        ]
        return removed

    # Expand / collapse

    def toggle(self, plan_id: str) -> bool:
        return self.engine.toggle(plan_id)

    def expand(self, plan_id: str) -> TimelineLayout:
        return self.engine.expand(plan_id)

    def collapse(self, plan_id: str) -> TimelineLayout:
        return self.engine.collapse(plan_id)

    # Study logs, stats, pomodoro

    def add_study_log(
            self,
            title: str,
            date: datetime,
            duration: int,
            content: t.Optional[str] = None,
            plan_id: t.Optional[str] = None,
    ) -> t.Optional[StudyLog]:
        log = self._call(
            "log study session",
            self.client.create_study_log,
            title,
            date,
            duration,
            content=content,
            plan_id=plan_id,
        )
        if log is None:
            return None
        self.study_logs.append(log)
        self.study_logs.sort(key=lambda item: as_aware(item.date), reverse=True)
        return log

    def delete_study_log(self, log_id: str) -> bool:
        if self._call("delete study log", self.client.delete_study_log, log_id) is None:
            return False
        self.study_logs = [log for log in self.study_logs if log.id != log_id]
        return True

    def stats(self, today: t.Optional[date] = None) -> t.Optional[Stats]:
        return self._call("load stats", self.client.get_stats, today)

    def update_pomodoro_settings(self, **changes: int) -> t.Optional[PomodoroSettings]:
        settings = self._call("update pomodoro settings", self.client.update_pomodoro_settings, **changes)
        if settings is None:
            return None
        self.pomodoro_settings = settings
        return settings
