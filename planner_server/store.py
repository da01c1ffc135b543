# -*- coding: utf-8 -*-
"""
In-memory storage for users, plans, study logs and pomodoro settings.

Plans are kept in a flat id map; the parent/child structure is derived on
demand from `parent_plan_id`, so cascading deletes and subtree lookups never
walk nested objects. In a real deployment this class would sit in front of a
document database.
"""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import replace
from datetime import date, datetime
import typing as t

from planner_server.auth import hash_password, verify_password
from planner_server.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from planner_server.models import (
    PLAN_STATUSES,
    Plan,
    PomodoroSettings,
    StudyLog,
    User,
    as_aware,
    utcnow,
)
from timeline.colors import PLAN_COLORS

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
MIN_PLAN_NAME_LENGTH = 2

# (minimum, maximum) minutes or sessions for each pomodoro field
POMODORO_LIMITS: dict[str, tuple[int, int]] = {
    "work_duration": (1, 120),
    "break_duration": (1, 30),
    "long_break_duration": (1, 60),
    "long_break_interval": (1, 10),
}


def new_id() -> str:
    return uuid.uuid4().hex


def parse_id(value: str, kind: str = "plan") -> str:
    """Normalise an id to uuid hex; malformed ids are a validation error."""
    try:
        return uuid.UUID(str(value)).hex
    except (ValueError, AttributeError, TypeError):
        raise ValidationError(f"Invalid {kind} id: {value!r}")


def _validate_plan_name(name: t.Optional[str]) -> str:
    cleaned = (name or "").strip()
    if len(cleaned) < MIN_PLAN_NAME_LENGTH:
        raise ValidationError(f"Plan name must be at least {MIN_PLAN_NAME_LENGTH} characters")
    return cleaned


def _validate_color(color: t.Optional[str]) -> t.Optional[str]:
    if color is None or color == "":
        return None
    if color not in PLAN_COLORS:
        raise ValidationError(f"Unknown color {color!r}; choose one of {', '.join(PLAN_COLORS)}")
    return color


def _validate_range(start_date: t.Optional[date], end_date: t.Optional[date]) -> None:
    if start_date is None or end_date is None:
        raise ValidationError("Start date and end date are required")
    if end_date < start_date:
        raise ValidationError("End date must not be before start date")


class PlannerStore:
    """Repository over plans, study logs, users and per-user pomodoro settings."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}
        self.plans: dict[str, Plan] = {}
        self.study_logs: dict[str, StudyLog] = {}
        self.pomodoro_settings: dict[str, PomodoroSettings] = {}

    # Users

    def register_user(self, name: t.Optional[str], email: t.Optional[str], password: t.Optional[str]) -> User:
        """Create an account; raises ValidationError or ConflictError."""
        if not name or not email or not password:
            raise ValidationError("Name, email and password are all required")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Please enter a valid email address")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

        normalized = email.strip().lower()
        if self.find_user_by_email(normalized) is not None:
            raise ConflictError("Email is already registered")

        user = User(id=new_id(), name=name.strip(), email=normalized, password_hash=hash_password(password))
        self.users[user.id] = user
        logger.info("Registered user %s", user.id)
        return user

    def find_user_by_email(self, email: str) -> t.Optional[User]:
        normalized = email.strip().lower()
        for user in self.users.values():
            if user.email == normalized:
                return user
        return None

    def authenticate(self, email: t.Optional[str], password: t.Optional[str]) -> t.Optional[User]:
        """Return the user for valid credentials, else None."""
        if not email or not password:
            return None
        user = self.find_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    def get_user(self, user_id: str) -> t.Optional[User]:
        return self.users.get(user_id)

    # Plans

    def list_plans(self, user_id: str) -> list[Plan]:
        """Plans owned by `user_id`, newest first."""
        owned = [plan for plan in reversed(list(self.plans.values())) if plan.user_id == user_id]
        return sorted(owned, key=lambda plan: plan.created_at, reverse=True)

    def get_plan(self, plan_id: str, user_id: str) -> Plan:
        return self._owned_plan(plan_id, user_id)

    def create_plan(
            self,
            user_id: str,
            name: t.Optional[str],
            start_date: t.Optional[date],
            end_date: t.Optional[date],
            description: t.Optional[str] = None,
            color: t.Optional[str] = None,
            parent_plan_id: t.Optional[str] = None,
    ) -> Plan:
        """
        Create a plan owned by `user_id` with status not-started and progress 0.

        A sub plan must lie within its parent's date range.
        """
        cleaned_name = _validate_plan_name(name)
        _validate_range(start_date, end_date)
        cleaned_color = _validate_color(color)

        parent_id = None
        if parent_plan_id:
            parent = self._owned_plan(parent_plan_id, user_id)
            if start_date < parent.start_date or end_date > parent.end_date:
                raise ValidationError(
                    f"Sub plan must fall within its parent's range {parent.start_date} - {parent.end_date}"
                )
            parent_id = parent.id

        plan = Plan(
            id=new_id(),
            name=cleaned_name,
            start_date=start_date,
            end_date=end_date,
            description=description,
            color=cleaned_color,
            parent_plan_id=parent_id,
            user_id=user_id,
        )
        self.plans[plan.id] = plan
        logger.info("Created plan %s (parent=%s) for user %s", plan.id, parent_id, user_id)
        return plan

    def update_plan(self, plan_id: str, user_id: str, changes: t.Mapping[str, t.Any]) -> Plan:
        """
        Apply a partial update.

        A plan without an owner is claimed by the requester. `None` for a
        required field means "leave unchanged"; `None` for description or
        color clears it.
        """
        plan = self._owned_plan(plan_id, user_id)
        updates: dict[str, t.Any] = {}

        if changes.get("name") is not None:
            updates["name"] = _validate_plan_name(changes["name"])
        if "description" in changes:
            updates["description"] = changes["description"]
        if "color" in changes:
            updates["color"] = _validate_color(changes["color"])
        if changes.get("start_date") is not None:
            updates["start_date"] = changes["start_date"]
        if changes.get("end_date") is not None:
            updates["end_date"] = changes["end_date"]
        if changes.get("status") is not None:
            if changes["status"] not in PLAN_STATUSES:
                raise ValidationError(f"Unknown status {changes['status']!r}")
            updates["status"] = changes["status"]
        if changes.get("progress") is not None:
            progress = changes["progress"]
            if not isinstance(progress, int) or not 0 <= progress <= 100:
                raise ValidationError("Progress must be an integer between 0 and 100")
            updates["progress"] = progress

        _validate_range(updates.get("start_date", plan.start_date), updates.get("end_date", plan.end_date))
        if plan.user_id is None:
            updates["user_id"] = user_id

        updated = replace(plan, **updates, updated_at=utcnow())
        self.plans[plan.id] = updated
        logger.info("Updated plan %s fields %s", plan.id, sorted(updates))
        return updated

    def delete_plan(self, plan_id: str, user_id: str) -> list[str]:
        """
        Delete a plan and every descendant.

        Study logs that pointed at any removed plan are detached.

        :return: Removed ids, the requested plan first.
        """
        plan = self._owned_plan(plan_id, user_id)
        removed = [plan.id, *self.descendant_ids(plan.id)]
        for pid in removed:
            self.plans.pop(pid, None)

        removed_set = set(removed)
        detached = 0
        for log in self.study_logs.values():
            if log.plan_id in removed_set:
                log.plan_id = None
                detached += 1

        logger.info("Deleted plan %s with %d descendant(s); detached %d study log(s)",
                    plan.id, len(removed) - 1, detached)
        return removed

    def children_of(self, plan_id: str) -> list[Plan]:
        return [plan for plan in self.plans.values() if plan.parent_plan_id == plan_id]

    def descendant_ids(self, plan_id: str) -> list[str]:
        """Every transitive descendant id, parents before their children."""
        children: dict[str, list[str]] = {}
        for plan in self.plans.values():
            if plan.parent_plan_id is not None:
                children.setdefault(plan.parent_plan_id, []).append(plan.id)

        found: list[str] = []
        seen = {plan_id}
        stack = list(reversed(children.get(plan_id, [])))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            found.append(current)
            stack.extend(reversed(children.get(current, [])))
        return found

    def migrate_unowned_plans(self, user_id: str) -> int:
        """Assign every plan without an owner to `user_id`; return how many changed."""
        migrated = 0
        for plan in self.plans.values():
            if plan.user_id is None:
                plan.user_id = user_id
                migrated += 1
        logger.info("Migrated %d unowned plan(s) to user %s", migrated, user_id)
        return migrated

    def _owned_plan(self, plan_id: str, user_id: str) -> Plan:
        key = parse_id(plan_id, "plan")
        plan = self.plans.get(key)
        if plan is None:
            raise NotFoundError("Plan not found")
        if plan.user_id is not None and plan.user_id != user_id:
            raise AuthorizationError("You do not have permission to modify this plan")
        return plan

    # Study logs

    def list_study_logs(self, plan_id: t.Optional[str] = None) -> list[StudyLog]:
        """Study logs, most recent session first, optionally for one plan."""
        logs = list(self.study_logs.values())
        if plan_id is not None:
            key = parse_id(plan_id, "plan")
            logs = [log for log in logs if log.plan_id == key]
        return sorted(logs, key=lambda log: log.date, reverse=True)

    def get_study_log(self, log_id: str) -> StudyLog:
        log = self.study_logs.get(parse_id(log_id, "study log"))
        if log is None:
            raise NotFoundError("Study log not found")
        return log

    def create_study_log(
            self,
            title: t.Optional[str],
            date: t.Optional[datetime],
            duration: t.Optional[int],
            content: t.Optional[str] = None,
            plan_id: t.Optional[str] = None,
    ) -> StudyLog:
        if not title or not title.strip():
            raise ValidationError("Title is required")
        if date is None:
            raise ValidationError("Date is required")
        if duration is None or duration < 0:
            raise ValidationError("Duration must be a non-negative number of minutes")

        log = StudyLog(
            id=new_id(),
            title=title.strip(),
            date=as_aware(date),
            duration=duration,
            content=content,
            plan_id=self._existing_plan_id(plan_id),
        )
        self.study_logs[log.id] = log
        logger.info("Created study log %s (%d min, plan=%s)", log.id, duration, log.plan_id)
        return log

    def update_study_log(self, log_id: str, changes: t.Mapping[str, t.Any]) -> StudyLog:
        log = self.get_study_log(log_id)
        updates: dict[str, t.Any] = {}

        if changes.get("title") is not None:
            if not changes["title"].strip():
                raise ValidationError("Title is required")
            updates["title"] = changes["title"].strip()
        if "content" in changes:
            updates["content"] = changes["content"]
        if changes.get("date") is not None:
            updates["date"] = as_aware(changes["date"])
        if changes.get("duration") is not None:
            if changes["duration"] < 0:
                raise ValidationError("Duration must be a non-negative number of minutes")
            updates["duration"] = changes["duration"]
        if "plan_id" in changes:
            updates["plan_id"] = self._existing_plan_id(changes["plan_id"])

        updated = replace(log, **updates, updated_at=utcnow())
        self.study_logs[log.id] = updated
        return updated

    def delete_study_log(self, log_id: str) -> StudyLog:
        log = self.get_study_log(log_id)
        del self.study_logs[log.id]
        logger.info("Deleted study log %s", log.id)
        return log

    def _existing_plan_id(self, plan_id: t.Optional[str]) -> t.Optional[str]:
        if not plan_id:
            return None
        key = parse_id(plan_id, "plan")
        if key not in self.plans:
            raise NotFoundError("Plan not found")
        return key

    # Pomodoro settings

    def get_pomodoro_settings(self, user_id: str) -> PomodoroSettings:
        return self.pomodoro_settings.get(user_id) or PomodoroSettings()

    def update_pomodoro_settings(self, user_id: str, changes: t.Mapping[str, t.Any]) -> PomodoroSettings:
        """Merge `changes` into the user's settings after range checks."""
        updates: dict[str, int] = {}
        for key, value in changes.items():
            if value is None:
                continue
            if key not in POMODORO_LIMITS:
                raise ValidationError(f"Unknown pomodoro setting {key!r}")
            low, high = POMODORO_LIMITS[key]
            if not isinstance(value, int) or not low <= value <= high:
                raise ValidationError(f"{key} must be between {low} and {high}")
            updates[key] = value

        settings = replace(self.get_pomodoro_settings(user_id), **updates)
        self.pomodoro_settings[user_id] = settings
        return settings
