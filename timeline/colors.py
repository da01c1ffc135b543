"""Display colours for plan bars."""
from __future__ import annotations

import typing as t

from timeline.models import PlanLike

# Colours a user may pick when creating or editing a plan
PLAN_COLORS: dict[str, str] = {
    "indigo": "#818cf8",
    "blue": "#3b82f6",
    "green": "#22c55e",
    "yellow": "#eab308",
    "red": "#ef4444",
    "purple": "#a855f7",
    "pink": "#ec4899",
    "orange": "#f97316",
    "teal": "#14b8a6",
}

STATUS_COLORS: dict[str, str] = {
    "completed": "#22c55e",
    "canceled": "#fca5a5",
    "in-progress": "#3b82f6",
}

# (max duration in days, colour); the last entry catches everything longer
DURATION_COLORS: list[tuple[t.Optional[int], str]] = [
    (7, "#818cf8"),
    (30, "#a855f7"),
    (90, "#8b5cf6"),
    (None, "#ec4899"),
]


def resolve_color(color: str) -> str:
    """Palette names resolve to hex; anything else is passed through."""
    return PLAN_COLORS.get(color, color)


def display_color(plan: PlanLike) -> str:
    """Colour for a plan bar: explicit colour, else status, else duration."""
    if plan.color:
        return resolve_color(plan.color)

    status_color = STATUS_COLORS.get(plan.status)
    if status_color:
        return status_color

    days = (plan.end_date - plan.start_date).days
    for limit, color in DURATION_COLORS:
        if limit is None or days <= limit:
            return color
    return DURATION_COLORS[-1][1]
