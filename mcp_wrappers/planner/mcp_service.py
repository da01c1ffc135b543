"""
MCP wrapper for the planner service.

This module exposes the planner REST API as MCP tools. Every tool calls a
raw `_function` that goes through `PlannerClient`, so dates are accepted as
ISO strings and results come back as the dataclass models.
"""
from __future__ import annotations

from datetime import date, datetime
import typing as t

from fastmcp import FastMCP
import pydantic

from planner_client.client import PlannerClient
from planner_server.errors import PlannerError
from planner_server.models import Plan, Stats, StudyLog
from services.shared.models import TimelineResponse


mcp = FastMCP("PlannerMCPWrapper")

# Configured from PLANNER_SERVICE_URL / PLANNER_TOKEN
client = PlannerClient()


def _list_plans() -> list[Plan]:
    """List the current user's plans, newest first."""
    try:
        return client.list_plans()
    except PlannerError as e:
        raise RuntimeError(f"Error calling planner service: {e.message}")


def _create_plan(
    name: str,
    start_date: str,
    end_date: str,
    description: str = "",
    color: str = "",
    parent_plan_id: str = "",
) -> Plan:
    """
    Create a plan or, with `parent_plan_id`, a sub plan.

    Dates are ISO strings (YYYY-MM-DD).
    """
    try:
        return client.create_plan(
            name,
            date.fromisoformat(start_date),
            date.fromisoformat(end_date),
            description=description or None,
            color=color or None,
            parent_plan_id=parent_plan_id or None,
        )
    except ValueError as e:
        raise RuntimeError(f"Invalid date: {e}")
    except PlannerError as e:
        raise RuntimeError(f"Error calling planner service: {e.message}")


def _update_plan(plan_id: str, status: str = "", progress: t.Optional[int] = None, name: str = "") -> Plan:
    """Update the status, progress or name of a plan; empty arguments are left unchanged."""
    changes: dict[str, t.Any] = {}
    if status:
        changes["status"] = status
    if progress is not None:
        changes["progress"] = progress
    if name:
        changes["name"] = name
    try:
        return client.update_plan(plan_id, **changes)
    except pydantic.ValidationError as e:
        raise RuntimeError(f"Invalid update: {e.errors()[0]['msg']}")
    except PlannerError as e:
        raise RuntimeError(f"Error calling planner service: {e.message}")


def _delete_plan(plan_id: str) -> list[str]:
    """Delete a plan and all of its sub plans; returns the removed ids."""
    try:
        return client.delete_plan(plan_id)
    except PlannerError as e:
        raise RuntimeError(f"Error calling planner service: {e.message}")


def _log_study_session(title: str, duration: int, when: str = "", plan_id: str = "", content: str = "") -> StudyLog:
    """Record a study session; `when` is an ISO datetime and defaults to now."""
    try:
        session_date = datetime.fromisoformat(when) if when else datetime.now()
        return client.create_study_log(title, session_date, duration, content=content or None, plan_id=plan_id or None)
    except ValueError as e:
        raise RuntimeError(f"Invalid date: {e}")
    except PlannerError as e:
        raise RuntimeError(f"Error calling planner service: {e.message}")


def _get_stats() -> Stats:
    try:
        return client.get_stats()
    except PlannerError as e:
        raise RuntimeError(f"Error calling planner service: {e.message}")


def _show_timeline(expanded: t.Optional[list[str]] = None) -> str:
    """
    Show the timeline layout as a text table.

    Sub plans are listed only under expanded parents, indented by depth.
    """
    try:
        timeline = client.get_timeline(expanded=expanded or [])
    except PlannerError as e:
        raise RuntimeError(f"Error calling planner service: {e.message}")
    return _format_timeline(timeline)


def _format_timeline(timeline: TimelineResponse) -> str:
    if not timeline.bars:
        return "No plans on the timeline."

    first, last = timeline.cells[0], timeline.cells[-1]
    lines = []
    lines.append(f"TIMELINE {first.label} - {last.label}")
    lines.append("=" * 90)
    lines.append(f"{'Plan':<40} {'Row':<5} {'Left':>8} {'Width':>8} {'Top':>8} {'Color':<10}")
    lines.append("-" * 90)

    for bar in timeline.bars:
        marker = "-" if bar.expanded else ("+" if bar.has_children else " ")
        label = f"{'  ' * bar.depth}{marker} {bar.name}"
        label = label[:39] if len(label) > 39 else label
        lines.append(
            f"{label:<40} {bar.row:<5} {bar.left:>8.1f} {bar.width:>8.1f} {bar.top:>8.1f} {bar.color:<10}"
        )

    lines.append("=" * 90)
    lines.append(f"Total height: {timeline.total_height:.0f}px, {len(timeline.bars)} visible plan(s)")
    if timeline.skipped:
        lines.append(f"Outside the timeline: {len(timeline.skipped)} plan(s)")
    return "\n".join(lines)


# MCP tool wrappers that call the raw functions
@mcp.tool()
def list_plans() -> list[Plan]:
    """Lists the current user's study plans."""
    return _list_plans()


@mcp.tool()
def create_plan(
    name: str,
    start_date: str,
    end_date: str,
    description: str = "",
    color: str = "",
    parent_plan_id: str = "",
) -> Plan:
    """Creates a study plan, optionally nested under a parent plan."""
    return _create_plan(name, start_date, end_date, description, color, parent_plan_id)


@mcp.tool()
def update_plan(plan_id: str, status: str = "", progress: t.Optional[int] = None, name: str = "") -> Plan:
    """Updates the status, progress or name of a study plan."""
    return _update_plan(plan_id, status, progress, name)


@mcp.tool()
def delete_plan(plan_id: str) -> list[str]:
    """Deletes a study plan together with its sub plans."""
    return _delete_plan(plan_id)


@mcp.tool()
def log_study_session(title: str, duration: int, when: str = "", plan_id: str = "", content: str = "") -> StudyLog:
    """Records a completed study session."""
    return _log_study_session(title, duration, when, plan_id, content)


@mcp.tool()
def get_stats() -> Stats:
    """Returns study totals and the current week's trend."""
    return _get_stats()


@mcp.tool()
def show_timeline(expanded: t.Optional[list[str]] = None) -> str:
    """Displays the plan timeline in a nicely formatted view."""
    return _show_timeline(expanded)
