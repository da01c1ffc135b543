# -*- coding: utf-8 -*-
import sys
from datetime import date
import typing as t

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from planner_client.client import PLANNER_SERVICE_URL, PLANNER_TOKEN, PlannerClient
from planner_client.state import PlannerState
from planner_server.models import Plan, Stats
from timeline.layout import TimelineLayoutEngine
from timeline.models import AxisConfig, TimelineLayout


console = Console()

SKETCH_COLUMNS = 60


def truncate_title(title: str, max_length: int = 40) -> str:
    """Truncate title to max_length characters, adding ellipsis if needed."""
    if len(title) <= max_length:
        return title
    return title[:max_length-3] + "..."


def bar_sketch(left: float, width: float, total_width: float, columns: int = SKETCH_COLUMNS) -> str:
    """Draw a bar as block characters scaled to `columns` characters."""
    if total_width <= 0:
        return ""
    start = int(left / total_width * columns)
    end = max(start + 1, int(round((left + width) / total_width * columns)))
    end = min(end, columns)
    return " " * start + "█" * (end - start) + " " * (columns - end)


def create_timeline_table(layout: TimelineLayout, plans: dict[str, Plan]) -> Table:
    """Create a table with one row per visible bar, in layout order."""
    table = Table(title="🗓  Plan Timeline", show_header=True, header_style="bold magenta")
    table.add_column("Plan", style="white")
    table.add_column("Dates", style="yellow")
    table.add_column("Row", justify="right")
    table.add_column("Top", justify="right")
    table.add_column("Timeline", no_wrap=True)

    for bar in layout.bars:
        plan = plans.get(bar.plan_id)
        marker = "▾" if bar.expanded else ("▸" if bar.has_children else " ")
        dates = f"{plan.start_date} → {plan.end_date}" if plan else ""
        table.add_row(
            f"{'  ' * bar.depth}{marker} {truncate_title(bar.name)}",
            dates,
            str(bar.row),
            f"{bar.top:.0f}",
            Text(bar_sketch(bar.left, bar.width, layout.total_width), style=bar.color),
        )
    return table


def create_plan_tree(layout: TimelineLayout) -> Tree:
    """Nest visible bars under their parents."""
    tree = Tree("📚 Plans")
    nodes: dict[str, Tree] = {}
    for bar in layout.bars:
        parent = nodes.get(bar.parent_id) if bar.parent_id else None
        label = f"[{bar.color}]■[/] {bar.name} [dim]({bar.plan_id[:8]})[/dim]"
        nodes[bar.plan_id] = (parent or tree).add(label)
    return tree


def create_stats_panel(stats: Stats) -> Panel:
    stats_text = Text()
    stats_text.append("Total study time: ", style="white")
    stats_text.append(f"{stats.total_study_time} min", style="bold green")
    stats_text.append("\nDaily average: ", style="white")
    stats_text.append(f"{stats.daily_average} min", style="bold green")
    stats_text.append("\nCompleted plans: ", style="white")
    stats_text.append(f"{stats.completed_plans}", style="bold green")
    stats_text.append("\nIn progress: ", style="white")
    stats_text.append(f"{stats.in_progress_plans}", style="bold green")
    stats_text.append("\n\n")
    for item in stats.weekly_trend:
        stats_text.append(f"{item.day:<4}", style="cyan")
        stats_text.append(f"{'▇' * (item.minutes // 10)} {item.minutes}\n")
    return Panel(stats_text, title="📊 Statistics", border_style="green")


def _fail(state: PlannerState) -> t.NoReturn:
    console.print(f"[red]Error:[/red] {state.error}")
    sys.exit(1)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--url", default=PLANNER_SERVICE_URL, show_default=True, help="Planner service URL.")
@click.option("--token", default=PLANNER_TOKEN, help="Session token (or set PLANNER_TOKEN).")
@click.pass_context
def cli(ctx: click.Context, url: str, token: t.Optional[str]) -> None:
    """Study planner command line."""
    if ctx.obj is None:
        ctx.obj = PlannerState(PlannerClient(base_url=url, token=token))


@cli.command()
@click.argument("email")
@click.password_option("--password", confirmation_prompt=False)
@click.pass_obj
def login(state: PlannerState, email: str, password: str) -> None:
    """Log in and print a session token for PLANNER_TOKEN."""
    result = state.login(email, password)
    if result is None:
        _fail(state)
    console.print(f"[bold green]✅ Logged in as {result.user.name}[/bold green]")
    console.print(f"export PLANNER_TOKEN={result.access_token}", soft_wrap=True)


@cli.command()
@click.pass_obj
def plans(state: PlannerState) -> None:
    """List plans, newest first."""
    if not state.refresh():
        _fail(state)
    if not state.plans:
        console.print("No plans yet.")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Id", style="dim")
    table.add_column("Name", style="white")
    table.add_column("Dates", style="yellow")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    for plan in state.plans:
        table.add_row(
            plan.id[:8],
            truncate_title(plan.name),
            f"{plan.start_date} → {plan.end_date}",
            plan.status,
            f"{plan.progress}%",
        )
    console.print(table)


@cli.command()
@click.argument("name")
@click.argument("start", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.argument("end", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option("--parent", "parent_plan_id", default=None, help="Parent plan id for a sub plan.")
@click.option("--color", default=None, help="Palette colour name.")
@click.option("--description", default=None)
@click.pass_obj
def add(state: PlannerState, name: str, start, end, parent_plan_id, color, description) -> None:
    """Create a plan from START to END (YYYY-MM-DD)."""
    plan = state.add_plan(
        name,
        start.date(),
        end.date(),
        description=description,
        color=color,
        parent_plan_id=parent_plan_id,
    )
    if plan is None:
        _fail(state)
    console.print(f"   ✓ Plan created: {plan.name} ({plan.id})")


@cli.command()
@click.option("--expand", "expand_ids", multiple=True, help="Plan id to expand; repeatable.")
@click.option("--all", "expand_all", is_flag=True, help="Expand every plan.")
@click.option("--start-year", type=int, default=None)
@click.option("--years", type=int, default=None)
@click.option("--tree", "as_tree", is_flag=True, help="Show the hierarchy instead of the table.")
@click.pass_obj
def timeline(
        state: PlannerState,
        expand_ids: tuple[str, ...],
        expand_all: bool,
        start_year: t.Optional[int],
        years: t.Optional[int],
        as_tree: bool,
) -> None:
    """Render the plan timeline."""
    if start_year is not None or years is not None:
        current = state.engine.axis
        state.engine = TimelineLayoutEngine(
            axis=AxisConfig(
                start_year=start_year if start_year is not None else current.start_year,
                years=years if years is not None else current.years,
                cell_width=current.cell_width,
            ),
            today=state.engine.today or date.today(),
        )
    if not state.refresh():
        _fail(state)

    targets = [plan.id for plan in state.plans] if expand_all else list(expand_ids)
    for plan_id in targets:
        match = next((plan.id for plan in state.plans if plan.id.startswith(plan_id)), plan_id)
        state.expand(match)

    layout = state.layout
    if as_tree:
        console.print(create_plan_tree(layout))
    else:
        console.print(create_timeline_table(layout, {plan.id: plan for plan in state.plans}))
    if layout.skipped:
        console.print(f"[dim]{len(layout.skipped)} plan(s) fall outside the timeline[/dim]")


@cli.command()
@click.pass_obj
def stats(state: PlannerState) -> None:
    """Show study statistics."""
    result = state.stats()
    if result is None:
        _fail(state)
    console.print(create_stats_panel(result))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
