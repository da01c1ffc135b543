"""
FastAPI service for the study planner.

This service exposes the planner store (plans, study logs, pomodoro settings
and accounts), the aggregate statistics and the timeline layout as REST API
endpoints. Domain errors raised by the store are rendered as
`{"error": message}` with the status code carried by the error class.
"""
from __future__ import annotations

import logging
import typing as t
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date
from urllib.parse import quote

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from planner_server import config
from planner_server.auth import issue_token, read_token
from planner_server.errors import AuthenticationError, PlannerError
from planner_server.models import Plan, PomodoroSettings, Stats, StudyLog, User
from planner_server.stats import compute_stats
from planner_server.store import PlannerStore
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
from timeline.axis import build_quarter_cells
from timeline.colors import display_color
from timeline.layout import compute_layout
from timeline.models import AxisConfig

logger = logging.getLogger(__name__)

# Browser pages that need a session, and pages a logged-in user should skip
PROTECTED_PAGES = ("/dashboard", "/plans", "/profile")
AUTH_PAGES = ("/login", "/register")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize resources on startup and cleanup on shutdown."""
    logger.info("Planner service starting with %d plan(s) in store", len(app.state.store.plans))
    yield
    logger.info("Planner service stopped")


app = FastAPI(
    title="Study Planner Service",
    description="REST API for study plans, study logs, statistics and the plan timeline",
    version="1.0.0",
    lifespan=lifespan,
)

# In-memory storage; tests swap in a fresh PlannerStore
app.state.store = PlannerStore()


# Error handlers

@app.exception_handler(PlannerError)
async def planner_error_handler(request: Request, exc: PlannerError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(status_code=400, content={"error": "Invalid request: " + "; ".join(problems)})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# Dependencies

def get_store(request: Request) -> PlannerStore:
    return request.app.state.store


def _session_token(request: Request) -> t.Optional[str]:
    authorization = request.headers.get("Authorization", "")
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return request.cookies.get(config.SESSION_COOKIE)


def current_user(request: Request, store: PlannerStore = Depends(get_store)) -> User:
    """
    Resolve the session from the bearer header or the session cookie.

    :raises AuthenticationError: If there is no valid session.
    """
    token = _session_token(request)
    if not token:
        raise AuthenticationError("Unauthorized")
    user = store.get_user(read_token(token))
    if user is None:
        raise AuthenticationError("Unauthorized")
    return user


# Page guard

def _matches(path: str, prefixes: t.Iterable[str]) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def _has_session(request: Request) -> bool:
    token = request.cookies.get(config.SESSION_COOKIE)
    if not token:
        return False
    try:
        user_id = read_token(token)
    except AuthenticationError:
        return False
    return request.app.state.store.get_user(user_id) is not None


@app.middleware("http")
async def guard_pages(request: Request, call_next):
    """Redirect browsers between the login pages and the signed-in pages."""
    path = request.url.path
    if _matches(path, PROTECTED_PAGES) and not _has_session(request):
        return RedirectResponse(f"/login?callbackUrl={quote(path, safe='')}", status_code=307)
    if _matches(path, AUTH_PAGES) and _has_session(request):
        return RedirectResponse("/dashboard", status_code=307)
    return await call_next(request)


@app.get("/login")
async def login_page(callbackUrl: t.Optional[str] = None):
    return {"page": "login", "callbackUrl": callbackUrl or "/dashboard"}


@app.get("/register")
async def register_page():
    return {"page": "register"}


@app.get("/dashboard")
@app.get("/plans")
@app.get("/profile")
async def signed_in_page(request: Request):
    return {"page": request.url.path.strip("/")}


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "planner-service"}


# Converters

def _user_out(user: User) -> UserOut:
    return UserOut(id=user.id, name=user.name, email=user.email)


def _plan_out(plan: Plan) -> PlanOut:
    return PlanOut(**asdict(plan), display_color=display_color(plan))


def _study_log_out(log: StudyLog) -> StudyLogOut:
    return StudyLogOut(**asdict(log))


def _pomodoro_out(settings: PomodoroSettings) -> PomodoroSettingsModel:
    return PomodoroSettingsModel(**asdict(settings))


def _stats_out(stats: Stats) -> StatsResponse:
    return StatsResponse(**asdict(stats))


# Auth

@app.post("/api/auth/register", response_model=RegisterResponse, status_code=201)
async def register(request: RegisterRequest, store: PlannerStore = Depends(get_store)) -> RegisterResponse:
    user = store.register_user(request.name, request.email, request.password)
    return RegisterResponse(message="Registration successful", user=_user_out(user))


@app.post("/api/auth/login", response_model=LoginResponse)
async def login(request: LoginRequest, response: Response, store: PlannerStore = Depends(get_store)) -> LoginResponse:
    """
    Exchange credentials for a signed session token.

    The token is returned in the body for API clients and set as the
    session cookie for browsers.
    """
    user = store.authenticate(request.email, request.password)
    if user is None:
        raise AuthenticationError("Invalid email or password")

    token = issue_token(user.id)
    response.set_cookie(
        config.SESSION_COOKIE,
        token,
        max_age=config.SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
    )
    logger.info("User %s logged in", user.id)
    return LoginResponse(access_token=token, expires_in=config.SESSION_MAX_AGE, user=_user_out(user))


@app.get("/api/auth/session", response_model=UserOut)
async def session(user: User = Depends(current_user)) -> UserOut:
    return _user_out(user)


# Plans

@app.get("/api/plans", response_model=list[PlanOut])
async def list_plans(user: User = Depends(current_user), store: PlannerStore = Depends(get_store)) -> list[PlanOut]:
    """Plans owned by the current user, newest first."""
    return [_plan_out(plan) for plan in store.list_plans(user.id)]


@app.post("/api/plans", response_model=PlanOut, status_code=201)
async def create_plan(
        request: CreatePlanRequest,
        user: User = Depends(current_user),
        store: PlannerStore = Depends(get_store),
) -> PlanOut:
    plan = store.create_plan(
        user.id,
        name=request.name,
        start_date=request.start_date,
        end_date=request.end_date,
        description=request.description,
        color=request.color,
        parent_plan_id=request.parent_plan_id,
    )
    return _plan_out(plan)


@app.get("/api/plans/{plan_id}", response_model=PlanOut)
async def get_plan(plan_id: str, user: User = Depends(current_user), store: PlannerStore = Depends(get_store)) -> PlanOut:
    return _plan_out(store.get_plan(plan_id, user.id))


@app.patch("/api/plans/{plan_id}", response_model=PlanOut)
async def update_plan(
        plan_id: str,
        request: UpdatePlanRequest,
        user: User = Depends(current_user),
        store: PlannerStore = Depends(get_store),
) -> PlanOut:
    """Apply only the fields present in the request body."""
    plan = store.update_plan(plan_id, user.id, request.model_dump(exclude_unset=True))
    return _plan_out(plan)


@app.delete("/api/plans/{plan_id}", response_model=DeletePlanResponse)
async def delete_plan(
        plan_id: str,
        user: User = Depends(current_user),
        store: PlannerStore = Depends(get_store),
) -> DeletePlanResponse:
    """Delete a plan with all of its sub plans."""
    removed = store.delete_plan(plan_id, user.id)
    return DeletePlanResponse(message="Plan deleted", deleted_ids=removed)


@app.post("/api/admin/migrate-plans", response_model=MigrationResponse)
async def migrate_plans(user: User = Depends(current_user), store: PlannerStore = Depends(get_store)) -> MigrationResponse:
    """Assign every plan without an owner to the current user."""
    migrated = store.migrate_unowned_plans(user.id)
    return MigrationResponse(message=f"Migrated {migrated} plan(s)", migrated_count=migrated, user=user.email)


# Study logs

@app.get("/api/study-logs", response_model=list[StudyLogOut])
async def list_study_logs(
        plan_id: t.Optional[str] = Query(None, alias="planId"),
        user: User = Depends(current_user),
        store: PlannerStore = Depends(get_store),
) -> list[StudyLogOut]:
    return [_study_log_out(log) for log in store.list_study_logs(plan_id)]


@app.post("/api/study-logs", response_model=StudyLogOut, status_code=201)
async def create_study_log(
        request: CreateStudyLogRequest,
        user: User = Depends(current_user),
        store: PlannerStore = Depends(get_store),
) -> StudyLogOut:
    log = store.create_study_log(
        title=request.title,
        date=request.date,
        duration=request.duration,
        content=request.content,
        plan_id=request.plan_id,
    )
    return _study_log_out(log)


@app.get("/api/study-logs/{log_id}", response_model=StudyLogOut)
async def get_study_log(log_id: str, user: User = Depends(current_user), store: PlannerStore = Depends(get_store)) -> StudyLogOut:
    return _study_log_out(store.get_study_log(log_id))


@app.put("/api/study-logs/{log_id}", response_model=StudyLogOut)
async def update_study_log(
        log_id: str,
        request: UpdateStudyLogRequest,
        user: User = Depends(current_user),
        store: PlannerStore = Depends(get_store),
) -> StudyLogOut:
    return _study_log_out(store.update_study_log(log_id, request.model_dump(exclude_unset=True)))


@app.delete("/api/study-logs/{log_id}", response_model=MessageResponse)
async def delete_study_log(log_id: str, user: User = Depends(current_user), store: PlannerStore = Depends(get_store)) -> MessageResponse:
    store.delete_study_log(log_id)
    return MessageResponse(message="Study log deleted")


# Stats

@app.get("/api/stats", response_model=StatsResponse)
async def get_stats(
        today: t.Optional[date] = None,
        user: User = Depends(current_user),
        store: PlannerStore = Depends(get_store),
) -> StatsResponse:
    """
    Study totals, plan counts and the current week's trend.

    `today` pins the week the trend is computed for.
    """
    stats = compute_stats(store.list_plans(user.id), store.list_study_logs(), today=today)
    return _stats_out(stats)


# Timeline

@app.get("/api/timeline", response_model=TimelineResponse)
async def get_timeline(
        expanded: t.Optional[list[str]] = Query(None),
        start_year: int = Query(config.TIMELINE_START_YEAR, alias="startYear"),
        years: int = Query(config.TIMELINE_YEARS, ge=1, le=50),
        today: t.Optional[date] = None,
        user: User = Depends(current_user),
        store: PlannerStore = Depends(get_store),
) -> TimelineResponse:
    """
    Lay out the current user's plans on the quarter timeline.

    :param expanded: Ids of plans whose children are shown; repeat the parameter for several.
    :param start_year: First year on the axis.
    :param years: Number of years on the axis.
    :param today: Day for the "today" marker; defaults to the current date.
    """
    axis = AxisConfig(start_year=start_year, years=years, cell_width=config.TIMELINE_CELL_WIDTH)
    layout = compute_layout(
        store.list_plans(user.id),
        expanded={plan_id: True for plan_id in expanded or []},
        axis=axis,
        today=today or date.today(),
    )
    cells = [dict(asdict(cell), label=cell.label) for cell in build_quarter_cells(axis)]
    return TimelineResponse(
        cells=cells,
        bars=[asdict(bar) for bar in layout.bars],
        root_offsets=layout.root_offsets,
        total_width=layout.total_width,
        total_height=layout.total_height,
        skipped=layout.skipped,
        orphans=layout.orphans,
        today_offset=layout.today_offset,
    )


# Pomodoro settings

@app.get("/api/pomodoro-settings", response_model=PomodoroSettingsModel)
async def get_pomodoro_settings(user: User = Depends(current_user), store: PlannerStore = Depends(get_store)) -> PomodoroSettingsModel:
    return _pomodoro_out(store.get_pomodoro_settings(user.id))


@app.patch("/api/pomodoro-settings", response_model=PomodoroSettingsModel)
async def update_pomodoro_settings(
        request: UpdatePomodoroSettingsRequest,
        user: User = Depends(current_user),
        store: PlannerStore = Depends(get_store),
) -> PomodoroSettingsModel:
    settings = store.update_pomodoro_settings(user.id, request.model_dump(exclude_unset=True))
    return _pomodoro_out(settings)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(app, host=config.HOST, port=config.PORT)
