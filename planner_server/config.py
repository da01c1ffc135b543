# -*- coding: utf-8 -*-
import os

# Secret used to sign session tokens - must be overridden outside development
SECRET_KEY = os.getenv("PLANNER_SECRET_KEY", "dev-secret-change-me-before-deploying")

# Session lifetime in seconds (30 days)
SESSION_MAX_AGE = int(os.getenv("PLANNER_SESSION_MAX_AGE", str(30 * 24 * 60 * 60)))
SESSION_COOKIE = "session-token"

LOG_LEVEL = os.getenv("PLANNER_LOG_LEVEL", "INFO")

# Timeline axis: first year shown, number of years, pixel width of a quarter
TIMELINE_START_YEAR = int(os.getenv("TIMELINE_START_YEAR", "2025"))
TIMELINE_YEARS = int(os.getenv("TIMELINE_YEARS", "5"))
TIMELINE_CELL_WIDTH = float(os.getenv("TIMELINE_CELL_WIDTH", "300"))

HOST = os.getenv("PLANNER_HOST", "0.0.0.0")
PORT = int(os.getenv("PLANNER_PORT", "8000"))
