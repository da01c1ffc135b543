"""Error taxonomy shared by the planner store, REST service and client."""
from __future__ import annotations

import typing as t


class PlannerError(Exception):
    """Base class; `status_code` is the HTTP status the error maps to."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PlannerError):
    """Missing or malformed input."""
    status_code = 400


class AuthenticationError(PlannerError):
    """Missing, expired or invalid session."""
    status_code = 401


class AuthorizationError(PlannerError):
    """Valid session, but the resource belongs to someone else."""
    status_code = 403


class NotFoundError(PlannerError):
    """The id does not resolve to a record."""
    status_code = 404


class ConflictError(PlannerError):
    """The record would clash with an existing one (e.g. duplicate email)."""
    status_code = 409


class PlannerServiceError(PlannerError):
    """Unexpected failure in the service or while reaching it."""
    status_code = 500


_BY_STATUS: dict[int, type[PlannerError]] = {
    cls.status_code: cls
    for cls in (ValidationError, AuthenticationError, AuthorizationError, NotFoundError, ConflictError)
}


def error_for_status(status_code: int, message: str) -> PlannerError:
    """Rebuild a typed error from an HTTP status and message."""
    error_cls: t.Type[PlannerError] = _BY_STATUS.get(status_code, PlannerServiceError)
    return error_cls(message)
