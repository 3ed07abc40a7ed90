# src/taskflow_sync/api/errors.py

from __future__ import annotations


class ApiError(Exception):
    """A TaskFlow API call failed (HTTP error status or transport failure)."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


class AuthenticationError(ApiError):
    """401: the token is missing, expired or revoked."""


class NotFoundError(ApiError):
    """404: the task or notification does not exist (or is not ours)."""
