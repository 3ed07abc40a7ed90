# src/taskflow_sync/core/results.py

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class OpResult:
    """
    Outcome of an optimistic operation.

    Local state is committed before the server call, so a failure here means
    client and server may disagree until the next authoritative fetch. Callers
    decide whether to surface it (toast/retry) or ignore it.
    """

    ok: bool
    error: str | None = None
    cancelled: bool = False

    @classmethod
    def success(cls) -> OpResult:
        return cls(ok=True)

    @classmethod
    def failure(cls, error: BaseException | str) -> OpResult:
        return cls(ok=False, error=str(error) or error.__class__.__name__)

    @classmethod
    def aborted(cls, reason: str = "cancelled") -> OpResult:
        return cls(ok=False, error=reason, cancelled=True)
