# src/taskflow_sync/core/confirm.py

from __future__ import annotations

import inspect
import logging

from .ports import Confirm

logger = logging.getLogger(__name__)


async def is_confirmed(confirm: Confirm | None) -> bool:
    """Ask for confirmation; no callback or a failing one means 'no'."""
    if confirm is None:
        return False
    try:
        answer = confirm()
        if inspect.isawaitable(answer):
            answer = await answer
    except Exception:
        logger.exception("Confirmation prompt failed")
        return False
    return bool(answer)
