# src/taskflow_sync/storage/team_filter.py

from __future__ import annotations

import json

from ..core.ports import KeyValueStorage
from .local_storage import TEAM_FILTER_KEY


def read_team_filter(storage: KeyValueStorage) -> str:
    """Last selected team id, or '' when no filter is set."""
    raw = storage.get_item(TEAM_FILTER_KEY)
    if not raw:
        return ""
    try:
        val = json.loads(raw)
    except ValueError:
        # Older front-end builds stored the bare id.
        return raw.strip()
    return str(val).strip() if isinstance(val, (str, int)) else ""


def write_team_filter(storage: KeyValueStorage, team_id: str | None) -> None:
    team_id = (team_id or "").strip()
    if not team_id:
        storage.remove_item(TEAM_FILTER_KEY)
        return
    storage.set_item(TEAM_FILTER_KEY, json.dumps(team_id))
