"""
TenderDesk - History Log Helpers
Append-only audit entries shared by tenders and clients.

JSON columns are only flushed when the attribute is reassigned, so every
helper here builds a new list instead of mutating the stored one.
"""

import copy
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def clone(value: Any, default: Any) -> Any:
    """Deep copy of a JSON sub-document, or `default` when unset"""
    if value is None:
        return default
    return copy.deepcopy(value)


def history_entry(actor, action: str, details: Optional[str] = None) -> Dict[str, Any]:
    entry = {
        "user_id": actor.id,
        "user": actor.name,
        "action": action,
        "timestamp": utc_now_iso(),
    }
    if details:
        entry["details"] = details
    return entry


def append_history(entity, actor, action: str, details: Optional[str] = None) -> Dict[str, Any]:
    """Append one entry to `entity.history` and return it"""
    entry = history_entry(actor, action, details)
    entity.history = [*(entity.history or []), entry]
    return entry
