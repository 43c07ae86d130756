"""Web-facing observers for assignment events.

This module subscribes to the GLOBAL_EVENT_BUS for:
  - assignment.dispatched
  - assignment.failed

and stores a lightweight in-memory ring buffer of operator notifications
("Workout plan assigned to 3 client(s)") that the web layer can poll.

Design:
  * Each event stored with an auto-increment integer id (cursor) so clients
    can request only newer events (since=<last_id_seen>).
  * A Lock guards the buffer; it is per-process.
  * MAX_EVENTS caps memory use.
"""
from __future__ import annotations
from typing import List, Dict, Any
from threading import Lock
from datetime import datetime, timezone

from coach.utilities.config import MAX_EVENTS
from coach.utilities.constants import RESOURCE_LABELS
from .Event_Bus import (
    GLOBAL_EVENT_BUS, ASSIGNMENT_DISPATCHED, ASSIGNMENT_FAILED
)

_lock = Lock()
_events: List[Dict[str, Any]] = []
_next_id = 1
_started = False


def _message(event_name: str, payload: Dict[str, Any]) -> str:
    kind = payload.get('resource_kind', '')
    label = RESOURCE_LABELS.get(kind, kind.title())
    if event_name == ASSIGNMENT_DISPATCHED:
        return f"{label} plan assigned to {len(payload.get('client_ids', []))} client(s)"
    return f"Failed to assign {label.lower()} plan"


def _record(event_name: str, payload: Any):  # signature expected by EventBus
    global _next_id
    payload = payload if isinstance(payload, dict) else {}
    with _lock:
        evt = {
            'id': _next_id,
            'type': event_name,
            'ts': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'message': _message(event_name, payload),
        }
        for k in ('resource_kind', 'template_id', 'template_name', 'client_ids', 'failed'):
            if k in payload:
                evt[k] = payload[k]
        _events.append(evt)
        _next_id += 1
        # Trim buffer
        if len(_events) > MAX_EVENTS:
            del _events[: len(_events) - MAX_EVENTS]


def start():
    """Idempotent start: subscribe observers once."""
    global _started
    if _started:
        return
    GLOBAL_EVENT_BUS.subscribe(ASSIGNMENT_DISPATCHED, _record)
    GLOBAL_EVENT_BUS.subscribe(ASSIGNMENT_FAILED, _record)
    _started = True


def get_events(since: int | None = None) -> Dict[str, Any]:
    """Return events newer than 'since' (exclusive).

    If since is None, returns the last N (up to MAX_EVENTS) events.
    Response includes next_cursor (largest id) so client can poll with since=next_cursor.
    """
    with _lock:
        if since is None:
            data = list(_events)
        else:
            data = [e for e in _events if e['id'] > since]
        next_cursor = _events[-1]['id'] if _events else since or 0
    return {'events': data, 'next_cursor': next_cursor}


__all__ = ['start', 'get_events']
