"""Assignment flow endpoints.

A flow is opened per (template, operator) and kept in memory under a uuid4
session id until it is closed, its dispatch succeeds, or it is older than
SESSION_TTL_SECONDS with nothing in flight.
"""
from __future__ import annotations
import logging
import time
from threading import Lock
from typing import Dict, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query

from coach.events.web_observers import get_events
from coach.infra.Cache_Service import CacheService
from coach.infra.Coaching_Gateway import CoachingGateway
from coach.logic.assignment.dispatcher import CloneDispatcher
from coach.logic.assignment.errors import (
    AssignmentValidationError, FlowBusyError, SelectionConflictError, TransportError,
)
from coach.logic.assignment.flow import AssignmentFlow, open_flow, load_existing_plans
from coach.logic.assignment.index import build_index
from coach.logic.assignment.reconciler import CacheReconciler
from coach.utilities.config import MAX_SESSIONS, SESSION_TTL_SECONDS
from coach.utilities.constants import RESOURCE_KINDS
from coach.utilities.validators import DispatchInput, OperatorInput, SelectAllInput, ToggleInput

router = APIRouter(prefix="/api")
logger = logging.getLogger(__name__)


class Services:
    """Engine components wired together for the web layer."""

    def __init__(self, gateway: Optional[CoachingGateway] = None, cache: Optional[CacheService] = None):
        self.gateway = gateway or CoachingGateway()
        self.cache = cache or CacheService()
        self.dispatcher = CloneDispatcher(self.gateway)
        self.reconciler = CacheReconciler(self.cache)


_services: Optional[Services] = None
_flows: Dict[str, AssignmentFlow] = {}
_flows_lock = Lock()


def get_services() -> Services:
    global _services
    if _services is None:
        _services = Services()
    return _services


def check_kind(kind: str) -> str:
    kind = kind.strip().lower()
    if kind not in RESOURCE_KINDS:
        raise HTTPException(status_code=404, detail=f"Unknown resource kind '{kind}'")
    return kind


def _get_flow(session_id: str) -> AssignmentFlow:
    with _flows_lock:
        flow = _flows.get(session_id)
    if flow is None or flow.closed or _expired(flow):
        raise HTTPException(status_code=404, detail="Assignment session not found")
    return flow


def _expired(flow: AssignmentFlow, now: Optional[float] = None) -> bool:
    now = time.monotonic() if now is None else now
    return not flow.busy and now - flow.opened_at > SESSION_TTL_SECONDS


def _prune_flows() -> None:
    """Drop closed and expired flows, then the oldest idle ones beyond MAX_SESSIONS.

    Busy flows are kept until their dispatch settles. Caller holds _flows_lock.
    """
    now = time.monotonic()
    for sid, flow in list(_flows.items()):
        if (flow.closed and not flow.busy) or _expired(flow, now):
            del _flows[sid]
    idle = sorted((f.opened_at, sid) for sid, f in _flows.items() if not f.busy)
    excess = len(_flows) - (MAX_SESSIONS - 1)
    for _, sid in idle[:max(excess, 0)]:
        _flows.pop(sid).closed = True
        logger.info("Evicted assignment session %s", sid)


def http_error(e: TransportError) -> HTTPException:
    if e.status_code == 404:
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=502, detail=str(e))


# -------------------- Flow --------------------
# session route first: "/assign/{kind}/{template_id}" would also match it
@router.get("/assign/sessions/{session_id}")
def get_assignment(session_id: str, search: str = Query(default="")):
    flow = _get_flow(session_id)
    return {"sessionId": session_id, **flow.view(search)}


@router.get("/assign/{kind}/{template_id}")
async def open_assignment(kind: str, template_id: str, role: str = Query(default="admin"),
                          trainer_id: Optional[str] = Query(default=None), search: str = Query(default=""),
                          services: Services = Depends(get_services)):
    """Open the assignment flow for a template and return the client list."""
    kind = check_kind(kind)
    try:
        operator = OperatorInput(role=role, trainer_id=trainer_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        flow = await open_flow(services.gateway, services.cache, kind, template_id,
                               operator.role, operator.trainer_id)
    except TransportError as e:
        raise http_error(e)
    session_id = str(uuid4())
    with _flows_lock:
        _prune_flows()
        _flows[session_id] = flow
    return {"sessionId": session_id, **flow.view(search)}


@router.post("/assign/sessions/{session_id}/toggle")
def toggle_client(session_id: str, payload: ToggleInput):
    flow = _get_flow(session_id)
    if flow.busy:
        raise HTTPException(status_code=409, detail="Assignment already in progress")
    if not flow.selection.in_roster(payload.client_id):
        raise HTTPException(status_code=400, detail=f"Client {payload.client_id} is not in this roster")
    if not flow.selection.toggle(payload.client_id):
        raise HTTPException(status_code=400, detail=f"Client {payload.client_id} already has this template")
    return {"selected": flow.selection.selected}


@router.post("/assign/sessions/{session_id}/select-all")
def select_all_clients(session_id: str, payload: SelectAllInput):
    flow = _get_flow(session_id)
    if flow.busy:
        raise HTTPException(status_code=409, detail="Assignment already in progress")
    visible = payload.visible_client_ids
    if visible is None:
        visible = flow.visible_client_ids(payload.search)
    return {"selected": flow.selection.select_all(visible)}


@router.post("/assign/sessions/{session_id}/dispatch")
async def dispatch_assignment(session_id: str, services: Services = Depends(get_services)):
    flow = _get_flow(session_id)
    try:
        plans = await load_existing_plans(services.gateway, services.cache, flow.kind)
        outcome = await flow.submit(services.dispatcher, services.reconciler, plans)
    except FlowBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except AssignmentValidationError as e:
        logger.warning("Rejected assignment for session %s: %s", session_id, e)
        raise HTTPException(status_code=400, detail=str(e))
    except TransportError as e:
        raise http_error(e)
    if not outcome.ok:
        raise HTTPException(status_code=502, detail=outcome.to_dict())
    with _flows_lock:
        _flows.pop(session_id, None)
    return outcome.to_dict()


@router.post("/assign/sessions/{session_id}/retry")
async def retry_assignment(session_id: str, services: Services = Depends(get_services)):
    flow = _get_flow(session_id)
    try:
        outcome = await flow.retry(services.dispatcher, services.reconciler)
    except FlowBusyError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not outcome.ok:
        raise HTTPException(status_code=502, detail=outcome.to_dict())
    with _flows_lock:
        _flows.pop(session_id, None)
    return outcome.to_dict()


@router.delete("/assign/sessions/{session_id}")
def close_assignment(session_id: str):
    """Close the flow. A dispatch already in flight still completes."""
    with _flows_lock:
        flow = _flows.pop(session_id, None)
    if flow is None:
        raise HTTPException(status_code=404, detail="Assignment session not found")
    flow.closed = True
    return {"closed": session_id, "inFlight": flow.busy}


# -------------------- Direct dispatch --------------------
@router.post("/assign/dispatch")
async def dispatch_direct(payload: DispatchInput, services: Services = Depends(get_services)):
    """Assign without a session; clients that already hold the template are rejected."""
    kind = payload.resource_kind
    try:
        template = await services.gateway.get_template(kind, payload.template_id)
        plans = await load_existing_plans(services.gateway, services.cache, kind)
        index = build_index(template, plans)
        conflicts = set(payload.client_ids) & index.assigned_client_ids
        if conflicts:
            raise SelectionConflictError(conflicts)
        outcome = await services.dispatcher.dispatch(template, kind, payload.client_ids)
    except AssignmentValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TransportError as e:
        raise http_error(e)
    if outcome.batch.succeeded:
        services.reconciler.reconcile(kind, outcome.batch.succeeded)
    if not outcome.ok:
        raise HTTPException(status_code=502, detail=outcome.to_dict())
    return outcome.to_dict()


# -------------------- Notifications & cache --------------------
@router.get("/assign/events")
def assignment_events(since: Optional[int] = Query(default=None)):
    return get_events(since)


@router.get("/cache/stale")
def stale_views(services: Services = Depends(get_services)):
    return {"stale": [list(k) for k in services.cache.stale_keys()]}
