"""One operator's assignment flow for one template.

Opening a flow reads the roster, the packages and the complete existing-plan
feed, then builds the index. The flow owns the selection and is busy while a
dispatch is in flight. Closing the flow or cancelling the caller does not
cancel that dispatch: the batch runs in its own task, its clones land, and the
flow is reconciled and released only once the batch settles.
"""
from __future__ import annotations
import asyncio
import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from coach.domain.AssignedPlan import AssignedPlan
from coach.domain.Client import Client, Package
from coach.domain.Template import Template
from coach.infra.Cache_Service import CacheService
from coach.infra.Coaching_Gateway import CoachingGateway
from coach.logic.assignment.dispatcher import CloneDispatcher, Outcome
from coach.logic.assignment.errors import FlowBusyError
from coach.logic.assignment.index import AssignmentIndexEntry, build_index, annotate_roster, all_assigned
from coach.logic.assignment.reconciler import CacheReconciler
from coach.logic.assignment.selection import SelectionSet
from coach.utilities.constants import EXISTING_PLAN_FEEDS, ROLE_ADMIN

logger = logging.getLogger(__name__)


async def load_existing_plans(gateway: CoachingGateway, cache: CacheService, kind: str) -> List[AssignedPlan]:
    """Existing-plan feed for the kind, refetched only when its cache entry is stale."""
    return await cache.get_or_fetch((EXISTING_PLAN_FEEDS[kind],), lambda: gateway.list_existing_plans(kind))


class AssignmentFlow:
    def __init__(self, template: Template, kind: str, clients: Iterable[Client] = (),
                 packages: Iterable[Package] = (), existing_plans: Iterable[Any] = ()):
        self.template = template
        self.kind = kind
        self.clients = list(clients)
        self.packages = list(packages)
        self.index: AssignmentIndexEntry = build_index(template, existing_plans)
        self.selection = SelectionSet(self.index.assigned_client_ids, roster_client_ids=[c.id for c in self.clients])
        self.busy = False
        self.closed = False
        self.opened_at = time.monotonic()
        self.last_outcome: Optional[Outcome] = None
        self._pending: Optional[asyncio.Future] = None

    def rows(self, search: str = "") -> List[Dict[str, Any]]:
        return annotate_roster(self.clients, self.index, self.packages, search)

    def visible_client_ids(self, search: str = "") -> List[str]:
        return [c.id for c in self.clients if c.matches(search)]

    def refresh(self, existing_plans: Iterable[Any]) -> None:
        """Rebuild the index from a newer feed and re-apply it to the selection."""
        self.index = build_index(self.template, existing_plans)
        self.selection.refresh(self.index.assigned_client_ids)

    def view(self, search: str = "") -> Dict[str, Any]:
        rows = self.rows(search)
        return {
            "template": self.template.to_dict(),
            "resourceKind": self.kind,
            "clients": rows,
            "assignedClientIds": sorted(self.index.assigned_client_ids),
            "assignedClientNames": list(self.index.assigned_client_names),
            "allAssigned": all_assigned(rows, self.index),
            "selected": self.selection.selected,
            "busy": self.busy,
        }

    async def _run(self, batch, reconciler: CacheReconciler) -> Outcome:
        self.busy = True
        # settles on its own even if our caller is cancelled
        self._pending = asyncio.ensure_future(self._settle(batch, reconciler))
        self._pending.add_done_callback(self._log_failure)
        return await asyncio.shield(self._pending)

    def _log_failure(self, task: asyncio.Future) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Assignment of %s %s did not settle: %s", self.kind, self.template.id, task.exception())

    async def _settle(self, batch, reconciler: CacheReconciler) -> Outcome:
        try:
            outcome = await batch
            self._record(outcome, reconciler)
        finally:
            self.busy = False
        return outcome

    def _record(self, outcome: Outcome, reconciler: CacheReconciler) -> None:
        succeeded = outcome.batch.succeeded
        if succeeded:
            # created plans exist even when the batch failed
            reconciler.reconcile(self.kind, succeeded)
            self.index.assigned_client_ids.update(succeeded)
            self.selection.refresh(self.index.assigned_client_ids)
        self.selection.clear()
        if outcome.ok:
            self.closed = True
        else:
            for cid in outcome.batch.failed:
                self.selection.toggle(cid)
        self.last_outcome = outcome

    async def submit(self, dispatcher: CloneDispatcher, reconciler: CacheReconciler,
                     existing_plans: Optional[Iterable[Any]] = None) -> Outcome:
        """Validate the selection (against a fresher feed when given) and dispatch it."""
        if self.busy:
            raise FlowBusyError("Assignment already in progress")
        if existing_plans is not None:
            self.refresh(existing_plans)
        client_ids = self.selection.finalize()
        return await self._run(dispatcher.dispatch(self.template, self.kind, client_ids), reconciler)

    async def retry(self, dispatcher: CloneDispatcher, reconciler: CacheReconciler) -> Outcome:
        """Dispatch again to the clients that failed last time, and only those."""
        if self.busy:
            raise FlowBusyError("Assignment already in progress")
        if self.last_outcome is None:
            raise ValueError("Nothing to retry: no batch was dispatched")
        return await self._run(dispatcher.retry(self.template, self.kind, self.last_outcome), reconciler)


async def open_flow(gateway: CoachingGateway, cache: CacheService, kind: str, template_id: str,
                    role: str = ROLE_ADMIN, trainer_id: Optional[str] = None) -> AssignmentFlow:
    template = await gateway.get_template(kind, template_id)
    clients, packages, plans = await asyncio.gather(
        gateway.list_clients(role, trainer_id),
        gateway.list_packages(),
        load_existing_plans(gateway, cache, kind),
    )
    flow = AssignmentFlow(template, kind, clients, packages, plans)
    logger.info("Opened %s assignment for %s: %d client(s), %d already assigned",
                kind, template.name, len(flow.clients), len(flow.index.assigned_client_ids))
    return flow
