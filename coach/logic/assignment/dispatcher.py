"""Fan-out of clone-into-client writes for one template.

One POST per client, all issued concurrently on a shared AsyncClient and
awaited as a single batch. Every call runs to completion: a failure does not
cancel its siblings and nothing already created is rolled back. The batch
status is "success" only if every call succeeded; the per-client results are
kept in Outcome.batch so a caller can report partial failures and retry only
the clients that failed.

Retrying is never automatic. Two operators dispatching the same template to
the same client at once both succeed and create two plans; the
Idempotency-Key header sent with each clone lets the platform deduplicate.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import httpx

from coach.domain.AssignedPlan import AssignedPlan
from coach.domain.Template import Template
from coach.events.Event_Bus import EventBus
from coach.events.event_helpers import publish_dispatched, publish_failed
from coach.infra.Coaching_Gateway import CoachingGateway
from coach.logic.assignment.errors import EmptySelectionError, TransportError

logger = logging.getLogger(__name__)

SUCCESS = "success"
FAILURE = "failure"


@dataclass
class CloneResult:
    client_id: str
    ok: bool
    plan: Optional[AssignedPlan] = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    def to_dict(self):
        return {
            "clientId": self.client_id,
            "status": SUCCESS if self.ok else FAILURE,
            "plan": self.plan.to_dict() if self.plan else None,
            "error": self.error,
            "statusCode": self.status_code,
        }


@dataclass
class BatchResult:
    per_client: Dict[str, CloneResult] = field(default_factory=dict)

    @property
    def succeeded(self) -> List[str]:
        return [cid for cid, r in self.per_client.items() if r.ok]

    @property
    def failed(self) -> List[str]:
        return [cid for cid, r in self.per_client.items() if not r.ok]

    @property
    def created_plans(self) -> List[AssignedPlan]:
        return [r.plan for r in self.per_client.values() if r.ok and r.plan is not None]


@dataclass
class Outcome:
    status: str
    client_ids: List[str]
    batch: BatchResult = field(default_factory=BatchResult)

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS

    def to_dict(self):
        return {
            "status": self.status,
            "clientIds": list(self.client_ids),
            "succeeded": self.batch.succeeded,
            "failed": self.batch.failed,
            "perClient": {cid: r.to_dict() for cid, r in self.batch.per_client.items()},
        }


def idempotency_key(template: Template, client_id: str) -> str:
    return f"{template.template_key}:{client_id}"


class CloneDispatcher:
    def __init__(self, gateway: CoachingGateway, bus: Optional[EventBus] = None):
        self.gateway = gateway
        self.bus = bus

    async def _clone_one(self, http: httpx.AsyncClient, template: Template, kind: str,
                         client_id: str) -> CloneResult:
        try:
            plan = await self.gateway.clone(http, kind, template.id, client_id,
                                            idempotency_key=idempotency_key(template, client_id))
        except TransportError as e:
            logger.warning("Clone of %s %s for client %s failed: %s", kind, template.id, client_id, e)
            return CloneResult(client_id=client_id, ok=False, error=str(e), status_code=e.status_code)
        return CloneResult(client_id=client_id, ok=True, plan=plan)

    async def dispatch(self, template: Template, kind: str, client_ids: Iterable[str]) -> Outcome:
        """Clone template into every client; raises EmptySelectionError before any request."""
        # one write per client, order preserved
        ids = list(dict.fromkeys(str(c).strip() for c in client_ids if str(c).strip()))
        if not ids:
            raise EmptySelectionError()

        logger.info("Dispatching %s template %s (%s) to %d client(s)", kind, template.id, template.name, len(ids))
        async with self.gateway.session() as http:
            results = await asyncio.gather(*(self._clone_one(http, template, kind, cid) for cid in ids))

        batch = BatchResult(per_client={r.client_id: r for r in results})
        if batch.failed:
            logger.error("Assignment of %s %s failed for %d of %d client(s): %s",
                         kind, template.id, len(batch.failed), len(ids), ", ".join(batch.failed))
            publish_failed(template, kind, ids, batch.failed, bus=self.bus)
            return Outcome(status=FAILURE, client_ids=ids, batch=batch)

        publish_dispatched(template, kind, ids, bus=self.bus)
        return Outcome(status=SUCCESS, client_ids=ids, batch=batch)

    async def retry(self, template: Template, kind: str, previous: Outcome) -> Outcome:
        """Re-dispatch only the clients whose clone failed in a previous outcome."""
        failed = previous.batch.failed
        if not failed:
            raise ValueError("Nothing to retry: every client in the batch succeeded")
        return await self.dispatch(template, kind, failed)
