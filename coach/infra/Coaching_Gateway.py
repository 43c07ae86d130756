"""HTTP access to the coaching platform API.

Covers the roster (clients, packages), the template catalog, the
existing-assignment feeds and the per-kind clone endpoints. Every call goes
through httpx.AsyncClient; failures are raised as TransportError.
"""
from __future__ import annotations
import logging
from typing import Any, List, Optional

import httpx

from coach.domain.AssignedPlan import AssignedPlan
from coach.domain.Client import Client, Package
from coach.domain.Template import Template
from coach.logic.assignment.errors import TransportError
from coach.utilities.config import COACH_API_BASE_URL, COACH_API_TOKEN
from coach.utilities.constants import (
    CLIENTS_PATH, TRAINER_CLIENTS_PATH, PACKAGES_PATH,
    TEMPLATE_LIST_PATHS, TEMPLATE_DETAIL_PATHS, EXISTING_PLAN_FEEDS, CLONE_PATHS,
    IDEMPOTENCY_HEADER, ROLE_ADMIN,
)

logger = logging.getLogger(__name__)


def _check_kind(kind: str) -> str:
    if kind not in CLONE_PATHS:
        raise ValueError(f"Unknown resource kind: {kind!r}")
    return kind


class CoachingGateway:
    def __init__(self, base_url: str = COACH_API_BASE_URL, token: str = COACH_API_TOKEN,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._transport = transport

    def session(self) -> httpx.AsyncClient:
        """New AsyncClient bound to the platform API; use as `async with`."""
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return httpx.AsyncClient(base_url=self.base_url, headers=headers, transport=self._transport)

    async def _request(self, http: httpx.AsyncClient, method: str, path: str,
                       client_id: Optional[str] = None, **kwargs) -> Any:
        try:
            response = await http.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"{method} {path} failed with {e.response.status_code}: {e.response.text}",
                status_code=e.response.status_code, client_id=client_id,
            ) from e
        except httpx.RequestError as e:
            raise TransportError(f"{method} {path} failed: {e}", client_id=client_id) from e
        if not response.content:
            return None
        return response.json()

    async def _get_json(self, path: str) -> Any:
        async with self.session() as http:
            return await self._request(http, "GET", path)

    # -------------------- Roster --------------------
    async def list_clients(self, role: str = ROLE_ADMIN, trainer_id: Optional[str] = None) -> List[Client]:
        """Clients visible to the operator: all for admins, own clients for trainers."""
        if role == ROLE_ADMIN:
            path = CLIENTS_PATH
        elif trainer_id:
            path = TRAINER_CLIENTS_PATH.format(trainer_id=trainer_id)
        else:
            return []
        data = await self._get_json(path) or []
        return [Client.from_dict(c) for c in data]

    async def list_packages(self) -> List[Package]:
        data = await self._get_json(PACKAGES_PATH) or []
        return [Package.from_dict(p) for p in data]

    # -------------------- Catalog --------------------
    async def list_templates(self, kind: str) -> List[Template]:
        data = await self._get_json(TEMPLATE_LIST_PATHS[_check_kind(kind)]) or []
        return [Template.from_dict(t, kind) for t in data]

    async def get_template(self, kind: str, template_id: str) -> Template:
        path = TEMPLATE_DETAIL_PATHS[_check_kind(kind)].format(template_id=template_id)
        data = await self._get_json(path)
        if not data:
            raise TransportError(f"Template {template_id} not found", status_code=404)
        return Template.from_dict(data, kind)

    # -------------------- Existing assignments --------------------
    async def list_existing_plans(self, kind: str) -> List[AssignedPlan]:
        """The whole non-paginated feed of plans for the kind (meals share the diet feed)."""
        data = await self._get_json(EXISTING_PLAN_FEEDS[_check_kind(kind)]) or []
        return [AssignedPlan.from_dict(p, kind) for p in data]

    # -------------------- Clone --------------------
    async def clone(self, http: httpx.AsyncClient, kind: str, template_id: str, client_id: str,
                    idempotency_key: Optional[str] = None) -> AssignedPlan:
        """POST one clone-into-client write and return the created plan."""
        path = CLONE_PATHS[_check_kind(kind)].format(template_id=template_id)
        headers = {IDEMPOTENCY_HEADER: idempotency_key} if idempotency_key else None
        data = await self._request(http, "POST", path, client_id=client_id,
                                   json={"clientId": client_id}, headers=headers)
        plan = AssignedPlan.from_dict(data or {}, kind)
        if not plan.client_id:
            plan.client_id = client_id
        return plan
