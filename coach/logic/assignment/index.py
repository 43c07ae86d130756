"""Which clients already hold a clone of a template.

A plan counts as a clone of the template when, in order:
  1. both the template id and the plan's templateId (trimmed) are non-empty and equal, or
  2. the plan's name equals the template name exactly after trimming
     (legacy plans created before templateId was stored).

Only client copies (isTemplate explicitly False) are considered. Build the
index from the complete feed for the resource kind, never a paginated slice,
otherwise clients outside the page would look eligible.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set

from coach.domain.AssignedPlan import AssignedPlan
from coach.domain.Client import Client, Package
from coach.domain.Template import Template


@dataclass
class AssignmentIndexEntry:
    template_key: str
    assigned_client_ids: Set[str] = field(default_factory=set)
    assigned_client_names: List[str] = field(default_factory=list)

    def __contains__(self, client_id) -> bool:
        return str(client_id).strip() in self.assigned_client_ids


def _as_plan(plan: Any) -> AssignedPlan:
    if isinstance(plan, AssignedPlan):
        return plan
    return AssignedPlan.from_dict(plan)


def is_same_template(template: Template, plan: AssignedPlan) -> bool:
    template_id = str(template.id or "").strip()
    plan_template_id = plan.linked_template_id
    if template_id and plan_template_id and plan_template_id == template_id:
        return True
    template_name = (template.name or "").strip()
    return bool(template_name) and (plan.name or "").strip() == template_name


def build_index(template: Template, existing_plans: Iterable[Any]) -> AssignmentIndexEntry:
    entry = AssignmentIndexEntry(template_key=template.template_key)
    for raw in existing_plans:
        plan = _as_plan(raw)
        if not plan.client_id or not plan.is_template_instance:
            continue
        if not is_same_template(template, plan):
            continue
        if plan.client_id not in entry.assigned_client_ids:
            entry.assigned_client_ids.add(plan.client_id)
            if plan.client_name:
                entry.assigned_client_names.append(plan.client_name)
    return entry


def annotate_roster(clients: Iterable[Client], index: AssignmentIndexEntry,
                    packages: Optional[Iterable[Package]] = None, search: str = "") -> List[Dict[str, Any]]:
    """Rows for the operator view: every client matching the search, assigned or not."""
    package_by_id = {p.id: p for p in (packages or [])}
    rows = []
    for client in clients:
        if not client.matches(search):
            continue
        pkg = package_by_id.get(client.package_id)
        row = client.to_dict()
        row["package"] = pkg.to_dict() if pkg else None
        row["isAlreadyAssigned"] = client.id in index.assigned_client_ids
        rows.append(row)
    return rows


def all_assigned(rows: List[Dict[str, Any]], index: AssignmentIndexEntry) -> bool:
    '''True when there is something visible and every visible client already has the template.'''
    return bool(index.assigned_client_ids) and bool(rows) and all(r["isAlreadyAssigned"] for r in rows)
