"""AssignedPlan domain entity: one client's personal copy of a template."""
from typing import Any, Optional, Tuple


def normalize_ref(value: Any) -> Tuple[str, str]:
    '''Reduce a raw id or a denormalized {_id, name} object to (id, name).'''
    if value is None:
        return "", ""
    if isinstance(value, dict):
        ref = value.get("_id") or value.get("id") or ""
        name = value.get("name") or ""
        return str(ref).strip(), str(name)
    return str(value).strip(), ""


class AssignedPlan:
    def __init__(self, id: str = "", name: str = "", client_id: str = "", client_name: str = "",
                 template_id: Optional[str] = None, resource_kind: str = "",
                 is_template: Optional[bool] = False):
        self.id = id
        self.name = name
        self.client_id = client_id
        self.client_name = client_name
        # Legacy records have no template link; the name is then the only key
        self.template_id = template_id
        self.resource_kind = resource_kind
        self.is_template = is_template

    @property
    def is_template_instance(self) -> bool:
        '''True for a client's clone, False for template records (or unknown flag).'''
        return self.is_template is False

    @property
    def linked_template_id(self) -> str:
        return str(self.template_id).strip() if self.template_id is not None else ""

    def __str__(self) -> str:
        return f"{self.name} -> {self.client_name or self.client_id} (template: {self.linked_template_id or '-'})"

    __repr__ = __str__

    @staticmethod
    def from_dict(data, resource_kind: str = ""):
        '''Creates an AssignedPlan from an API record. Ignores unknown keys.'''
        d = dict(data) if isinstance(data, dict) else {}
        client_id, client_name = normalize_ref(d.get("clientId"))
        template_id = d.get("templateId")
        if isinstance(template_id, dict):
            template_id = template_id.get("_id") or template_id.get("id")
        return AssignedPlan(
            id=str(d.get("_id") or d.get("id") or ""),
            name=d.get("name") or "",
            client_id=client_id,
            client_name=client_name,
            template_id=str(template_id) if template_id is not None else None,
            resource_kind=resource_kind or d.get("resourceKind", ""),
            is_template=d.get("isTemplate"),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "clientId": self.client_id,
            "clientName": self.client_name,
            "templateId": self.template_id,
            "resourceKind": self.resource_kind,
            "isTemplate": self.is_template,
        }
