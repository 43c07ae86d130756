"""Template domain entity: authored workout plan, diet plan or meal (read-only here)."""
from typing import Any, Dict, Optional


class Template:
    def __init__(self, id: str = "", resource_kind: str = "", name: str = "",
                 content: Optional[Dict[str, Any]] = None):
        self.id = id
        self.resource_kind = resource_kind
        self.name = name
        self.content = dict(content) if content else {}

    @property
    def template_key(self) -> str:
        '''Stable key for a template: its id, or its name when it has none.'''
        return str(self.id or "").strip() or str(self.name or "").strip()

    def __str__(self) -> str:
        return f"{self.name} ({self.resource_kind}, id={self.id or '-'})"

    __repr__ = __str__

    @staticmethod
    def from_dict(data, resource_kind: str = ""):
        d = dict(data) if isinstance(data, dict) else {}
        content = {k: v for k, v in d.items() if k not in ("_id", "id", "name")}
        return Template(
            id=str(d.get("_id") or d.get("id") or "").strip(),
            resource_kind=resource_kind,
            name=d.get("name") or "",
            content=content,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "resourceKind": self.resource_kind,
            "name": self.name,
            "content": self.content,
        }
