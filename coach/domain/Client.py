"""Client and Package domain entities, as supplied by the roster."""
from typing import Any, Dict, Optional

from coach.domain.AssignedPlan import normalize_ref


class Package:
    def __init__(self, id: str = "", name: str = "", details: Optional[Dict[str, Any]] = None):
        self.id = id
        self.name = name
        self.details = dict(details) if details else {}

    @staticmethod
    def from_dict(data):
        d = dict(data) if isinstance(data, dict) else {}
        details = {k: v for k, v in d.items() if k not in ("_id", "id", "name")}
        return Package(id=str(d.get("_id") or d.get("id") or "").strip(), name=d.get("name") or "", details=details)

    def to_dict(self):
        return {"id": self.id, "name": self.name, **self.details}


class Client:
    def __init__(self, id: str = "", name: str = "", email: str = "", package_id: str = ""):
        self.id = id
        self.name = name
        self.email = email
        self.package_id = package_id

    def matches(self, search: str) -> bool:
        '''Case-insensitive search on name or email; empty search matches everyone.'''
        q = (search or "").strip().lower()
        if not q:
            return True
        return q in (self.name or "").lower() or q in (self.email or "").lower()

    def __str__(self) -> str:
        return f"{self.name} <{self.email}>"

    __repr__ = __str__

    @staticmethod
    def from_dict(data):
        d = dict(data) if isinstance(data, dict) else {}
        package_id, _ = normalize_ref(d.get("packageId"))
        return Client(
            id=str(d.get("_id") or d.get("id") or "").strip(),
            name=d.get("name") or "",
            email=d.get("email") or "",
            package_id=package_id,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "packageId": self.package_id,
        }
