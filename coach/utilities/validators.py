"""
Input validation schemas using Pydantic for the assignment endpoints.
"""
from pydantic import BaseModel, Field, field_validator
from typing import List, Optional

from coach.utilities.constants import RESOURCE_KINDS, ROLE_ADMIN, ROLE_TRAINER


def _clean_ids(values):
    return [str(v).strip() for v in values if v is not None and str(v).strip()]


class OperatorInput(BaseModel):
    """Who is opening the assignment flow (resolved upstream by auth)."""
    role: str = Field(ROLE_ADMIN, pattern=rf'^({ROLE_ADMIN}|{ROLE_TRAINER})$')
    trainer_id: Optional[str] = None

    @field_validator('trainer_id')
    @classmethod
    def strip_trainer(cls, v):
        if isinstance(v, str):
            v = v.strip()
        return v or None


class ToggleInput(BaseModel):
    """Schema for toggling one client in the selection."""
    client_id: str = Field(..., min_length=1)

    @field_validator('client_id')
    @classmethod
    def strip_whitespace(cls, v):
        """Remove leading/trailing whitespace."""
        v = v.strip()
        if not v:
            raise ValueError('client_id cannot be empty')
        return v


class SelectAllInput(BaseModel):
    """Schema for select-all over the currently visible clients.

    visible_client_ids is the list the operator sees; an empty list selects
    nobody. When it is omitted the session's roster is filtered by search.
    """
    visible_client_ids: Optional[List[str]] = None
    search: str = ""

    @field_validator('visible_client_ids')
    @classmethod
    def clean_ids(cls, v):
        if v is None:
            return None
        return _clean_ids(v)

    @field_validator('search')
    @classmethod
    def strip_search(cls, v):
        return v.strip()


class DispatchInput(BaseModel):
    """Schema for a direct dispatch without an open session."""
    resource_kind: str
    template_id: str = Field(..., min_length=1)
    client_ids: List[str] = Field(default_factory=list)

    @field_validator('resource_kind')
    @classmethod
    def validate_kind(cls, v):
        v = v.strip().lower()
        if v not in RESOURCE_KINDS:
            raise ValueError(f'resource_kind must be one of {", ".join(RESOURCE_KINDS)}')
        return v

    @field_validator('client_ids')
    @classmethod
    def clean_ids(cls, v):
        return _clean_ids(v)
