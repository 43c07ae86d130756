"""Errors raised by the assignment engine.

Validation errors are raised before any network call. TransportError wraps a
failed clone/feed request. Duplicate assignments created by two operators at
once are not detected here at all; the platform must enforce uniqueness of
(templateId or name, clientId) when it writes.
"""
from typing import Optional


class AssignmentError(Exception):
    """Base class for assignment engine errors."""


class AssignmentValidationError(AssignmentError):
    """The request was rejected locally; nothing was sent."""


class EmptySelectionError(AssignmentValidationError):
    def __init__(self, message: str = "Please select at least one client"):
        super().__init__(message)


class SelectionConflictError(AssignmentValidationError):
    def __init__(self, client_ids):
        self.client_ids = sorted(client_ids)
        super().__init__(f"Clients already assigned to this template: {', '.join(self.client_ids)}")


class UnknownClientError(AssignmentValidationError):
    def __init__(self, client_ids):
        self.client_ids = sorted(client_ids)
        super().__init__(f"Clients not in this operator's roster: {', '.join(self.client_ids)}")


class FlowBusyError(AssignmentError):
    """A dispatch for this flow is still in flight."""


class TransportError(AssignmentError):
    """A request to the platform API failed (HTTP status or connection)."""

    def __init__(self, message: str, status_code: Optional[int] = None, client_id: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.client_id = client_id
