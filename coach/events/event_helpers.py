"""Event helper utilities.

This module provides helper functions for publishing assignment-related events
on an event bus (the global one unless another is passed).

Quick import:
    from coach.events.event_helpers import (
        publish_dispatched, publish_failed, publish_invalidated
    )

"""
from __future__ import annotations
from typing import Iterable, Optional
from .Event_Bus import (
    EventBus, GLOBAL_EVENT_BUS,
    ASSIGNMENT_DISPATCHED, ASSIGNMENT_FAILED, CACHE_INVALIDATED
)

__all__ = [
    'publish_dispatched', 'publish_failed', 'publish_invalidated',
    'ASSIGNMENT_DISPATCHED', 'ASSIGNMENT_FAILED', 'CACHE_INVALIDATED'
]


def publish_dispatched(template, resource_kind: str, client_ids: Iterable[str], bus: Optional[EventBus] = None):
    """Publish an assignment.dispatched event."""
    (bus or GLOBAL_EVENT_BUS).publish(ASSIGNMENT_DISPATCHED, {
        'resource_kind': resource_kind,
        'template_id': template.id,
        'template_name': template.name,
        'client_ids': list(client_ids),
    })


def publish_failed(template, resource_kind: str, client_ids: Iterable[str], failed: Iterable[str],
                   bus: Optional[EventBus] = None):
    """Publish an assignment.failed event.

    `client_ids` is the whole batch, `failed` the subset whose clone call failed.
    """
    (bus or GLOBAL_EVENT_BUS).publish(ASSIGNMENT_FAILED, {
        'resource_kind': resource_kind,
        'template_id': template.id,
        'template_name': template.name,
        'client_ids': list(client_ids),
        'failed': list(failed),
    })


def publish_invalidated(resource_kind: str, client_ids: Iterable[str], keys: Iterable[tuple],
                        bus: Optional[EventBus] = None):
    """Publish a cache.invalidated event listing the view keys marked stale."""
    (bus or GLOBAL_EVENT_BUS).publish(CACHE_INVALIDATED, {
        'resource_kind': resource_kind,
        'client_ids': list(client_ids),
        'keys': [list(k) for k in keys],
    })
