"""Mark every cached view that depends on a batch of assignments stale."""
from __future__ import annotations
import logging
from typing import Iterable, List, Optional

from coach.events.Event_Bus import EventBus
from coach.events.event_helpers import publish_invalidated
from coach.infra.Cache_Service import CacheKey, CacheService
from coach.utilities.constants import (
    WORKOUT, DIET, MEAL,
    WORKOUT_VIEWS, WORKOUT_CLIENT_VIEW, DIET_VIEWS, DIET_CLIENT_VIEW,
)

logger = logging.getLogger(__name__)


def views_for(kind: str, client_ids: Iterable[str]) -> List[CacheKey]:
    """View keys affected by assigning a template of `kind` to these clients.

    Meals are assigned as synthesized diet plans, so meal and diet share one set.
    """
    if kind == WORKOUT:
        shared, per_client = WORKOUT_VIEWS, WORKOUT_CLIENT_VIEW
    elif kind in (DIET, MEAL):
        shared, per_client = DIET_VIEWS, DIET_CLIENT_VIEW
    else:
        raise ValueError(f"Unknown resource kind: {kind!r}")
    keys: List[CacheKey] = [(path,) for path in shared]
    for cid in dict.fromkeys(client_ids):
        keys.append((per_client.format(client_id=cid),))
    return keys


class CacheReconciler:
    def __init__(self, cache: CacheService, bus: Optional[EventBus] = None):
        self.cache = cache
        self.bus = bus

    def reconcile(self, kind: str, client_ids: Iterable[str]) -> List[CacheKey]:
        ids = [str(c).strip() for c in client_ids if str(c).strip()]
        keys = views_for(kind, ids)
        for key in keys:
            self.cache.invalidate(key)
        logger.info("Reconciled %d %s view(s) for %d client(s)", len(keys), kind, len(ids))
        publish_invalidated(kind, ids, keys, bus=self.bus)
        return keys
