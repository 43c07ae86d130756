"""Simple Event Bus / Observer implementation for assignment notifications.

Event names used so far:
  assignment.dispatched -> payload {"resource_kind", "template_id", "template_name", "client_ids"}
  assignment.failed -> payload {"resource_kind", "template_id", "template_name", "client_ids", "failed"}
  cache.invalidated -> payload {"resource_kind", "client_ids", "keys"}

Subscribers are callables taking (event_name, payload).
"""
from __future__ import annotations
import logging
from collections import defaultdict
from typing import Callable, Any, Dict, List

logger = logging.getLogger(__name__)

# --- Event name constants (used across modules) ---
ASSIGNMENT_DISPATCHED = "assignment.dispatched"
ASSIGNMENT_FAILED = "assignment.failed"
CACHE_INVALIDATED = "cache.invalidated"


class EventBus:
	def __init__(self):
		self._subscribers: Dict[str, List[Callable[[str, Any], None]]] = defaultdict(list)

	def subscribe(self, event_name: str, callback: Callable[[str, Any], None]):
		if callback not in self._subscribers[event_name]:
			self._subscribers[event_name].append(callback)

	def unsubscribe(self, event_name: str, callback: Callable[[str, Any], None]):
		try:
			self._subscribers[event_name].remove(callback)
		except (ValueError, KeyError):
			pass

	def publish(self, event_name: str, payload: Any):
		# A failing subscriber must not break the caller's write path
		for cb in list(self._subscribers.get(event_name, [])):
			try:
				cb(event_name, payload)
			except Exception:
				logger.exception("Error delivering %s to %s", event_name, cb)


# Shared by the web layer; engine components accept their own bus
GLOBAL_EVENT_BUS = EventBus()


__all__ = [
	'EventBus', 'GLOBAL_EVENT_BUS',
	'ASSIGNMENT_DISPATCHED', 'ASSIGNMENT_FAILED', 'CACHE_INVALIDATED'
]
