"""Operator's choice of clients for one assignment flow."""
from __future__ import annotations
import logging
from typing import Iterable, List, Optional, Set

from coach.logic.assignment.errors import EmptySelectionError, SelectionConflictError, UnknownClientError

logger = logging.getLogger(__name__)


def _clean(client_ids: Iterable[str]) -> Set[str]:
    ids = {str(c).strip() for c in client_ids}
    ids.discard("")
    return ids


class SelectionSet:
    """Selected client ids; never contains an already-assigned client.

    When a roster is given, only clients on it can be selected. Without one
    any non-assigned id is accepted.
    """

    def __init__(self, assigned_client_ids: Iterable[str] = (), roster_client_ids: Optional[Iterable[str]] = None):
        self._assigned: Set[str] = _clean(assigned_client_ids)
        self._roster: Optional[Set[str]] = None if roster_client_ids is None else _clean(roster_client_ids)
        self._selected: Set[str] = set()

    @property
    def assigned_client_ids(self) -> Set[str]:
        return set(self._assigned)

    @property
    def selected(self) -> List[str]:
        return sorted(self._selected)

    def __contains__(self, client_id) -> bool:
        return str(client_id).strip() in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def in_roster(self, client_id: str) -> bool:
        cid = str(client_id).strip()
        return bool(cid) and (self._roster is None or cid in self._roster)

    def toggle(self, client_id: str) -> bool:
        '''Flip membership. Returns False (and changes nothing) for assigned or unknown clients.'''
        cid = str(client_id).strip()
        if not self.in_roster(cid):
            logger.warning("Ignoring toggle of client %r outside the roster", cid)
            return False
        if cid in self._assigned:
            logger.warning("Ignoring toggle of already assigned client %s", cid)
            return False
        if cid in self._selected:
            self._selected.remove(cid)
        else:
            self._selected.add(cid)
        return True

    def eligible(self, visible_client_ids: Iterable[str]) -> Set[str]:
        visible = _clean(visible_client_ids)
        if self._roster is not None:
            visible &= self._roster
        return visible - self._assigned

    def select_all(self, visible_client_ids: Iterable[str]) -> List[str]:
        """Select every visible, eligible client; a second call clears the selection."""
        eligible = self.eligible(visible_client_ids)
        if self._selected == eligible:
            self._selected = set()
        else:
            self._selected = eligible
        return self.selected

    def clear(self) -> None:
        self._selected = set()

    def refresh(self, assigned_client_ids: Iterable[str]) -> None:
        '''Replace the assigned set with a newer index; finalize() reports any overlap.'''
        self._assigned = _clean(assigned_client_ids)

    def finalize(self) -> List[str]:
        """Client ids to dispatch, re-checked against the roster and the assigned set."""
        if not self._selected:
            raise EmptySelectionError()
        if self._roster is not None:
            unknown = self._selected - self._roster
            if unknown:
                raise UnknownClientError(unknown)
        conflicts = self._selected & self._assigned
        if conflicts:
            raise SelectionConflictError(conflicts)
        return self.selected
