"""
Latest-request-wins store for per-user resources.

Every fetch of a logical resource (member, balance, history, redemptions,
rewards) first takes a generation number. A result is committed only when
its generation is newer than the one already committed, so a slow response
from an older request can never overwrite fresher data.

The store is process-local and keeps at most ``max_users`` users; the
least recently touched user is dropped first. An evicted user simply
reloads from Supabase on the next request.
"""
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

MEMBER = 'member'
BALANCE = 'balance'
HISTORY = 'history'
REDEMPTIONS = 'redemptions'
REWARDS = 'rewards'

DEFAULT_MAX_USERS = 1000


@dataclass(frozen=True)
class Snapshot:
    generation: int
    value: Any


class _UserState:
    __slots__ = ('issued', 'committed')

    def __init__(self):
        self.issued: Dict[str, int] = {}
        self.committed: Dict[str, Snapshot] = {}


class ResourceStateStore:
    """Thread-safe generation counter plus committed snapshots, LRU-bounded per user."""

    def __init__(self, max_users: int = DEFAULT_MAX_USERS):
        self._lock = threading.Lock()
        self._users: 'OrderedDict[str, _UserState]' = OrderedDict()
        self.max_users = max_users

    def init_app(self, app) -> None:
        self.max_users = app.config.get('RESOURCE_STATE_MAX_USERS', self.max_users)
        app.extensions['resource_state'] = self

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def __contains__(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._users

    def _touch(self, user_id: str) -> _UserState:
        """Mark a user most recently used, evicting the oldest past the cap. Lock held."""
        state = self._users.get(user_id)
        if state is None:
            state = self._users[user_id] = _UserState()
        else:
            self._users.move_to_end(user_id)
        while len(self._users) > self.max_users:
            evicted, _ = self._users.popitem(last=False)
            logger.debug('Resource state for user %s evicted', evicted)
        return state

    def issue(self, user_id: str, resource: str) -> int:
        """Reserve the next generation for a fetch of this resource."""
        with self._lock:
            state = self._touch(user_id)
            generation = state.issued.get(resource, 0) + 1
            state.issued[resource] = generation
            return generation

    def is_latest(self, user_id: str, resource: str, generation: int) -> bool:
        with self._lock:
            state = self._users.get(user_id)
            return state is not None and state.issued.get(resource, 0) == generation

    def commit(self, user_id: str, resource: str, generation: int, value: Any) -> bool:
        """
        Store a fetched value unless a newer one is already committed.

        Returns:
            True if the value was stored, False if it was stale and discarded
        """
        with self._lock:
            state = self._touch(user_id)
            current = state.committed.get(resource)
            if current is not None and current.generation >= generation:
                return False
            state.committed[resource] = Snapshot(generation, value)
            return True

    def get(self, user_id: str, resource: str, default: Any = None) -> Any:
        snapshot = self.snapshot(user_id, resource)
        return snapshot.value if snapshot is not None else default

    def snapshot(self, user_id: str, resource: str) -> Optional[Snapshot]:
        with self._lock:
            state = self._users.get(user_id)
            return state.committed.get(resource) if state is not None else None

    def resolve(self, user_id: str, resource: str, generation: int, value: Any) -> Any:
        """Commit a value and return whatever is now current for the resource."""
        if self.commit(user_id, resource, generation, value):
            return value
        return self.get(user_id, resource, value)

    def clear(self, user_id: str) -> None:
        """Forget everything for a user (sign-out)."""
        with self._lock:
            self._users.pop(user_id, None)
