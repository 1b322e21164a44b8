"""
Per-PIREP mutual exclusion.

Operations on different PIREPs never wait on each other. Operations on
the same PIREP (prefile dedupe, file, cancel, status nudges from ACARS,
route replacement) take a lock keyed by the PIREP id and a scope name.

Locks are reference counted and dropped once nobody holds or waits on
them, so the registry stays proportional to the number of active flights.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Generator, Hashable, List, Tuple


STATE = 'state'
ROUTE = 'route'
PREFILE = 'prefile'


class PirepLocks:
    """Registry of re-entrant locks keyed by (id, scope)."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[Tuple[Hashable, str], List] = {}

    @contextmanager
    def hold(self, key: Hashable, scope: str = STATE) -> Generator[None, None, None]:
        """
        Hold the lock for `key` within `scope`.

        Re-entrant for the holding thread, so a file() that synthesizes a
        route can take the ROUTE scope while holding STATE.
        """
        slot_key = (key, scope)

        with self._guard:
            slot = self._locks.get(slot_key)
            if slot is None:
                slot = [threading.RLock(), 0]
                self._locks[slot_key] = slot
            slot[1] += 1

        slot[0].acquire()
        try:
            yield
        finally:
            slot[0].release()
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._locks[slot_key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Singleton instance
pirep_locks = PirepLocks()
