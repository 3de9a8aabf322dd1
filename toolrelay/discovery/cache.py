import threading
from typing import Dict, FrozenSet, Iterable, Optional


class CapabilityCache:
    """Capability sets keyed by base model name.

    Entries live as long as the owning client: nothing is refreshed or
    evicted except through clear(). Only successful lookups are stored.
    """

    def __init__(self):
        self._entries: Dict[str, FrozenSet[str]] = {}
        self._lock = threading.Lock()

    def get(self, base_name: str) -> Optional[FrozenSet[str]]:
        return self._entries.get(base_name)

    def put(self, base_name: str, capabilities: Iterable[str]) -> FrozenSet[str]:
        value = frozenset(capabilities)
        # concurrent lookups of the same name may both land here; last write wins
        with self._lock:
            self._entries[base_name] = value
        return value

    def clear(self):
        with self._lock:
            self._entries.clear()

    def __contains__(self, base_name) -> bool:
        return base_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
