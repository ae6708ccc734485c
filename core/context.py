"""Context keys and the append-only context threaded between stages."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType


class ContextKey(str, Enum):
    """The closed set of keys a stage may write or read."""

    PROJECT_CONTEXT = "project_context"
    API_DESIGN = "api_design"
    BACKEND_DB = "backend_db"
    MESSAGING = "messaging"
    TESTING_SECURITY = "testing_security"


SEED_KEY = ContextKey.PROJECT_CONTEXT


class ExecutionContext:
    """Stage outputs keyed by ContextKey, owned by a single pipeline run.

    Entries are only ever added: writing a key twice is an error. Stages
    never receive this object directly, only a read-only snapshot.
    """

    def __init__(self):
        self._entries: dict[ContextKey, str] = {}

    def put(self, key, text: str) -> None:
        key = ContextKey(key)
        if key in self._entries:
            raise ValueError(f"context key already written: {key.value}")
        self._entries[key] = text

    def get(self, key):
        """Return the stored text, or None when the key has not been written."""
        return self._entries.get(ContextKey(key))

    def keys(self):
        return list(self._entries)

    def snapshot(self):
        """A read-only copy; later writes do not show up in it."""
        return MappingProxyType(dict(self._entries))

    def __contains__(self, key):
        return ContextKey(key) in self._entries

    def __len__(self):
        return len(self._entries)
