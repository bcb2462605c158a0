"""Deduplicating store of pending cquery requests and their published answers."""
from __future__ import annotations

from types import MappingProxyType
from typing import Dict, List, Mapping
import threading

from .labels import CqueryKey


class RequestRegistry:
    """Two-stage cache of questions.

    Stage one (pending) is only written while the host graph is constructed, from
    any number of threads. Stage two (results) is replaced wholesale by a
    successful flush and is read-only in between, so lookups take no lock.
    Registering a request while a flush is running is undefined; callers keep the
    two phases apart.
    """

    def __init__(self) -> None:
        self._pending: Dict[CqueryKey, bool] = {}
        self._pending_lock = threading.Lock()
        self._results: Mapping[CqueryKey, str] = MappingProxyType({})

    def request(self, key: CqueryKey) -> tuple[str, bool]:
        """Return ``(raw_answer, True)`` if answered, else queue ``key`` and return ``("", False)``."""

        results = self._results
        if key in results:
            return results[key], True
        with self._pending_lock:
            self._pending[key] = True
        return "", False

    def pending_keys(self) -> List[CqueryKey]:
        with self._pending_lock:
            return list(self._pending)

    @property
    def pending_count(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    @property
    def results(self) -> Mapping[CqueryKey, str]:
        return self._results

    def publish(self, results: Mapping[CqueryKey, str]) -> None:
        """Make ``results`` visible to lookups and drop every pending request."""

        merged = dict(self._results)
        merged.update(results)
        self._results = MappingProxyType(merged)
        with self._pending_lock:
            self._pending = {}
