# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import threading
from typing import Any, Dict, Tuple, Iterable, Optional, FrozenSet, NamedTuple

from ...common.types import RequestHandler
from ...common.utils import normalize_verbs
from ...common.constants import DEFAULT_HANDLER_VERBS


Verbs = Optional[Any]


class HandlerEntry(NamedTuple):
    path: str
    handlers: Tuple[Tuple[str, RequestHandler], ...]

    def get(self, verb: str) -> Optional[RequestHandler]:
        for v, handler in self.handlers:
            if v == verb:
                return handler
        return None

    @property
    def verbs(self) -> FrozenSet[str]:
        return frozenset(v for v, _ in self.handlers)


class HandlerRegistry:
    """Exact path to verb to handler mapping."""

    def __init__(self, default_verbs: FrozenSet[str] = DEFAULT_HANDLER_VERBS) -> None:
        self.default_verbs = default_verbs
        self._lock = threading.Lock()
        self._entries: Dict[str, HandlerEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, path: str) -> bool:
        return path in self._entries

    def entry(self, path: str) -> Optional[HandlerEntry]:
        return self._entries.get(path)

    def add(self, path: str, handler: RequestHandler, verbs: Verbs = None) -> 'HandlerRegistry':
        normalized = normalize_verbs(verbs, self.default_verbs)
        with self._lock:
            current = self._entries.get(path)
            existing = current.handlers if current is not None else ()
            handlers = tuple((v, h) for v, h in existing if v not in normalized) + \
                tuple((v, handler) for v in sorted(normalized))
            entries = dict(self._entries)
            entries[path] = HandlerEntry(path, handlers)
            self._entries = entries
        return self

    def remove(self, path: str, verbs: Verbs = None) -> 'HandlerRegistry':
        """Removes the given verbs of ``path``.  Without verbs, or when
        they normalize to nothing, the whole path entry is removed."""
        normalized = normalize_verbs(verbs) if verbs is not None else frozenset()
        with self._lock:
            current = self._entries.get(path)
            if current is None:
                return self
            entries = dict(self._entries)
            if not normalized:
                del entries[path]
            else:
                handlers = tuple((v, h) for v, h in current.handlers if v not in normalized)
                if handlers:
                    entries[path] = HandlerEntry(path, handlers)
                else:
                    del entries[path]
            self._entries = entries
        return self

    def lookup(self, path: str, method: Optional[str] = None) -> Optional[RequestHandler]:
        """Returns the handler for ``path`` and ``method``, GET if no method."""
        entry = self._entries.get(path)
        if entry is None:
            return None
        return entry.get(method or 'GET')

    def paths(self) -> Iterable[str]:
        return tuple(self._entries)
