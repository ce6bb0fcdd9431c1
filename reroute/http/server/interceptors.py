# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import re
import threading
from typing import Any, Tuple, Iterator, Optional, NamedTuple

from ...common.types import PatternLike, InterceptorCallback


class Interceptor(NamedTuple):
    pattern: 're.Pattern[str]'
    callback: InterceptorCallback

    @property
    def key(self) -> str:
        return self.pattern.pattern


class InterceptorRegistry:
    """Ordered interceptor records keyed by pattern source text.

    Insertion order is evaluation order.  Registering a pattern again
    replaces its callback and keeps its position, registering it without
    a callback removes it.  Mutations publish a new tuple under a lock,
    readers always iterate over a complete snapshot.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._interceptors: Tuple[Interceptor, ...] = ()

    def __len__(self) -> int:
        return len(self._interceptors)

    def __iter__(self) -> Iterator[Interceptor]:
        return iter(self._interceptors)

    @staticmethod
    def compile(pattern: PatternLike) -> 're.Pattern[str]':
        if isinstance(pattern, re.Pattern):
            return pattern
        return re.compile(pattern)

    def register(
            self,
            pattern: PatternLike,
            callback: Optional[InterceptorCallback] = None,
    ) -> 'InterceptorRegistry':
        compiled = self.compile(pattern)
        with self._lock:
            current = self._interceptors
            index = next(
                (i for i, entry in enumerate(current) if entry.key == compiled.pattern),
                None,
            )
            if callback is None:
                if index is not None:
                    self._interceptors = current[:index] + current[index + 1:]
            elif index is None:
                self._interceptors = current + (Interceptor(compiled, callback),)
            else:
                self._interceptors = current[:index] + \
                    (Interceptor(compiled, callback),) + current[index + 1:]
        return self

    def matches(self, path: str) -> Iterator[Tuple[Interceptor, 're.Match[str]']]:
        """Yields every interceptor matching ``path`` in insertion order."""
        for interceptor in self._interceptors:
            match = interceptor.pattern.search(path)
            if match is not None:
                yield interceptor, match

    def evaluate(self, path: str) -> Optional[Tuple[Interceptor, Any]]:
        """Returns the first matching interceptor and its match."""
        return next(self.matches(path), None)
