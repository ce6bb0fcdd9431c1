# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from typing import Any, List, Callable, Optional

from .parser import HttpParser
from ..common.types import HostPort, HeaderList
from ..common.utils import text_, bytes_, find_header


DataCallback = Callable[[bytes], None]
EndCallback = Callable[[], None]


class ProxyRequest:
    """Inbound request as seen by interceptors, handlers and resolvers.

    The request line and headers are available immediately.  The body
    arrives later as a stream of events: attach ``on_data`` / ``on_end``
    listeners while the callback runs.  Body chunks arriving when no
    data listener is attached are dropped.
    """

    def __init__(
            self,
            method: str,
            path: str,
            version: str = 'HTTP/1.1',
            headers: Optional[HeaderList] = None,
            client_address: Optional[HostPort] = None,
    ) -> None:
        self.method = method
        self.path = path
        self.version = version
        self.headers: HeaderList = headers if headers is not None else []
        self.client_address = client_address
        self.is_complete = False
        self._data_listeners: List[DataCallback] = []
        self._end_listeners: List[EndCallback] = []

    @classmethod
    def from_parser(
            cls,
            parser: HttpParser,
            client_address: Optional[HostPort] = None,
    ) -> 'ProxyRequest':
        assert parser.method and parser.path and parser.version
        return cls(
            text_(parser.method),
            text_(parser.path, errors='surrogateescape'),
            text_(parser.version),
            list(parser.headers),
            client_address,
        )

    def __repr__(self) -> str:
        return '<ProxyRequest %s %s>' % (self.method, self.path)

    def header(self, name: Any, default: Optional[str] = None) -> Optional[str]:
        """Returns first value of header ``name``, case-insensitive."""
        value = find_header(self.headers, bytes_(name))
        if value is None:
            return default
        return text_(value, errors='replace')

    def has_header(self, name: Any) -> bool:
        return find_header(self.headers, bytes_(name)) is not None

    def on_data(self, callback: DataCallback) -> 'ProxyRequest':
        self._data_listeners.append(callback)
        return self

    def on_end(self, callback: EndCallback) -> 'ProxyRequest':
        """Registers an end listener, fires right away if the body
        was already received in full."""
        if self.is_complete:
            callback()
        else:
            self._end_listeners.append(callback)
        return self

    def feed(self, data: bytes) -> None:
        for listener in list(self._data_listeners):
            listener(data)

    def complete(self) -> None:
        if self.is_complete:
            return
        self.is_complete = True
        listeners, self._end_listeners = self._end_listeners, []
        for listener in listeners:
            listener()
