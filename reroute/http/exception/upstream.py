# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from typing import Any

from .base import HttpProtocolException
from ..responses import badGatewayResponse


class UpstreamConnectionError(HttpProtocolException):
    """Raised when the upstream cannot be resolved, connected to or written to."""

    def __init__(self, host: str, port: int, reason: str, **kwargs: Any):
        self.host: str = host
        self.port: int = port
        self.reason: str = reason
        super().__init__(
            '%s %s:%d %s' % (self.__class__.__name__, host, port, reason),
            **kwargs,
        )

    def response(self) -> memoryview:
        return badGatewayResponse(str(self))


class UpstreamAbnormalClose(UpstreamConnectionError):
    """Raised when the upstream closes before its response completed."""

    def __init__(self, host: str, port: int, **kwargs: Any):
        super().__init__(
            host, port,
            'closed connection before response completed',
            **kwargs,
        )
