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
from ..responses import INTERNAL_SERVER_ERROR_RESPONSE_PKT


class HandlerFault(HttpProtocolException):
    """Wraps an exception raised by an interceptor, handler or local resolver."""

    def __init__(self, stage: str, cause: BaseException, **kwargs: Any):
        self.stage: str = stage
        self.cause: BaseException = cause
        super().__init__(
            '%s in %s: %r' % (self.__class__.__name__, stage, cause),
            **kwargs,
        )

    def response(self) -> memoryview:
        return INTERNAL_SERVER_ERROR_RESPONSE_PKT
