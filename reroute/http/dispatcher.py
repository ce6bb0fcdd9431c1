# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import logging
import argparse
from typing import Any, Callable, Optional, NamedTuple

from .request import ProxyRequest
from .response import ProxyResponse
from .exception import HandlerFault
from .proxy import PassThrough
from .server import LocalResolver, HandlerRegistry, InterceptorRegistry
from ..config import ProxyConfig
from ..common.types import ResponseCallback
from ..common.constants import DEFAULT_MAX_SEND_SIZE, DEFAULT_SERVER_RECVBUF_SIZE


logger = logging.getLogger(__name__)

DispatchStages = NamedTuple(
    'DispatchStages', [
        ('INTERCEPTOR', str),
        ('HANDLER', str),
        ('LOCAL', str),
        ('PASS_THROUGH', str),
    ],
)
dispatchStages = DispatchStages('interceptor', 'handler', 'local', 'pass-through')


class Dispatcher:
    """Resolves every inbound request through the stages, in order:

    1. interceptors, first pattern whose callback returns True wins,
    2. handlers registered for the exact path and verb,
    3. the local resolver,
    4. pass-through to the upstream, which always claims the request.

    Exceptions raised by interceptors, handlers or the local resolver
    are logged, the faulting stage claims the request and the client
    gets a 500 (or an aborted connection if a response was under way).
    """

    def __init__(
            self,
            config: ProxyConfig,
            interceptors: InterceptorRegistry,
            handlers: HandlerRegistry,
            local_resolver: LocalResolver,
            flags: Optional[argparse.Namespace] = None,
    ) -> None:
        self.config = config
        self.interceptors = interceptors
        self.handlers = handlers
        self.local_resolver = local_resolver
        self.server_recvbuf_size = getattr(
            flags, 'server_recvbuf_size', DEFAULT_SERVER_RECVBUF_SIZE,
        )
        self.max_sendbuf_size = getattr(
            flags, 'max_sendbuf_size', DEFAULT_MAX_SEND_SIZE,
        )

    def dispatch(self, request: ProxyRequest, response: ProxyResponse) -> str:
        """Returns the name of the stage which claimed the request."""
        for interceptor, match in self.interceptors.matches(request.path):
            if self._guarded(
                    dispatchStages.INTERCEPTOR, response,
                    interceptor.callback, match, request, response,
            ):
                return dispatchStages.INTERCEPTOR
        handler = self.handlers.lookup(request.path, request.method)
        if handler is not None:
            self._guarded(dispatchStages.HANDLER, response, handler, request, response)
            return dispatchStages.HANDLER
        if self._guarded(
                dispatchStages.LOCAL, response,
                self.local_resolver.attempt, request, response, self.config,
        ):
            return dispatchStages.LOCAL
        self.pass_through(request, response)
        return dispatchStages.PASS_THROUGH

    def pass_through(
            self,
            request: ProxyRequest,
            response: ProxyResponse,
            on_response: Optional[ResponseCallback] = None,
    ) -> bool:
        PassThrough(
            self.config, request, response,
            on_response=on_response,
            server_recvbuf_size=self.server_recvbuf_size,
            max_sendbuf_size=self.max_sendbuf_size,
        ).start()
        return True

    @staticmethod
    def _guarded(
            stage: str,
            response: ProxyResponse,
            callback: Callable[..., Any],
            *args: Any,
    ) -> bool:
        """Invokes callback, a raised exception claims the request."""
        try:
            return bool(callback(*args))
        except Exception as e:
            fault = HandlerFault(stage, e)
            logger.exception(str(fault), exc_info=e)
            response.end_with_packet(fault.response())
            return True
