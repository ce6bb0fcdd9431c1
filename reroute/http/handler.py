# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import time
import socket
import logging
import argparse
import selectors
from typing import Any, List, Optional

from .parser import HttpParser, httpParserTypes
from .request import ProxyRequest
from .response import ProxyResponse
from .exception import HttpProtocolException
from .dispatcher import Dispatcher
from ..core.work import Work
from ..common.flag import flags
from ..common.types import Readables, Writables, SocketEvents
from ..common.constants import (
    DEFAULT_MAX_SEND_SIZE, DEFAULT_ACCESS_LOG_FORMAT,
    DEFAULT_CLIENT_RECVBUF_SIZE, DEFAULT_SERVER_RECVBUF_SIZE,
)
from ..core.connection import TcpClientConnection


flags.add_argument(
    '--client-recvbuf-size',
    type=int,
    default=DEFAULT_CLIENT_RECVBUF_SIZE,
    help='Default: ' + str(int(DEFAULT_CLIENT_RECVBUF_SIZE / 1024)) +
    ' KB. Maximum amount of data received from the '
    'client in a single recv() operation.',
)

flags.add_argument(
    '--server-recvbuf-size',
    type=int,
    default=DEFAULT_SERVER_RECVBUF_SIZE,
    help='Default: ' + str(int(DEFAULT_SERVER_RECVBUF_SIZE / 1024)) +
    ' KB. Maximum amount of data received from the '
    'upstream in a single recv() operation.',
)

flags.add_argument(
    '--max-sendbuf-size',
    type=int,
    default=DEFAULT_MAX_SEND_SIZE,
    help='Default: ' + str(int(DEFAULT_MAX_SEND_SIZE / 1024)) +
    ' KB. Maximum amount of data to dispatch in a single send() operation.',
)

logger = logging.getLogger(__name__)


class HttpProtocolHandler(Work[TcpClientConnection]):
    """HTTP/1.x protocol handler, one instance per client connection.

    Parses requests, hands each one to the :class:`Dispatcher` as soon as
    its headers are complete and streams the request body afterwards.
    Upstream sessions opened for a response are polled as part of this
    work.  Connections are kept alive for the next (possibly pipelined)
    request when both request and response allow it.
    """

    def __init__(
            self,
            work: TcpClientConnection,
            flags: argparse.Namespace,
            uid: Optional[str] = None,
            dispatcher: Optional[Dispatcher] = None,
    ) -> None:
        super().__init__(work, flags, uid=uid)
        assert dispatcher is not None
        self.dispatcher = dispatcher
        self.start_time: float = time.time()
        self.must_flush_before_shutdown = False
        self.parser: HttpParser = self._new_parser()
        self.request: Optional[ProxyRequest] = None
        self.response: Optional[ProxyResponse] = None
        self.stage: Optional[str] = None
        self.num_requests: int = 0

    def _new_parser(self) -> HttpParser:
        return HttpParser(httpParserTypes.REQUEST_PARSER, on_body=self._on_request_body)

    @property
    def sessions(self) -> List[Any]:
        if self.response is None:
            return []
        return [s for s in self.response.sessions if not s.closed]

    def initialize(self) -> None:
        self.work.connection.setblocking(False)
        logger.debug('Handling connection %s' % self.work.address)

    def shutdown(self) -> None:
        for session in self.sessions:
            session.close()
        try:
            logger.debug(
                'Closing client connection %s has buffer %s' %
                (self.work.address, self.work.has_buffer()),
            )
            self.work.connection.shutdown(socket.SHUT_WR)
        except OSError:
            pass
        finally:
            self.work.close()
            logger.debug('Client connection closed')

    async def get_events(self) -> SocketEvents:
        events: SocketEvents = {}
        conn = self.work.connection
        # We always want to read from client
        if self.must_flush_before_shutdown is False:
            events[conn] = selectors.EVENT_READ
        # If there is pending buffer for client
        # also register for EVENT_WRITE events
        if self.work.has_buffer():
            events[conn] = events.get(conn, 0) | selectors.EVENT_WRITE
        for session in self.sessions:
            events.update(session.get_events())
        return events

    async def handle_events(
            self,
            readables: Readables,
            writables: Writables,
    ) -> bool:
        """Returns True if connection must be torn down."""
        if await self.handle_writables(writables):
            return True
        for session in self.sessions:
            await session.write_to_descriptors(writables)
        for session in self.sessions:
            await session.read_from_descriptors(readables)
        if await self.handle_readables(readables):
            return True
        return self._progress()

    async def handle_writables(self, writables: Writables) -> bool:
        if self.work.connection.fileno() in writables and self.work.has_buffer():
            logger.debug('Flushing buffer to client {0}'.format(self.work.address))
            try:
                self.work.flush(self.flags.max_sendbuf_size)
            except OSError as e:
                logger.debug('Error when flushing buffer to client %r' % e)
                return True
            if self.must_flush_before_shutdown and not self.work.has_buffer():
                return True
        return False

    async def handle_readables(self, readables: Readables) -> bool:
        if self.must_flush_before_shutdown or \
                self.work.connection.fileno() not in readables:
            return False
        try:
            data = self.work.recv(self.flags.client_recvbuf_size)
        except BlockingIOError:
            return False
        except OSError as e:
            logger.debug('Error when receiving from client %r' % e)
            return True
        if data is None:
            logger.debug('Client %s closed connection' % self.work.address)
            return True
        return self.handle_data(data.tobytes())

    def handle_data(self, data: bytes) -> bool:
        """Handles incoming data from client, returns True to tear down."""
        try:
            self.parser.parse(data)
        except HttpProtocolException as e:
            self._reject(e)
        return self._progress()

    def _on_request_body(self, data: bytes) -> None:
        if self.request is not None:
            self.request.feed(data)

    def _reject(self, e: HttpProtocolException) -> None:
        logger.warning('HttpProtocolException: %s' % e)
        pkt = e.response()
        for session in self.sessions:
            session.close()
        if self.response is not None and not self.response.finished:
            if pkt is None:
                self.response.abort()
            else:
                self.response.end_with_packet(pkt)
        elif pkt is not None and self.response is None:
            self.work.queue(pkt)
        self.must_flush_before_shutdown = True

    def _dispatch(self) -> None:
        assert self.parser.method and self.parser.version
        self.request = ProxyRequest.from_parser(self.parser, self.work.addr)
        self.response = ProxyResponse(
            self.work,
            request_method=self.request.method,
            request_version=self.request.version,
            keep_alive=self.parser.is_keep_alive,
        )
        self.num_requests += 1
        self.stage = self.dispatcher.dispatch(self.request, self.response)
        # Resume parsing of the body paused at headers complete
        self.parser.parse(b'')
        if self.parser.is_complete:
            self.request.complete()

    def _progress(self) -> bool:
        """Advances the request/response cycle, returns True to tear down."""
        while not self.must_flush_before_shutdown:
            try:
                if self.request is None:
                    if not self.parser.headers_complete:
                        break
                    self._dispatch()
                elif self.parser.is_complete:
                    self.request.complete()
            except HttpProtocolException as e:
                self._reject(e)
                break
            assert self.request is not None and self.response is not None
            if self.response.aborted or not self.response.finished:
                break
            if not self.response.keep_alive:
                self._access_log()
                self.must_flush_before_shutdown = True
                break
            # Request body must be fully received before the next request
            if not self.request.is_complete:
                break
            self._access_log()
            leftover = self.parser.buffer
            self.parser = self._new_parser()
            self.request = None
            self.response = None
            self.stage = None
            if leftover:
                try:
                    self.parser.parse(leftover)
                except HttpProtocolException as e:
                    self._reject(e)
        if self.response is not None and self.response.aborted:
            return True
        return self.must_flush_before_shutdown and not self.work.has_buffer()

    def _access_log(self) -> None:
        assert self.request is not None and self.response is not None
        addr = self.work.addr or ('unknown', 0)
        logger.debug(
            DEFAULT_ACCESS_LOG_FORMAT.format(
                client_ip=addr[0],
                client_port=addr[1],
                request_method=self.request.method,
                request_path=self.request.path,
                dispatch_stage=self.stage,
                connection_time_ms='%.2f' % ((time.time() - self.start_time) * 1000),
            ),
        )
