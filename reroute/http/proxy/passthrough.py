# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import socket
import logging
import selectors
from dataclasses import dataclass
from typing import List, Optional

from ..parser import LAST_CHUNK, ChunkParser, HttpParser, httpParserTypes
from ..request import ProxyRequest
from ..response import ProxyResponse
from ..exception import (
    HttpProtocolException, UpstreamAbnormalClose, UpstreamConnectionError,
)
from ...config import ProxyConfig
from ...common.types import Readables, Writables, HeaderList, SocketEvents, ResponseCallback
from ...common.utils import bytes_, find_header, build_http_pkt
from ...common.constants import (
    HTTP_1_1, ACCESS_CONTROL_REQUEST_METHOD, DEFAULT_MAX_SEND_SIZE,
    DEFAULT_SERVER_RECVBUF_SIZE, DEFAULT_PASS_THROUGH_LOG_FORMAT,
)
from ...core.connection import TcpServerConnection


logger = logging.getLogger(__name__)
access_logger = logging.getLogger('reroute.access')


@dataclass
class UpstreamRequestContext:
    """Outbound request of a single pass-through."""

    host: str
    port: int
    method: str
    path: str
    headers: HeaderList

    def build(self, version: bytes = HTTP_1_1) -> bytes:
        return build_http_pkt(
            [bytes_(self.method), bytes_(self.path, errors='surrogateescape'), version],
            self.headers,
        )


def build_context(config: ProxyConfig, request: ProxyRequest) -> UpstreamRequestContext:
    """Derives the outbound request from configuration and inbound request.

    Inbound headers except ``host`` are copied and win over configured
    defaults of the same name.  ``Access-Control-Request-Method`` overrides
    the outbound method.  The outbound path is base path + request target."""
    inbound = [(k, v) for k, v in request.headers if k.lower() != b'host']
    names = {k.lower() for k, _ in inbound}
    headers = [(k, v) for k, v in config.clone_headers() if k.lower() not in names]
    headers.extend(inbound)
    if find_header(headers, b'host') is None:
        headers.insert(0, (b'Host', config.host_header))
    method = request.method
    override = request.header(ACCESS_CONTROL_REQUEST_METHOD)
    if override is not None and override.strip():
        method = override.strip()
    return UpstreamRequestContext(
        host=config.host,
        port=config.port,
        method=method,
        path=config.path + request.path,
        headers=headers,
    )


class PassThrough:
    """Streams one request to the upstream and its response back to the client.

    The session hooks into the client connection's work: the protocol
    handler polls ``get_events`` and forwards readiness to
    ``read_from_descriptors`` / ``write_to_descriptors``.

    When ``on_response`` is given, body chunks are also buffered and the
    complete body is handed to it once the client response has ended.
    """

    def __init__(
            self,
            config: ProxyConfig,
            request: ProxyRequest,
            response: ProxyResponse,
            on_response: Optional[ResponseCallback] = None,
            server_recvbuf_size: int = DEFAULT_SERVER_RECVBUF_SIZE,
            max_sendbuf_size: int = DEFAULT_MAX_SEND_SIZE,
    ) -> None:
        self.config = config
        self.request = request
        self.response = response
        self.on_response = on_response
        self.server_recvbuf_size = server_recvbuf_size
        self.max_sendbuf_size = max_sendbuf_size
        self.context = build_context(config, request)
        self.upstream: Optional[TcpServerConnection] = None
        self.parser = self._new_parser()
        self.chunks: List[bytes] = []
        self.closed = False
        self.completed = False
        transfer_encoding = request.header(b'transfer-encoding')
        self._request_chunked = transfer_encoding is not None and \
            transfer_encoding.split(',')[-1].strip().lower() == 'chunked'

    def _new_parser(self) -> HttpParser:
        return HttpParser(
            httpParserTypes.RESPONSE_PARSER,
            on_body=self._on_response_body,
            request_method=bytes_(self.context.method),
        )

    def start(self) -> None:
        if self.config.log_requests:
            access_logger.info(
                DEFAULT_PASS_THROUGH_LOG_FORMAT.format(
                    request_method=self.request.method,
                    request_host=self.request.header(b'host', ''),
                    request_path=self.request.path,
                ),
            )
        self.response.attach(self)
        self.upstream = TcpServerConnection(self.context.host, self.context.port)
        try:
            self.upstream.connect()
        except OSError as e:
            self.fail(UpstreamConnectionError(self.context.host, self.context.port, str(e)))
            return
        logger.debug(
            'Connecting to upstream %s:%d for %s %s' % (
                self.context.host, self.context.port,
                self.context.method, self.context.path,
            ),
        )
        self.upstream.queue(memoryview(self.context.build(bytes_(self.request.version))))
        self.request.on_data(self._on_request_data)
        self.request.on_end(self._on_request_end)

    def _on_request_data(self, data: bytes) -> None:
        if self.closed or self.upstream is None:
            return
        if self._request_chunked:
            data = ChunkParser.encode_chunk(data)
        self.upstream.queue(memoryview(data))

    def _on_request_end(self) -> None:
        if self.closed or self.upstream is None:
            return
        if self._request_chunked:
            self.upstream.queue(memoryview(LAST_CHUNK))

    def _on_response_body(self, data: bytes) -> None:
        if self.on_response is not None:
            self.chunks.append(data)
        self.response.write(data)

    def get_events(self) -> SocketEvents:
        if self.closed or self.upstream is None:
            return {}
        sock: socket.socket = self.upstream.connection
        if self.upstream.connecting:
            return {sock: selectors.EVENT_WRITE}
        events = selectors.EVENT_READ
        if self.upstream.has_buffer():
            events |= selectors.EVENT_WRITE
        return {sock: events}

    async def write_to_descriptors(self, w: Writables) -> None:
        if self.closed or self.upstream is None or \
                self.upstream.connection.fileno() not in w:
            return
        try:
            if self.upstream.connecting:
                self.upstream.finish_connect()
                if self.upstream.connecting:
                    # Retrying with the next resolved address
                    return
                logger.debug(
                    'Connected to upstream %s:%d' %
                    (self.context.host, self.context.port),
                )
            if self.upstream.has_buffer():
                self.upstream.flush(self.max_sendbuf_size)
        except OSError as e:
            self.fail(UpstreamConnectionError(self.context.host, self.context.port, str(e)))

    async def read_from_descriptors(self, r: Readables) -> None:
        if self.closed or self.upstream is None or \
                self.upstream.connection.fileno() not in r:
            return
        try:
            raw = self.upstream.recv(self.server_recvbuf_size)
        except BlockingIOError:
            return
        except OSError as e:
            logger.debug('Upstream read error %s' % e)
            self._upstream_closed()
            return
        if raw is None:
            self._upstream_closed()
            return
        try:
            self._feed(raw.tobytes())
        except HttpProtocolException as e:
            self.fail(
                UpstreamConnectionError(
                    self.context.host, self.context.port,
                    'invalid response: %s' % e,
                ),
            )

    def _feed(self, raw: bytes) -> None:
        self.parser.parse(raw)
        while not self.closed:
            if not self.parser.headers_complete:
                return
            if not self.response.headers_sent:
                if self.parser.is_interim and \
                        self.parser.code != b'101':
                    self._relay_interim()
                    continue
                assert self.parser.code is not None
                self.response.write_head(
                    int(self.parser.code),
                    self.parser.headers,
                    self.parser.reason or None,
                )
                self.response.flush_headers()
                self.parser.parse(b'')
            if self.parser.is_complete:
                self._complete()
            return

    def _relay_interim(self) -> None:
        assert self.parser.code is not None
        self.response.write_head(
            int(self.parser.code),
            self.parser.headers,
            self.parser.reason or None,
        )
        leftover = self.parser.buffer
        self.parser = self._new_parser()
        self.parser.parse(leftover)

    def _upstream_closed(self) -> None:
        if self.closed:
            return
        if self.parser.finish():
            self._complete()
            return
        self.fail(UpstreamAbnormalClose(self.context.host, self.context.port))

    def _complete(self) -> None:
        self.completed = True
        self.close()
        self.response.end()
        if self.on_response is not None:
            try:
                self.on_response(b''.join(self.chunks))
            except Exception as e:
                logger.exception('Exception in response callback', exc_info=e)

    def fail(self, error: UpstreamConnectionError) -> None:
        """Answers with 502 when nothing was sent yet, aborts otherwise."""
        logger.warning(str(error))
        self.close()
        if self.response.finished:
            return
        if not self.response.headers_sent:
            self.response.end_with_packet(error.response())
        else:
            self.response.abort()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.upstream is not None and not self.upstream.closed:
            self.upstream.close()
