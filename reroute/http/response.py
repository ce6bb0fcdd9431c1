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
from typing import Any, List, Callable, Optional

from .codes import httpStatusCodes
from .methods import httpMethods
from .parser import LAST_CHUNK, ChunkParser, bodyFramings
from ..common.types import HeaderList
from ..common.utils import (
    HeadersLike, bytes_, find_header, reason_phrase, build_http_pkt,
    normalize_headers,
)
from ..common.constants import HTTP_1_0, HTTP_1_1, COMMA
from ..core.connection import TcpClientConnection


logger = logging.getLogger(__name__)

# Framing headers are always recomputed by the response writer
HOP_BY_HOP_HEADERS = (
    b'connection', b'keep-alive', b'transfer-encoding',
    b'proxy-connection', b'upgrade',
)


class ProxyResponse:
    """Writes the response of a single request to the client connection.

    The head passed to ``write_head`` is committed together with the first
    body write, on ``end`` or on an explicit ``flush_headers``.  Until then
    ``headers_sent`` stays False and the response may still be replaced by
    an error response.

    The body is framed by the writer itself: ``Content-Length`` when known,
    chunked for HTTP/1.1 clients, close-delimited for HTTP/1.0 clients.
    ``HEAD`` requests and 1xx/204/304 statuses never carry a body.
    """

    def __init__(
            self,
            client: TcpClientConnection,
            request_method: str = 'GET',
            request_version: str = 'HTTP/1.1',
            keep_alive: bool = True,
    ) -> None:
        self.client = client
        self.request_method = bytes_(request_method)
        self.request_version = bytes_(request_version)
        self.keep_alive = keep_alive
        self.status_code: Optional[int] = None
        self.headers_sent = False
        self.finished = False
        self.aborted = False
        self.framing: Optional[int] = None
        self.bytes_written = 0
        # Upstream sessions serving this response, polled by the handler
        self.sessions: List[Any] = []
        self._pending_head: Optional[bytes] = None
        self._reason: Optional[bytes] = None
        self._headers: HeaderList = []
        self._content_remaining = 0
        self._finish_listeners: List[Callable[['ProxyResponse'], None]] = []

    def __repr__(self) -> str:
        return '<ProxyResponse %s>' % (self.status_code,)

    def on_finish(self, callback: Callable[['ProxyResponse'], None]) -> None:
        self._finish_listeners.append(callback)

    def attach(self, session: Any) -> None:
        self.sessions.append(session)

    @property
    def head_pending(self) -> bool:
        return self.status_code is not None and not self.headers_sent

    def write_head(
            self,
            status: int,
            headers: HeadersLike = None,
            reason: Optional[Any] = None,
    ) -> 'ProxyResponse':
        """Sets status line and headers.

        Interim 1xx statuses (except 101) are written immediately
        and leave the response open for the final status."""
        if self.finished or self.headers_sent:
            raise RuntimeError('Response headers already sent')
        status = int(status)
        reason = bytes_(reason) if reason is not None else reason_phrase(status)
        header_list = normalize_headers(headers)
        if httpStatusCodes.CONTINUE <= status < httpStatusCodes.OK and \
                status != httpStatusCodes.SWITCHING_PROTOCOLS:
            # HTTP/1.0 clients do not understand interim responses
            if self.request_version != HTTP_1_0:
                self._queue(build_http_pkt(self._status_line(status, reason), header_list))
            return self
        self.status_code = status
        self._reason = reason
        self._headers = header_list
        return self

    def flush_headers(self) -> None:
        """Commits the status line and headers to the client now."""
        if self.headers_sent:
            return
        if self.status_code is None:
            self.write_head(httpStatusCodes.OK)
        self._commit_head()

    def write(self, data: Any) -> 'ProxyResponse':
        if self.finished:
            raise RuntimeError('Response already finished')
        data = bytes_(data)
        self.flush_headers()
        self._write_body(data)
        return self

    def end(self, data: Optional[Any] = None) -> None:
        """Finishes the response.  A body passed to ``end`` before the
        head was committed gets a ``Content-Length``."""
        if self.finished:
            return
        body = bytes_(data) if data is not None else b''
        if not self.headers_sent:
            if self.status_code is None:
                self.write_head(httpStatusCodes.OK)
            if not self._bodyless() and \
                    find_header(self._headers, b'content-length') is None and \
                    find_header(self._headers, b'transfer-encoding') is None:
                self._headers.append((b'Content-Length', bytes_(len(body))))
            self._commit_head()
        self._write_body(body)
        if self.framing == bodyFramings.CHUNKED:
            self._queue(LAST_CHUNK)
        elif self.framing == bodyFramings.CONTENT_LENGTH and self._content_remaining > 0:
            logger.warning(
                'Response ended %d bytes short of its content-length' %
                self._content_remaining,
            )
            self.keep_alive = False
        elif self.framing == bodyFramings.CLOSE_DELIMITED:
            self.keep_alive = False
        self._finish()

    def abort(self) -> None:
        """Drops the client connection without completing the response."""
        if self.finished:
            return
        self.aborted = True
        self.keep_alive = False
        self._finish()

    def end_with_packet(self, pkt: memoryview) -> None:
        """Replaces anything not yet committed with a canned response
        and closes the connection after it is flushed."""
        if self.finished:
            return
        if self.headers_sent:
            self.abort()
            return
        self.keep_alive = False
        self.headers_sent = True
        self._queue(pkt.tobytes())
        self._finish()

    def _status_line(self, status: int, reason: bytes) -> List[bytes]:
        version = HTTP_1_0 if self.request_version == HTTP_1_0 else HTTP_1_1
        return [version, bytes_(status), reason]

    def _connection_tokens(self) -> List[bytes]:
        tokens: List[bytes] = []
        for name, value in self._headers:
            if name.lower() == b'connection':
                tokens.extend(t.strip().lower() for t in value.split(COMMA))
        return tokens

    def _commit_head(self) -> None:
        assert self.status_code is not None and self._reason is not None
        if b'close' in self._connection_tokens():
            self.keep_alive = False
        self.framing = self._body_framing()
        if self.framing == bodyFramings.CLOSE_DELIMITED or \
                self.status_code == httpStatusCodes.SWITCHING_PROTOCOLS:
            self.keep_alive = False
        headers = [
            (k, v) for k, v in self._headers
            if k.lower() not in HOP_BY_HOP_HEADERS
        ]
        if self.framing == bodyFramings.CHUNKED:
            headers = [(k, v) for k, v in headers if k.lower() != b'content-length']
            headers.append((b'Transfer-Encoding', b'chunked'))
        if not self.keep_alive:
            headers.append((b'Connection', b'close'))
        elif self.request_version == HTTP_1_0:
            headers.append((b'Connection', b'keep-alive'))
        self.headers_sent = True
        self._queue(
            build_http_pkt(self._status_line(self.status_code, self._reason), headers),
        )

    def _bodyless(self) -> bool:
        assert self.status_code is not None
        return self.request_method == httpMethods.HEAD or \
            self.status_code < httpStatusCodes.OK or \
            self.status_code in (httpStatusCodes.NO_CONTENT, httpStatusCodes.NOT_MODIFIED)

    def _body_framing(self) -> int:
        if self._bodyless():
            return bodyFramings.NONE
        transfer_encoding = find_header(self._headers, b'transfer-encoding')
        content_length = find_header(self._headers, b'content-length')
        if transfer_encoding is None and content_length is not None:
            try:
                self._content_remaining = int(content_length)
            except ValueError:
                raise ValueError('Invalid content-length %r' % content_length) from None
            return bodyFramings.CONTENT_LENGTH
        if self.request_version == HTTP_1_0:
            return bodyFramings.CLOSE_DELIMITED
        return bodyFramings.CHUNKED

    def _write_body(self, data: bytes) -> None:
        if len(data) == 0:
            return
        if self.framing == bodyFramings.NONE:
            return
        if self.framing == bodyFramings.CHUNKED:
            self._queue(ChunkParser.encode_chunk(data))
        elif self.framing == bodyFramings.CONTENT_LENGTH:
            if len(data) > self._content_remaining:
                logger.warning(
                    'Discarding %d bytes beyond content-length' %
                    (len(data) - self._content_remaining),
                )
                data = data[:self._content_remaining]
            self._content_remaining -= len(data)
            self._queue(data)
        else:
            self._queue(data)

    def _queue(self, data: bytes) -> None:
        if len(data) == 0:
            return
        self.bytes_written += len(data)
        self.client.queue(memoryview(data))

    def _finish(self) -> None:
        self.finished = True
        listeners, self._finish_listeners = self._finish_listeners, []
        for listener in listeners:
            listener(self)
