# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from typing import Type, Tuple, TypeVar, Callable, Optional

from .chunk import ChunkParser
from .types import bodyFramings, httpParserTypes, httpParserStates
from ..codes import httpStatusCodes
from ..methods import httpMethods
from ..exception import HttpProtocolException
from ...common.types import HeaderList
from ...common.utils import text_, find_header, find_http_line
from ...common.constants import COLON, COMMA, HTTP_1_0, HTTP_1_1, WHITESPACE


T = TypeVar('T', bound='HttpParser')


class HttpParser:
    """Incremental HTTP/1.x request/response parser.

    Parsing pauses once headers are complete, so callers can act on
    the request line and headers before any body byte is consumed.
    Call ``parse(b'')`` (or feed more data) to resume.

    Body bytes are delivered to ``on_body`` as they are decoded, or
    accumulated into ``body`` when no callback is given.  Bytes beyond
    a complete message stay in ``buffer`` e.g. pipelined requests.
    """

    def __init__(
            self,
            parser_type: int,
            on_body: Optional[Callable[[bytes], None]] = None,
            request_method: Optional[bytes] = None,
    ) -> None:
        self.state: int = httpParserStates.INITIALIZED
        self.type: int = parser_type
        self.on_body = on_body
        # For response parsers, method of the request being answered.
        # Responses to HEAD never carry a body.
        self.request_method = request_method
        # Request attributes
        self.method: Optional[bytes] = None
        self.path: Optional[bytes] = None
        # Response attributes
        self.code: Optional[bytes] = None
        self.reason: Optional[bytes] = None
        self.version: Optional[bytes] = None
        # Total size of raw bytes passed for parsing
        self.total_size: int = 0
        # Buffer to hold unprocessed bytes
        self.buffer: bytes = b''
        # Headers in wire order, duplicates preserved
        self.headers: HeaderList = []
        self.body: Optional[bytes] = None
        self.chunk: Optional[ChunkParser] = None
        self.framing: int = bodyFramings.NONE
        self._content_remaining: int = 0

    @classmethod
    def request(cls: Type[T], raw: bytes) -> T:
        parser = cls(httpParserTypes.REQUEST_PARSER)
        parser.parse(raw)
        parser.parse(b'')
        return parser

    @classmethod
    def response(cls: Type[T], raw: bytes, request_method: Optional[bytes] = None) -> T:
        parser = cls(httpParserTypes.RESPONSE_PARSER, request_method=request_method)
        parser.parse(raw)
        parser.parse(b'')
        return parser

    def header(self, key: bytes) -> bytes:
        """Returns first value of header ``key``, case-insensitive."""
        value = find_header(self.headers, key)
        if value is None:
            raise KeyError('%s not found in headers' % text_(key))
        return value

    def has_header(self, key: bytes) -> bool:
        """Returns true if header key was found in payload."""
        return find_header(self.headers, key) is not None

    @property
    def is_complete(self) -> bool:
        return self.state == httpParserStates.COMPLETE

    @property
    def headers_complete(self) -> bool:
        return self.state >= httpParserStates.HEADERS_COMPLETE

    @property
    def is_chunked_encoded(self) -> bool:
        """Returns true if transfer-encoding chunked is used."""
        return self.framing == bodyFramings.CHUNKED

    @property
    def body_expected(self) -> bool:
        return self.framing != bodyFramings.NONE

    @property
    def is_interim(self) -> bool:
        """Returns true for informational 1xx responses."""
        return self.type == httpParserTypes.RESPONSE_PARSER and \
            self.code is not None and \
            self.code.startswith(b'1')

    @property
    def is_keep_alive(self) -> bool:
        """HTTP/1.1 unless ``Connection: close``, HTTP/1.0 only with
        ``Connection: keep-alive``."""
        tokens = self._connection_tokens()
        if self.version == HTTP_1_1:
            return b'close' not in tokens
        if self.version == HTTP_1_0:
            return b'keep-alive' in tokens
        return False

    def _connection_tokens(self) -> Tuple[bytes, ...]:
        tokens = []
        for name, value in self.headers:
            if name.lower() == b'connection':
                tokens.extend(t.strip().lower() for t in value.split(COMMA))
        return tuple(tokens)

    def parse(self, raw: bytes) -> None:
        """Parses HTTP message out of raw bytes.

        Check for ``HttpParser.state`` after ``parse`` has successfully
        returned.  Raises :exc:`HttpProtocolException` for malformed input."""
        self.total_size += len(raw)
        self.buffer += raw
        if self.state == httpParserStates.COMPLETE:
            return
        # Resume after the pause at headers complete
        if self.state >= httpParserStates.HEADERS_COMPLETE:
            self._process_body()
            return
        while self.state < httpParserStates.HEADERS_COMPLETE:
            line, rest = find_http_line(self.buffer)
            if line is None:
                return
            self.buffer = rest
            if self.state == httpParserStates.INITIALIZED:
                # Tolerate empty lines preceding the start line
                if line == b'':
                    continue
                self._process_line(line)
            elif line == b'':
                self._headers_complete()
            else:
                self._process_header(line)

    def finish(self) -> bool:
        """Signals end of stream.

        Returns True if the message completed, i.e. it was complete
        already or its body is delimited by connection close."""
        if self.state == httpParserStates.COMPLETE:
            return True
        if self.headers_complete and self.framing == bodyFramings.CLOSE_DELIMITED:
            self.state = httpParserStates.COMPLETE
            return True
        return False

    def _process_line(self, line: bytes) -> None:
        if self.type == httpParserTypes.REQUEST_PARSER:
            parts = line.split(WHITESPACE)
            if len(parts) != 3 or not parts[0] or not parts[1] or \
                    not parts[2].startswith(b'HTTP/'):
                raise HttpProtocolException('Invalid request line %r' % line)
            self.method, self.path, self.version = parts
        else:
            parts = line.split(WHITESPACE, 2)
            if len(parts) < 2 or not parts[0].startswith(b'HTTP/') or \
                    len(parts[1]) != 3 or not parts[1].isdigit():
                raise HttpProtocolException('Invalid response line %r' % line)
            self.version, self.code = parts[0], parts[1]
            self.reason = parts[2] if len(parts) == 3 else b''
        self.state = httpParserStates.LINE_RCVD

    def _process_header(self, line: bytes) -> None:
        key, sep, value = line.partition(COLON)
        if not sep or not key or key != key.strip():
            raise HttpProtocolException('Invalid header line %r' % line)
        self.headers.append((key, value.strip()))
        self.state = httpParserStates.RCVING_HEADERS

    def _headers_complete(self) -> None:
        self.state = httpParserStates.HEADERS_COMPLETE
        self.framing = self._body_framing()
        if self.framing == bodyFramings.NONE:
            self.state = httpParserStates.COMPLETE
        elif self.framing == bodyFramings.CHUNKED:
            self.chunk = ChunkParser(on_chunk=self._emit)

    def _body_framing(self) -> int:
        # Ref: https://www.rfc-editor.org/rfc/rfc7230#section-3.3.3
        if self.type == httpParserTypes.RESPONSE_PARSER:
            assert self.code is not None
            code = int(self.code)
            if self.request_method == httpMethods.HEAD or \
                    code < httpStatusCodes.OK or \
                    code in (httpStatusCodes.NO_CONTENT, httpStatusCodes.NOT_MODIFIED):
                return bodyFramings.NONE
        # Transfer-Encoding takes preference over Content-Length
        transfer_encoding = find_header(self.headers, b'transfer-encoding')
        if transfer_encoding is not None and \
                transfer_encoding.split(COMMA)[-1].strip().lower() == b'chunked':
            return bodyFramings.CHUNKED
        content_length = find_header(self.headers, b'content-length')
        if content_length is not None:
            try:
                self._content_remaining = int(content_length)
            except ValueError:
                raise HttpProtocolException(
                    'Invalid content-length %r' % content_length,
                ) from None
            if self._content_remaining < 0:
                raise HttpProtocolException(
                    'Invalid content-length %r' % content_length,
                )
            return bodyFramings.CONTENT_LENGTH \
                if self._content_remaining > 0 \
                else bodyFramings.NONE
        if self.type == httpParserTypes.RESPONSE_PARSER:
            return bodyFramings.CLOSE_DELIMITED
        return bodyFramings.NONE

    def _process_body(self) -> None:
        raw, self.buffer = self.buffer, b''
        if len(raw) == 0:
            return
        self.state = httpParserStates.RCVING_BODY
        if self.framing == bodyFramings.CHUNKED:
            assert self.chunk is not None
            self.buffer = self.chunk.parse(raw)
            if self.chunk.is_complete:
                self.state = httpParserStates.COMPLETE
        elif self.framing == bodyFramings.CONTENT_LENGTH:
            data, self.buffer = raw[:self._content_remaining], raw[self._content_remaining:]
            self._content_remaining -= len(data)
            self._emit(data)
            if self._content_remaining == 0:
                self.state = httpParserStates.COMPLETE
        else:
            self._emit(raw)

    def _emit(self, data: bytes) -> None:
        if self.on_body is not None:
            self.on_body(data)
        elif self.body is None:
            self.body = data
        else:
            self.body += data
