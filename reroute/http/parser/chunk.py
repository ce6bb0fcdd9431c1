# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from typing import List, Tuple, Callable, Optional, NamedTuple

from ..exception import HttpProtocolException
from ...common.utils import bytes_, find_http_line
from ...common.constants import CRLF, SEMICOLON, DEFAULT_BUFFER_SIZE


ChunkParserStates = NamedTuple(
    'ChunkParserStates', [
        ('WAITING_FOR_SIZE', int),
        ('WAITING_FOR_DATA', int),
        ('WAITING_FOR_DATA_CRLF', int),
        ('WAITING_FOR_TRAILERS', int),
        ('COMPLETE', int),
    ],
)
chunkParserStates = ChunkParserStates(1, 2, 3, 4, 5)

LAST_CHUNK = b'0' + CRLF + CRLF


class ChunkParser:
    """HTTP chunked transfer coding parser.

    Decoded chunk data is handed to ``on_chunk`` as soon as it arrives.
    Without a callback decoded data accumulates in ``body``.
    Chunk extensions are ignored, trailer lines are kept in ``trailers``.
    """

    def __init__(self, on_chunk: Optional[Callable[[bytes], None]] = None) -> None:
        self.state = chunkParserStates.WAITING_FOR_SIZE
        self.on_chunk = on_chunk
        self.body: bytes = b''  # Parsed chunks
        self.chunk: bytes = b''  # Partial line received
        # Bytes still expected for the current chunk
        self.remaining: int = 0
        self.trailers: List[bytes] = []

    @property
    def is_complete(self) -> bool:
        return self.state == chunkParserStates.COMPLETE

    def parse(self, raw: bytes) -> bytes:
        """Parses raw bytes and returns bytes left over after the last chunk."""
        more = len(raw) > 0
        while more and self.state != chunkParserStates.COMPLETE:
            more, raw = self.process(raw)
        return raw

    def process(self, raw: bytes) -> Tuple[bool, bytes]:
        if self.state == chunkParserStates.WAITING_FOR_SIZE:
            # Consume prior chunk in buffer
            # in case chunk size without CRLF was received
            raw = self.chunk + raw
            self.chunk = b''
            line, raw = find_http_line(raw)
            if line is None:
                self.chunk = raw
                raw = b''
            elif line.strip() != b'':
                self.remaining = self._chunk_size(line)
                self.state = chunkParserStates.WAITING_FOR_DATA \
                    if self.remaining > 0 \
                    else chunkParserStates.WAITING_FOR_TRAILERS
        elif self.state == chunkParserStates.WAITING_FOR_DATA:
            data, raw = raw[:self.remaining], raw[self.remaining:]
            self.remaining -= len(data)
            self._emit(data)
            if self.remaining == 0:
                self.state = chunkParserStates.WAITING_FOR_DATA_CRLF
        elif self.state == chunkParserStates.WAITING_FOR_DATA_CRLF:
            raw = self.chunk + raw
            self.chunk = b''
            if len(raw) < len(CRLF):
                self.chunk = raw
                raw = b''
            elif raw[:len(CRLF)] != CRLF:
                raise HttpProtocolException('Chunk data not terminated by CRLF')
            else:
                raw = raw[len(CRLF):]
                self.state = chunkParserStates.WAITING_FOR_SIZE
        elif self.state == chunkParserStates.WAITING_FOR_TRAILERS:
            raw = self.chunk + raw
            self.chunk = b''
            line, raw = find_http_line(raw)
            if line is None:
                self.chunk = raw
                raw = b''
            elif line == b'':
                self.state = chunkParserStates.COMPLETE
            else:
                self.trailers.append(line)
        return len(raw) > 0, raw

    def _emit(self, data: bytes) -> None:
        if len(data) == 0:
            return
        if self.on_chunk is not None:
            self.on_chunk(data)
        else:
            self.body += data

    @staticmethod
    def _chunk_size(line: bytes) -> int:
        size = line.split(SEMICOLON, 1)[0].strip()
        try:
            value = int(size, 16)
        except ValueError:
            raise HttpProtocolException('Invalid chunk size %r' % size) from None
        if value < 0:
            raise HttpProtocolException('Invalid chunk size %r' % size)
        return value

    @staticmethod
    def encode_chunk(data: bytes) -> bytes:
        """Encodes a single chunk, empty data yields the last chunk."""
        if len(data) == 0:
            return LAST_CHUNK
        return bytes_('{:x}'.format(len(data))) + CRLF + data + CRLF

    @staticmethod
    def to_chunks(raw: bytes, chunk_size: int = DEFAULT_BUFFER_SIZE) -> bytes:
        chunks: List[bytes] = []
        for i in range(0, len(raw), chunk_size):
            chunks.append(ChunkParser.encode_chunk(raw[i: i + chunk_size]))
        chunks.append(LAST_CHUNK)
        return b''.join(chunks)
