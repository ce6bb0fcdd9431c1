# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import os
import errno
import socket
from http import HTTPStatus
from typing import Any, List, Tuple, Union, Mapping, Iterable, Optional, FrozenSet

from .types import AddrInfo, HostPort, HeaderList
from .constants import CRLF, COLON, HTTP_1_1, WHITESPACE, DEFAULT_HANDLER_VERBS


HeadersLike = Union[Mapping[Any, Any], Iterable[Tuple[Any, Any]], None]


def text_(s: Any, encoding: str = 'utf-8', errors: str = 'strict') -> Any:
    """Utility to ensure text-like usability.

    If s is of type bytes or int, return s.decode(encoding, errors),
    otherwise return s as it is."""
    if isinstance(s, int):
        return str(s)
    if isinstance(s, bytes):
        return s.decode(encoding, errors)
    return s


def bytes_(s: Any, encoding: str = 'utf-8', errors: str = 'strict') -> Any:
    """Utility to ensure binary-like usability.

    If s is type str or int, return s.encode(encoding, errors),
    otherwise return s as it is."""
    if isinstance(s, int):
        s = str(s)
    if isinstance(s, str):
        return s.encode(encoding, errors)
    return s


def normalize_headers(headers: HeadersLike) -> HeaderList:
    """Returns headers as an ordered list of ``(bytes, bytes)`` pairs.

    Accepts a mapping or an iterable of pairs.  Mapping values may be
    a list, in which case one header line is produced per value
    e.g. multiple ``Set-Cookie``."""
    if headers is None:
        return []
    pairs = headers.items() if isinstance(headers, Mapping) else headers
    normalized: HeaderList = []
    for key, value in pairs:
        values = value if isinstance(value, (list, tuple)) else [value]
        for v in values:
            normalized.append((bytes_(key), bytes_(v)))
    return normalized


def find_header(headers: HeaderList, key: bytes) -> Optional[bytes]:
    """Case-insensitive lookup of the first header value."""
    k = key.lower()
    for name, value in headers:
        if name.lower() == k:
            return value
    return None


def normalize_verbs(verbs: Any, default: FrozenSet[str] = DEFAULT_HANDLER_VERBS) -> FrozenSet[str]:
    """Normalizes a verb, comma-joined verbs or an iterable of verbs.

    Tokens are stripped and upper-cased, empty tokens are dropped.
    ``None`` yields ``default``."""
    if verbs is None:
        return frozenset(default)
    if isinstance(verbs, (str, bytes)):
        verbs = [verbs]
    normalized = set()
    for verb in verbs:
        if isinstance(verb, bytes):
            verb = verb.decode('utf-8')
        for token in str(verb).split(','):
            token = token.strip().upper()
            if token:
                normalized.add(token)
    return frozenset(normalized)


def reason_phrase(status_code: int) -> bytes:
    try:
        return bytes_(HTTPStatus(status_code).phrase)
    except ValueError:
        return b'Unknown'


def build_http_request(
    method: bytes, url: bytes,
    protocol_version: bytes = HTTP_1_1,
    headers: HeadersLike = None,
    body: Optional[bytes] = None,
) -> bytes:
    """Build and returns a HTTP request packet."""
    return build_http_pkt(
        [method, url, protocol_version], normalize_headers(headers), body,
    )


def build_http_response(
    status_code: int,
    protocol_version: bytes = HTTP_1_1,
    reason: Optional[bytes] = None,
    headers: HeadersLike = None,
    body: Optional[bytes] = None,
    conn_close: bool = False,
) -> bytes:
    """Build and returns a HTTP response packet."""
    line = [protocol_version, bytes_(status_code)]
    if reason:
        line.append(reason)
    header_list = normalize_headers(headers)
    has_content_length = find_header(header_list, b'content-length') is not None
    has_transfer_encoding = find_header(header_list, b'transfer-encoding') is not None
    if body is not None and \
            not has_transfer_encoding and \
            not has_content_length:
        header_list.append((b'Content-Length', bytes_(len(body))))
    if conn_close:
        header_list.append((b'Connection', b'close'))
    return build_http_pkt(line, header_list, body)


def build_http_header(k: bytes, v: bytes) -> bytes:
    """Build and return a HTTP header line for use in raw packet."""
    return k + COLON + WHITESPACE + v


def build_http_pkt(
    line: List[bytes],
    headers: Optional[HeaderList] = None,
    body: Optional[bytes] = None,
) -> bytes:
    """Build and returns a HTTP request or response packet."""
    pkt = WHITESPACE.join(line) + CRLF
    if headers is not None:
        for k, v in headers:
            pkt += build_http_header(k, v) + CRLF
    pkt += CRLF
    if body:
        pkt += body
    return pkt


def find_http_line(raw: bytes) -> Tuple[Optional[bytes], bytes]:
    """Find and returns first line ending in CRLF along with following buffer.

    If no ending CRLF is found, line is None."""
    parts = raw.split(CRLF, 1)
    if len(parts) == 1:
        return None, raw
    return parts[0], parts[1]


def resolve_address(addr: HostPort) -> List[AddrInfo]:
    """Resolves ``addr`` into ``getaddrinfo`` entries usable for TCP
    connects, in resolver order.  Resolution is blocking."""
    return socket.getaddrinfo(addr[0], addr[1], type=socket.SOCK_STREAM)


def new_nonblocking_connection(addrinfo: AddrInfo) -> socket.socket:
    """Starts a non-blocking TCP connect to a resolved address.

    Connection establishment completes asynchronously, callers must
    wait for the socket to become writable and then call
    :func:`connection_error`.

    Raises :exc:`OSError` for immediate connect errors."""
    family, socktype, proto, _canonname, sockaddr = addrinfo
    conn = socket.socket(family, socktype, proto)
    try:
        conn.setblocking(False)
        conn.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        err = conn.connect_ex(sockaddr)
        if err not in (0, errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EALREADY):
            raise OSError(err, os.strerror(err))
    except OSError:
        conn.close()
        raise
    return conn


def connection_error(conn: socket.socket) -> Optional[OSError]:
    """Returns pending connect error for a non-blocking socket, if any."""
    err = conn.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
    if err == 0:
        return None
    return OSError(err, os.strerror(err))
