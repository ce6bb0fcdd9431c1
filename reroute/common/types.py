# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import re
import ssl
import socket
import ipaddress
from typing import Any, Dict, List, Tuple, Union, Callable


Selectable = int
Selectables = List[Selectable]
SelectableEvents = Dict[Selectable, int]    # Values are event masks
SocketEvents = Dict[socket.socket, int]
Readables = Selectables
Writables = Selectables
Descriptors = Tuple[Readables, Writables]
IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]
TcpOrTlsSocket = Union[ssl.SSLSocket, socket.socket]
HostPort = Tuple[str, int]
# (family, type, proto, canonname, sockaddr) as returned by getaddrinfo
AddrInfo = Tuple[Any, Any, int, str, Any]

# Header names and values exactly as received, in wire order.
HeaderList = List[Tuple[bytes, bytes]]

PatternLike = Union[str, re.Pattern]

# Callback signatures exposed to applications.
RequestHandler = Callable[[Any, Any], Any]
InterceptorCallback = Callable[[re.Match, Any, Any], bool]
ResponseCallback = Callable[[bytes], None]
