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
from typing import List, Optional

from .types import tcpConnectionTypes
from .connection import TcpConnection, TcpConnectionUninitializedException
from ...common.types import AddrInfo, HostPort, TcpOrTlsSocket
from ...common.utils import (
    resolve_address, connection_error, new_nonblocking_connection,
)


logger = logging.getLogger(__name__)


class TcpServerConnection(TcpConnection):
    """A buffered, non-blocking upstream server connection object.

    ``connect`` only initiates the connection.  Until the socket
    turns writable and ``finish_connect`` succeeds, ``connecting``
    remains True and queued data stays buffered.

    Every address the upstream host resolves to is tried in order,
    the underlying socket is replaced when moving on to the next one."""

    def __init__(self, host: str, port: int) -> None:
        super().__init__(tcpConnectionTypes.SERVER)
        self._conn: Optional[TcpOrTlsSocket] = None
        self.addr: HostPort = (host, port)
        self.addresses: List[AddrInfo] = []
        self.closed = True
        self.connecting = False

    @property
    def connection(self) -> TcpOrTlsSocket:
        if self._conn is None:
            raise TcpConnectionUninitializedException()
        return self._conn

    def connect(self) -> None:
        assert self._conn is None
        self.addresses = resolve_address(self.addr)
        self._connect_next()

    def finish_connect(self) -> None:
        """Completes a pending connect.

        When the attempt failed and addresses remain, connecting moves
        on to the next address and ``connecting`` stays True.  The
        error is raised once no address is left."""
        assert self.connecting
        err = connection_error(self.connection)
        if err is None:
            self.connecting = False
            return
        if not self.addresses:
            raise err
        logger.debug(
            'Connect to %s:%d failed with %s, trying next address' %
            (self.addr[0], self.addr[1], err),
        )
        self.connection.close()
        self._conn = None
        self.closed = True
        self._connect_next()

    def _connect_next(self) -> None:
        last_error: Optional[OSError] = None
        while self.addresses:
            addrinfo = self.addresses.pop(0)
            try:
                self._conn = new_nonblocking_connection(addrinfo)
            except OSError as e:
                logger.debug('Connect to %r failed with %s' % (addrinfo[4], e))
                last_error = e
                continue
            self.closed = False
            self.connecting = True
            return
        self.connecting = False
        if last_error is None:
            last_error = OSError(
                'No address found for %s:%d' % (self.addr[0], self.addr[1]),
            )
        raise last_error
