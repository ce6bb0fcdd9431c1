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
import asyncio
import logging
import argparse
import selectors
import threading

from typing import Any, Dict, Tuple, Callable, Optional

from .work import Work
from .listener import TcpSocketListener
from .connection import TcpClientConnection
from ..common.types import Readables, Writables
from ..common.constants import DEFAULT_SELECTOR_SELECT_TIMEOUT


logger = logging.getLogger(__name__)

WorkFactory = Callable[[TcpClientConnection, str], Work[Any]]

# Selector data value reserved for the listening socket
LISTENER_WORK_ID = 0


class Threadless:
    """Single threaded event loop shared by every accepted connection.

    Threadless accepts client connections from the listener and creates
    one :class:`~reroute.core.work.Work` per connection using ``work_factory``.
    On every tick each work reports the sockets it is interested in,
    registrations are reconciled with the selector, and ready works get
    their ``handle_events`` coroutine awaited in turn.

    A work raising an exception is logged and torn down on its own,
    the loop keeps running for everybody else.
    """

    def __init__(
            self,
            flags: argparse.Namespace,
            listener: TcpSocketListener,
            work_factory: WorkFactory,
    ) -> None:
        self.flags = flags
        self.listener = listener
        self.work_factory = work_factory
        self.running = threading.Event()
        self.stopped = threading.Event()
        self.works: Dict[int, Work[Any]] = {}
        self.selector: Optional[selectors.BaseSelector] = None
        # fileno => (mask, work_id, socket)
        self.registered: Dict[int, Tuple[int, int, socket.socket]] = {}
        self._total: int = 0

    def shutdown(self) -> None:
        """Request the loop to stop, safe to call from any thread."""
        self.stopped.set()

    def accept(self) -> None:
        while True:
            try:
                conn, addr = self.listener.sock.accept()
            except (BlockingIOError, InterruptedError):
                return
            conn.setblocking(False)
            self._total += 1
            work_id = self._total
            uid = '%s-%s' % (work_id, conn.fileno())
            work = self.work_factory(TcpClientConnection(conn, addr), uid)
            self.works[work_id] = work
            try:
                work.initialize()
            except Exception as e:
                logger.exception(
                    'Exception occurred during initialization',
                    exc_info=e,
                )
                self._cleanup(work_id)

    async def _desired_events(self) -> Dict[int, Tuple[int, int, socket.socket]]:
        desired: Dict[int, Tuple[int, int, socket.socket]] = {}
        for work_id in list(self.works):
            try:
                events = await self.works[work_id].get_events()
            except Exception as e:
                logger.exception(
                    'Exception while collecting events of work#%d' % work_id,
                    exc_info=e,
                )
                self._cleanup(work_id)
                continue
            for sock, mask in events.items():
                fileno = sock.fileno()
                if fileno == -1 or mask == 0:
                    continue
                desired[fileno] = (mask, work_id, sock)
        return desired

    async def _update_selector(self) -> None:
        assert self.selector is not None
        desired = await self._desired_events()
        # A descriptor number can be reused by a different socket once
        # the previous owner closed it, compare socket identity as well.
        for fileno in list(self.registered):
            _, work_id, sock = self.registered[fileno]
            if fileno not in desired or \
                    desired[fileno][1] != work_id or \
                    desired[fileno][2] is not sock:
                self._unregister(fileno)
        for fileno, (mask, work_id, sock) in desired.items():
            if fileno in self.registered:
                if self.registered[fileno][0] != mask:
                    self.selector.modify(fileno, events=mask, data=work_id)
                    self.registered[fileno] = (mask, work_id, sock)
                    logger.debug(
                        'fd#{0} modified for mask#{1} by work#{2}'.format(
                            fileno, mask, work_id,
                        ),
                    )
            else:
                self.selector.register(fileno, events=mask, data=work_id)
                self.registered[fileno] = (mask, work_id, sock)
                logger.debug(
                    'fd#{0} registered for mask#{1} by work#{2}'.format(
                        fileno, mask, work_id,
                    ),
                )

    def _unregister(self, fileno: int) -> None:
        assert self.selector is not None
        del self.registered[fileno]
        try:
            self.selector.unregister(fileno)
        except (KeyError, ValueError, OSError):
            pass
        logger.debug('fd#{0} unregistered'.format(fileno))

    async def _selected_events(self) -> Tuple[Dict[int, Tuple[Readables, Writables]], bool]:
        """Returns ready descriptors grouped by work id and whether
        the listener has new connections waiting."""
        assert self.selector is not None
        await self._update_selector()
        work_by_ids: Dict[int, Tuple[Readables, Writables]] = {}
        new_work_available = False
        events = self.selector.select(timeout=DEFAULT_SELECTOR_SELECT_TIMEOUT)
        for key, mask in events:
            if key.data == LISTENER_WORK_ID:
                new_work_available = True
                continue
            if key.data not in work_by_ids:
                work_by_ids[key.data] = ([], [])
            if mask & selectors.EVENT_READ:
                work_by_ids[key.data][0].append(key.fd)
            if mask & selectors.EVENT_WRITE:
                work_by_ids[key.data][1].append(key.fd)
        return work_by_ids, new_work_available

    def _cleanup(self, work_id: int) -> None:
        for fileno in [
                fileno for fileno, registration in self.registered.items()
                if registration[1] == work_id
        ]:
            self._unregister(fileno)
        work = self.works.pop(work_id, None)
        if work is None:
            return
        try:
            work.shutdown()
        except Exception as e:
            logger.exception(
                'Exception while shutting down work#%d' % work_id,
                exc_info=e,
            )

    async def _run_once(self) -> None:
        work_by_ids, new_work_available = await self._selected_events()
        if new_work_available:
            self.accept()
        for work_id, (readables, writables) in work_by_ids.items():
            if work_id not in self.works:
                continue
            teardown = False
            try:
                teardown = await self.works[work_id].handle_events(readables, writables)
            except Exception as e:
                logger.exception(
                    'Exception while handling events of work#%d' % work_id,
                    exc_info=e,
                )
                teardown = True
            if teardown:
                self._cleanup(work_id)

    async def _run_forever(self) -> None:
        while not self.stopped.is_set():
            await self._run_once()

    def run(self) -> None:
        listener_fileno = self.listener.fileno()
        assert listener_fileno is not None
        self.selector = selectors.DefaultSelector()
        self.selector.register(
            listener_fileno,
            selectors.EVENT_READ,
            data=LISTENER_WORK_ID,
        )
        loop = asyncio.new_event_loop()
        self.running.set()
        try:
            loop.run_until_complete(self._run_forever())
        except KeyboardInterrupt:
            pass
        finally:
            for work_id in list(self.works):
                self._cleanup(work_id)
            self.selector.unregister(listener_fileno)
            self.selector.close()
            loop.run_until_complete(loop.shutdown_asyncgens())
            loop.close()
            self.running.clear()
