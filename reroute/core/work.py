# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import argparse

from abc import ABC, abstractmethod
from uuid import uuid4
from typing import Generic, TypeVar, Optional

from ..common.types import Readables, Writables, SocketEvents


T = TypeVar('T')


class Work(ABC, Generic[T]):
    """Implement Work to hook into the event loop provided by Threadless."""

    def __init__(
            self,
            work: T,
            flags: argparse.Namespace,
            uid: Optional[str] = None,
    ) -> None:
        # Work uuid
        self.uid: str = uid if uid is not None else uuid4().hex
        self.flags = flags
        # Accepted work
        self.work = work

    @abstractmethod
    async def get_events(self) -> SocketEvents:
        """Return sockets and events (read or write) that we are interested in."""
        return {}   # pragma: no cover

    @abstractmethod
    async def handle_events(
            self,
            readables: Readables,
            writables: Writables,
    ) -> bool:
        """Handle readable and writable sockets.

        Return True to shutdown work."""
        return False    # pragma: no cover

    def initialize(self) -> None:
        """Perform any resource initialization."""
        pass    # pragma: no cover

    def shutdown(self) -> None:
        """Implementation must close any opened resources here."""
        pass    # pragma: no cover
