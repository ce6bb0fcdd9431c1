# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .work import Work
from .listener import TcpSocketListener
from .threadless import Threadless


__all__ = [
    'Work',
    'TcpSocketListener',
    'Threadless',
]
