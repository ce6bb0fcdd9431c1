# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .base import HttpProtocolException
from .upstream import UpstreamAbnormalClose, UpstreamConnectionError
from .handler_fault import HandlerFault


__all__ = [
    'HttpProtocolException',
    'UpstreamConnectionError',
    'UpstreamAbnormalClose',
    'HandlerFault',
]
