# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .passthrough import PassThrough, UpstreamRequestContext, build_context


__all__ = [
    'PassThrough',
    'UpstreamRequestContext',
    'build_context',
]
