# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .local import NullResolver, LocalResolver, StaticFileResolver
from .handlers import HandlerEntry, HandlerRegistry, normalize_verbs
from .interceptors import Interceptor, InterceptorRegistry


__all__ = [
    'Interceptor',
    'InterceptorRegistry',
    'HandlerEntry',
    'HandlerRegistry',
    'normalize_verbs',
    'LocalResolver',
    'NullResolver',
    'StaticFileResolver',
]
