# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .proxy import ProxyServer, main, create_server, entry_point, sleep_loop
from .config import ProxyConfig
from .http import ProxyRequest, ProxyResponse
from .http.server import NullResolver, LocalResolver, StaticFileResolver
from .common.version import __version__


__all__ = [
    # Console script entry point
    'entry_point',
    # Embed reroute within your own application.
    'main',
    'create_server',
    'ProxyServer',
    'ProxyConfig',
    'ProxyRequest',
    'ProxyResponse',
    'LocalResolver',
    'NullResolver',
    'StaticFileResolver',
    # Utility for user to sleep until main thread
    'sleep_loop',
    '__version__',
]
