# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .handler import HttpProtocolHandler
from .request import ProxyRequest
from .response import ProxyResponse
from .dispatcher import Dispatcher, dispatchStages
from .codes import httpStatusCodes
from .methods import httpMethods


__all__ = [
    'HttpProtocolHandler',
    'ProxyRequest',
    'ProxyResponse',
    'Dispatcher',
    'dispatchStages',
    'httpStatusCodes',
    'httpMethods',
]
