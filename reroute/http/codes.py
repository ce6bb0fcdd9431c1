# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from typing import NamedTuple


HttpStatusCodes = NamedTuple(
    'HttpStatusCodes', [
        # 1xx
        ('CONTINUE', int),
        ('SWITCHING_PROTOCOLS', int),
        # 2xx
        ('OK', int),
        ('NO_CONTENT', int),
        # 3xx
        ('NOT_MODIFIED', int),
        # 4xx
        ('BAD_REQUEST', int),
        ('NOT_FOUND', int),
        # 5xx
        ('INTERNAL_SERVER_ERROR', int),
        ('BAD_GATEWAY', int),
    ],
)

httpStatusCodes = HttpStatusCodes(
    100, 101,
    200, 204,
    304,
    400, 404,
    500, 502,
)
