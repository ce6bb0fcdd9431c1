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


# Methods with special handling, anything else is passed through literally.
HttpMethods = NamedTuple(
    'HttpMethods', [
        ('CONNECT', bytes),
        ('DELETE', bytes),
        ('GET', bytes),
        ('HEAD', bytes),
        ('OPTIONS', bytes),
        ('PATCH', bytes),
        ('POST', bytes),
        ('PUT', bytes),
        ('TRACE', bytes),
    ],
)

httpMethods = HttpMethods(
    b'CONNECT',
    b'DELETE',
    b'GET',
    b'HEAD',
    b'OPTIONS',
    b'PATCH',
    b'POST',
    b'PUT',
    b'TRACE',
)
