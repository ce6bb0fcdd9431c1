# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .codes import httpStatusCodes
from ..common.utils import bytes_, build_http_response
from ..common.constants import PROXY_AGENT_HEADER_VALUE


BAD_REQUEST_RESPONSE_PKT = memoryview(
    build_http_response(
        httpStatusCodes.BAD_REQUEST,
        reason=b'Bad Request',
        headers={
            b'Server': PROXY_AGENT_HEADER_VALUE,
            b'Content-Length': b'0',
        },
        conn_close=True,
    ),
)

INTERNAL_SERVER_ERROR_RESPONSE_PKT = memoryview(
    build_http_response(
        httpStatusCodes.INTERNAL_SERVER_ERROR,
        reason=b'Internal Server Error',
        headers={
            b'Server': PROXY_AGENT_HEADER_VALUE,
            b'Content-Type': b'text/plain',
        },
        body=b'Internal Server Error',
        conn_close=True,
    ),
)


def badGatewayResponse(reason: str) -> memoryview:
    return memoryview(
        build_http_response(
            httpStatusCodes.BAD_GATEWAY,
            reason=b'Bad Gateway',
            headers={
                b'Server': PROXY_AGENT_HEADER_VALUE,
                b'Content-Type': b'text/plain',
            },
            body=bytes_(reason),
            conn_close=True,
        ),
    )
