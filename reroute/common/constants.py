# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import os
import sys
import time
import ipaddress
from typing import FrozenSet

from .version import __version__


PROXY_START_TIME = time.time()

# /path/to/reroute folder
REROUTE_DIR = os.path.dirname(os.path.dirname(os.path.realpath(__file__)))

IS_WINDOWS = sys.platform.startswith('win')

CRLF = b'\r\n'
COLON = b':'
SEMICOLON = b';'
WHITESPACE = b' '
COMMA = b','
SLASH = b'/'
HTTP_PROTO = b'http'
HTTP_1_0 = HTTP_PROTO.upper() + SLASH + b'1.0'
HTTP_1_1 = HTTP_PROTO.upper() + SLASH + b'1.1'

PROXY_AGENT_HEADER_VALUE = b'reroute v' + \
    __version__.encode('utf-8', 'strict')

# Request header which, when present, overrides the outbound method.
# Lets CORS preflights reach the upstream as the method being asked about.
ACCESS_CONTROL_REQUEST_METHOD = b'access-control-request-method'

# Verbs a handler applies to when none are given explicitly
DEFAULT_HANDLER_VERBS: FrozenSet[str] = frozenset(
    ('GET', 'POST', 'PUT', 'DELETE', 'PATCH'),
)

# Defaults
DEFAULT_BACKLOG = 100
DEFAULT_BUFFER_SIZE = 128 * 1024
DEFAULT_MAX_SEND_SIZE = 64 * 1024
DEFAULT_CLIENT_RECVBUF_SIZE = DEFAULT_BUFFER_SIZE
DEFAULT_SERVER_RECVBUF_SIZE = DEFAULT_BUFFER_SIZE
DEFAULT_IPV4_HOSTNAME = ipaddress.IPv4Address('127.0.0.1')
DEFAULT_PORT = 8899
DEFAULT_HTTP_PORT = 80
DEFAULT_UPSTREAM = None
DEFAULT_BASE_PATH = ''
DEFAULT_USER_AGENT = None
DEFAULT_LOG_REQUESTS = True
DEFAULT_LOCAL_DIR = 'local'
DEFAULT_VERSION = False
DEFAULT_LOG_FILE = None
DEFAULT_LOG_FORMAT = '%(asctime)s - pid:%(process)d [%(levelname)-.1s] %(module)s.%(funcName)s:%(lineno)d - %(message)s'
DEFAULT_LOG_LEVEL = 'INFO'
DEFAULT_PASS_THROUGH_LOG_FORMAT = '{request_method} {request_host} {request_path}'
DEFAULT_ACCESS_LOG_FORMAT = '{client_ip}:{client_port} - ' + \
    '{request_method} {request_path} -> {dispatch_stage} - ' + \
    '{connection_time_ms}ms'
# 25 milliseconds to keep the loops hot
DEFAULT_SELECTOR_SELECT_TIMEOUT = 25 / 1000
DEFAULT_WAIT_FOR_SERVER_TIMEOUT = 10.0
