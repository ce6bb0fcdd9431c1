# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .chunk import LAST_CHUNK, ChunkParser, chunkParserStates
from .types import bodyFramings, httpParserTypes, httpParserStates
from .parser import HttpParser


__all__ = [
    'HttpParser',
    'httpParserTypes',
    'httpParserStates',
    'bodyFramings',
    'ChunkParser',
    'chunkParserStates',
    'LAST_CHUNK',
]
