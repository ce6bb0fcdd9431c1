# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from typing import Tuple

__version__ = '0.4.0'


def _split_version_parts(inp: str) -> Tuple[int, ...]:
    return tuple(int(part) for part in inp.split('.'))


VERSION = _split_version_parts(__version__)


__all__ = '__version__', 'VERSION'
