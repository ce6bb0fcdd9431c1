# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
from .proxy import entry_point


if __name__ == '__main__':
    entry_point()
