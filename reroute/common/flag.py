# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import sys
import argparse
import ipaddress
from typing import Any, List, Tuple, Optional

from .utils import bytes_
from .logger import Logger
from .version import __version__


class FlagParser:
    """Wrapper around argparse module.

    Import `flag.flags` and use `add_argument` API
    to define custom flags within respective Python files.

    Best Practice:
    1. Define flags at the top of your class files.
    2. DO NOT add flags within your class `__init__` method OR
       within class methods.  It MAY result into runtime exception,
       especially if your class is initialized multiple times or if
       class method registering the flag gets invoked multiple times.
    """

    def __init__(self) -> None:
        self.args: Optional[argparse.Namespace] = None
        self.actions: List[str] = []
        self.parser = argparse.ArgumentParser(
            description='reroute v%s' % __version__,
            epilog='reroute not working? Re-run with --log-level d for verbose logs.',
        )

    def add_argument(self, *args: Any, **kwargs: Any) -> argparse.Action:
        """Register a flag."""
        action = self.parser.add_argument(*args, **kwargs)
        self.actions.append(action.dest)
        return action

    def parse_args(
            self, input_args: Optional[List[str]],
    ) -> argparse.Namespace:
        """Parse flags from input arguments."""
        self.args = self.parser.parse_args(input_args)
        return self.args

    @staticmethod
    def initialize(
        input_args: Optional[List[str]] = None,
        **opts: Any,
    ) -> argparse.Namespace:
        """Parse input_args and apply keyword overrides.

        Keyword options always win over parsed flags, which lets
        embedding applications configure reroute without a command line."""
        if input_args is None:
            input_args = []

        args = flags.parse_args(input_args)

        # Print version and exit
        if args.version:
            print(__version__)
            sys.exit(0)

        for key, value in opts.items():
            setattr(args, key, value)

        # Setup logging module
        Logger.setup(args.log_file, args.log_level, args.log_format)

        if not isinstance(args.hostname, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            args.hostname = ipaddress.ip_address(args.hostname)
        args.headers = FlagParser.parse_headers(args.headers)
        return args

    @staticmethod
    def parse_headers(headers: Any) -> List[Tuple[bytes, bytes]]:
        """Resolves ``--header "Name: value"`` flags into header pairs.

        Already resolved pairs are passed through untouched."""
        if not headers:
            return []
        resolved: List[Tuple[bytes, bytes]] = []
        for header in headers:
            if isinstance(header, tuple):
                resolved.append((bytes_(header[0]), bytes_(header[1])))
                continue
            name, sep, value = header.partition(':')
            if not sep or not name.strip():
                raise ValueError('Invalid header flag %r, expected "Name: value"' % header)
            resolved.append((bytes_(name.strip()), bytes_(value.strip())))
        return resolved


flags = FlagParser()
