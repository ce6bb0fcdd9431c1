# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import logging
import ipaddress
import unittest
from unittest import mock

import reroute  # noqa: F401, registers every flag
from reroute.common.flag import FlagParser
from reroute.common.logger import single_char_to_level
from reroute.common.constants import (
    DEFAULT_PORT, DEFAULT_BACKLOG, DEFAULT_LOCAL_DIR, DEFAULT_IPV4_HOSTNAME,
)


class TestFlags(unittest.TestCase):

    def test_defaults(self) -> None:
        flags = FlagParser.initialize([])
        self.assertEqual(flags.hostname, DEFAULT_IPV4_HOSTNAME)
        self.assertEqual(flags.port, DEFAULT_PORT)
        self.assertEqual(flags.backlog, DEFAULT_BACKLOG)
        self.assertEqual(flags.local_dir, DEFAULT_LOCAL_DIR)
        self.assertEqual(flags.upstream, None)
        self.assertEqual(flags.base_path, '')
        self.assertEqual(flags.headers, [])
        self.assertTrue(flags.log_requests)

    def test_parse_args(self) -> None:
        flags = FlagParser.initialize([
            '--upstream', 'example.com:8080',
            '--base-path', '/api',
            '--header', 'X-Token: secret',
            '--header', 'Accept:application/json',
            '--user-agent', 'reroute-tests',
            '--disable-request-log',
            '--hostname', '::1',
            '--port', '0',
        ])
        self.assertEqual(flags.upstream, 'example.com:8080')
        self.assertEqual(flags.base_path, '/api')
        self.assertEqual(
            flags.headers,
            [(b'X-Token', b'secret'), (b'Accept', b'application/json')],
        )
        self.assertEqual(flags.user_agent, 'reroute-tests')
        self.assertFalse(flags.log_requests)
        self.assertEqual(flags.hostname, ipaddress.ip_address('::1'))
        self.assertEqual(flags.port, 0)

    def test_opts_override_args(self) -> None:
        flags = FlagParser.initialize(['--port', '9000'], port=9001, log_requests=False)
        self.assertEqual(flags.port, 9001)
        self.assertFalse(flags.log_requests)

    def test_invalid_header_flag(self) -> None:
        with self.assertRaises(ValueError):
            FlagParser.initialize(['--header', 'no-colon-here'])

    def test_parse_headers_passes_pairs_through(self) -> None:
        self.assertEqual(
            FlagParser.parse_headers([('X-A', 'b'), 'X-C: d']),
            [(b'X-A', b'b'), (b'X-C', b'd')],
        )

    @mock.patch('builtins.print')
    def test_version_exits(self, mock_print: mock.Mock) -> None:
        with self.assertRaises(SystemExit):
            FlagParser.initialize(['--version'])
        mock_print.assert_called_with(reroute.__version__)

    def test_single_char_to_level(self) -> None:
        self.assertEqual(single_char_to_level('d'), logging.DEBUG)
        self.assertEqual(single_char_to_level('INFO'), logging.INFO)
        self.assertEqual(single_char_to_level('warning'), logging.WARNING)
