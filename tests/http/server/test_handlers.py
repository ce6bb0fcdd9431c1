# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import unittest
from unittest import mock

from reroute.http.server.handlers import HandlerRegistry, normalize_verbs
from reroute.common.constants import DEFAULT_HANDLER_VERBS


class TestNormalizeVerbs(unittest.TestCase):

    def test_default(self) -> None:
        self.assertEqual(normalize_verbs(None), DEFAULT_HANDLER_VERBS)
        self.assertEqual(
            normalize_verbs(None, frozenset(['GET'])),
            frozenset(['GET']),
        )

    def test_single_and_joined(self) -> None:
        self.assertEqual(normalize_verbs('get'), frozenset(['GET']))
        self.assertEqual(normalize_verbs(' get, post ,,'), frozenset(['GET', 'POST']))
        self.assertEqual(normalize_verbs(b'options'), frozenset(['OPTIONS']))

    def test_iterable(self) -> None:
        self.assertEqual(
            normalize_verbs(['put', b'delete', 'Patch,head']),
            frozenset(['PUT', 'DELETE', 'PATCH', 'HEAD']),
        )
        self.assertEqual(normalize_verbs([]), frozenset())


class TestHandlerRegistry(unittest.TestCase):

    def setUp(self) -> None:
        self.registry = HandlerRegistry()

    def test_add_default_verbs(self) -> None:
        handler = mock.Mock()
        self.registry.add('/users', handler)
        entry = self.registry.entry('/users')
        assert entry is not None
        self.assertEqual(entry.verbs, DEFAULT_HANDLER_VERBS)
        for verb in DEFAULT_HANDLER_VERBS:
            self.assertEqual(self.registry.lookup('/users', verb), handler)
        self.assertIsNone(self.registry.lookup('/users', 'OPTIONS'))
        self.assertIsNone(self.registry.lookup('/users', 'HEAD'))

    def test_lookup_defaults_to_get(self) -> None:
        handler = mock.Mock()
        self.registry.add('/users', handler, verbs='GET')
        self.assertEqual(self.registry.lookup('/users'), handler)

    def test_lookup_is_exact(self) -> None:
        self.registry.add('/users', mock.Mock(), verbs='GET')
        self.assertIsNone(self.registry.lookup('/users/'))
        self.assertIsNone(self.registry.lookup('/users?x=1'))
        self.assertIsNone(self.registry.lookup('/users', 'get'))
        self.assertIsNone(self.registry.lookup('/unknown'))

    def test_add_merges_verbs(self) -> None:
        reader, writer = mock.Mock(), mock.Mock()
        self.registry.add('/items', reader, verbs='GET')
        self.registry.add('/items', writer, verbs=['POST', 'PUT'])
        self.assertEqual(self.registry.lookup('/items', 'GET'), reader)
        self.assertEqual(self.registry.lookup('/items', 'POST'), writer)
        self.assertEqual(self.registry.lookup('/items', 'PUT'), writer)
        # Re-adding a verb replaces its handler
        replacement = mock.Mock()
        self.registry.add('/items', replacement, verbs='GET')
        self.assertEqual(self.registry.lookup('/items', 'GET'), replacement)
        self.assertEqual(len(self.registry), 1)

    def test_remove_all_verbs(self) -> None:
        self.registry.add('/items', mock.Mock())
        self.registry.remove('/items')
        self.assertNotIn('/items', self.registry)
        self.assertIsNone(self.registry.lookup('/items'))
        # Unknown path is a no-op
        self.registry.remove('/unknown')

    def test_remove_some_verbs(self) -> None:
        handler = mock.Mock()
        self.registry.add('/items', handler, verbs='GET,POST')
        self.registry.remove('/items', verbs='post')
        self.assertEqual(self.registry.lookup('/items', 'GET'), handler)
        self.assertIsNone(self.registry.lookup('/items', 'POST'))
        self.registry.remove('/items', verbs=['GET'])
        self.assertNotIn('/items', self.registry)

    def test_remove_with_empty_verbs_removes_path(self) -> None:
        self.registry.add('/items', mock.Mock(), verbs='GET,POST')
        self.registry.remove('/items', verbs='')
        self.assertNotIn('/items', self.registry)
        self.registry.add('/items', mock.Mock(), verbs='GET,POST')
        self.registry.remove('/items', verbs=[])
        self.assertNotIn('/items', self.registry)
        self.registry.add('/items', mock.Mock())
        self.registry.remove('/items', verbs=' , ')
        self.assertNotIn('/items', self.registry)

    def test_custom_default_verbs(self) -> None:
        registry = HandlerRegistry(default_verbs=frozenset(['GET', 'HEAD']))
        registry.add('/page', mock.Mock())
        entry = registry.entry('/page')
        assert entry is not None
        self.assertEqual(entry.verbs, frozenset(['GET', 'HEAD']))

    def test_paths(self) -> None:
        self.registry.add('/a', mock.Mock()).add('/b', mock.Mock())
        self.assertEqual(sorted(self.registry.paths()), ['/a', '/b'])
