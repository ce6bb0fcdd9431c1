# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import json
import socket
import threading
import http.client
import unittest
from pathlib import Path
from typing import Any, Dict, List, Tuple, Optional
from http.server import ThreadingHTTPServer, BaseHTTPRequestHandler

import pytest

from reroute import ProxyServer, ProxyRequest, ProxyResponse, NullResolver, StaticFileResolver


class UpstreamHandler(BaseHTTPRequestHandler):
    """Echoes the received request back as JSON."""

    protocol_version = 'HTTP/1.1'

    def log_message(self, *args: Any) -> None:
        pass

    def _handle(self) -> None:
        length = int(self.headers.get('Content-Length', 0))
        body = self.rfile.read(length) if length else b''
        if self.path.endswith('/chunked'):
            self.send_response(200)
            self.send_header('Content-Type', 'text/plain')
            self.send_header('Transfer-Encoding', 'chunked')
            self.end_headers()
            for part in (b'first,', b'second,', b'third'):
                self.wfile.write(b'%x\r\n%s\r\n' % (len(part), part))
            self.wfile.write(b'0\r\n\r\n')
            return
        payload = json.dumps({
            'method': self.command,
            'path': self.path,
            'headers': [[k, v] for k, v in self.headers.items()],
            'body': body.decode('utf-8'),
        }).encode('utf-8')
        self.send_response(200)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(payload)))
        self.end_headers()
        if self.command != 'HEAD':
            self.wfile.write(payload)

    do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_OPTIONS = do_HEAD = _handle


class TestIntegration(unittest.TestCase):

    @classmethod
    def setUpClass(cls) -> None:
        cls.upstream = ThreadingHTTPServer(('127.0.0.1', 0), UpstreamHandler)
        cls.upstream.daemon_threads = True
        cls.upstream_thread = threading.Thread(target=cls.upstream.serve_forever, daemon=True)
        cls.upstream_thread.start()
        cls.upstream_port = cls.upstream.server_address[1]

    @classmethod
    def tearDownClass(cls) -> None:
        cls.upstream.shutdown()
        cls.upstream.server_close()
        cls.upstream_thread.join()

    def setUp(self) -> None:
        self.proxy = ProxyServer(
            {
                'host': '127.0.0.1',
                'port': self.upstream_port,
                'path': '/api',
                'headers': {'X-Token': 'secret', 'Accept': 'text/plain'},
            },
            local_resolver=NullResolver(),
            port=0,
            user_agent='reroute-test',
        )
        self.proxy.listen()

    def tearDown(self) -> None:
        self.proxy.shutdown()

    def request(
            self,
            method: str,
            path: str,
            body: Optional[bytes] = None,
            headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, Dict[str, str], bytes]:
        assert self.proxy.port is not None
        conn = http.client.HTTPConnection('127.0.0.1', self.proxy.port, timeout=5)
        try:
            conn.request(method, path, body=body, headers=headers or {})
            response = conn.getresponse()
            return response.status, dict(response.getheaders()), response.read()
        finally:
            conn.close()

    def upstream_view(self, path: str = '/users', **kwargs: Any) -> Dict[str, Any]:
        status, _, body = self.request(kwargs.pop('method', 'GET'), path, **kwargs)
        self.assertEqual(status, 200)
        return json.loads(body)

    def test_pass_through(self) -> None:
        seen = self.upstream_view('/users?page=2')
        self.assertEqual(seen['method'], 'GET')
        self.assertEqual(seen['path'], '/api/users?page=2')
        headers = {k.lower(): v for k, v in seen['headers']}
        self.assertEqual(headers['host'], '127.0.0.1:%d' % self.upstream_port)
        self.assertEqual(headers['x-token'], 'secret')
        self.assertEqual(headers['user-agent'], 'reroute-test')

    def test_inbound_headers_win_over_defaults(self) -> None:
        seen = self.upstream_view(headers={'Accept': 'application/json', 'User-Agent': 'curl'})
        headers = {k.lower(): v for k, v in seen['headers']}
        self.assertEqual(headers['accept'], 'application/json')
        self.assertEqual(headers['user-agent'], 'curl')
        self.assertEqual(
            len([k for k, _ in seen['headers'] if k.lower() == 'accept']), 1,
        )

    def test_access_control_request_method(self) -> None:
        seen = self.upstream_view(
            method='OPTIONS',
            headers={'Access-Control-Request-Method': 'DELETE'},
        )
        self.assertEqual(seen['method'], 'DELETE')

    def test_request_body_is_forwarded(self) -> None:
        seen = self.upstream_view(method='POST', body=b'{"name": "reroute"}')
        self.assertEqual(seen['method'], 'POST')
        self.assertEqual(seen['body'], '{"name": "reroute"}')

    def test_chunked_upstream_response(self) -> None:
        status, headers, body = self.request('GET', '/chunked')
        self.assertEqual(status, 200)
        self.assertEqual(body, b'first,second,third')
        self.assertEqual(headers['Transfer-Encoding'], 'chunked')

    def test_keep_alive_connection_is_reused(self) -> None:
        assert self.proxy.port is not None
        conn = http.client.HTTPConnection('127.0.0.1', self.proxy.port, timeout=5)
        try:
            for i in range(3):
                conn.request('GET', '/users/%d' % i)
                response = conn.getresponse()
                seen = json.loads(response.read())
                self.assertEqual(seen['path'], '/api/users/%d' % i)
        finally:
            conn.close()

    def test_interceptor_priority(self) -> None:
        calls: List[str] = []

        def decline(match: Any, request: ProxyRequest, response: ProxyResponse) -> bool:
            calls.append('decline')
            return False

        def claim(match: Any, request: ProxyRequest, response: ProxyResponse) -> bool:
            calls.append('claim:%s' % match.group(1))
            response.write_head(200, {'Content-Type': 'text/plain'})
            response.end('intercepted')
            return True

        def never(match: Any, request: ProxyRequest, response: ProxyResponse) -> bool:
            calls.append('never')
            response.end()
            return True

        self.proxy.intercept(r'^/users', decline)
        self.proxy.intercept(r'^/users/(\d+)$', claim)
        self.proxy.intercept(r'/users/', never)
        self.proxy.add_handler('/users/7', lambda req, res: res.end('handler'))

        status, _, body = self.request('GET', '/users/7')
        self.assertEqual((status, body), (200, b'intercepted'))
        self.assertEqual(calls, ['decline', 'claim:7'])

        self.proxy.intercept(r'^/users/(\d+)$')
        status, _, body = self.request('GET', '/users/7')
        self.assertEqual(body, b'')
        self.assertEqual(calls[-1], 'never')

    def test_handlers(self) -> None:
        def create(request: ProxyRequest, response: ProxyResponse) -> None:
            chunks: List[bytes] = []
            request.on_data(chunks.append)

            def on_end() -> None:
                response.write_head(201, {'Content-Type': 'text/plain'})
                response.end(b'created ' + b''.join(chunks))

            request.on_end(on_end)

        self.proxy.add_handler('/items', create, verbs='POST')
        status, _, body = self.request('POST', '/items', body=b'apple')
        self.assertEqual((status, body), (201, b'created apple'))

        # Other verbs still reach the upstream
        self.assertEqual(self.upstream_view('/items')['path'], '/api/items')

        self.proxy.remove_handler('/items')
        self.assertEqual(self.upstream_view('/items', method='POST')['method'], 'POST')

    def test_handler_fault_responds_500(self) -> None:
        def broken(request: ProxyRequest, response: ProxyResponse) -> None:
            raise RuntimeError('broken handler')

        self.proxy.add_handler('/broken', broken)
        status, _, body = self.request('GET', '/broken')
        self.assertEqual(status, 500)
        # Server keeps serving other connections
        self.assertEqual(self.upstream_view()['method'], 'GET')

    def test_pass_through_with_response_callback(self) -> None:
        bodies: List[bytes] = []
        done = threading.Event()

        def on_response(body: bytes) -> None:
            bodies.append(body)
            done.set()

        def observe(match: Any, request: ProxyRequest, response: ProxyResponse) -> bool:
            return self.proxy.pass_through(request, response, on_response)

        self.proxy.intercept('^/observed', observe)
        status, _, body = self.request('GET', '/observed')
        self.assertEqual(status, 200)
        self.assertTrue(done.wait(5))
        self.assertEqual(bodies, [body])
        self.assertEqual(json.loads(body)['path'], '/api/observed')


class TestUpstreamFailures(unittest.TestCase):

    def test_connection_refused_responds_502(self) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(('127.0.0.1', 0))
        port = sock.getsockname()[1]
        sock.close()
        with ProxyServer('127.0.0.1:%d' % port, local_resolver=NullResolver(), port=0) as proxy:
            assert proxy.port is not None
            conn = http.client.HTTPConnection('127.0.0.1', proxy.port, timeout=5)
            try:
                conn.request('GET', '/')
                response = conn.getresponse()
                self.assertEqual(response.status, 502)
                self.assertIn(b'127.0.0.1:%d' % port, response.read())
                self.assertEqual(response.getheader('Connection'), 'close')
            finally:
                conn.close()


class TestLocalOverrides:

    def test_local_file_is_served(self, tmp_path: Path) -> None:
        (tmp_path / 'api').mkdir()
        (tmp_path / 'api' / 'status.json').write_bytes(b'{"ok": true}')
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(('127.0.0.1', 0))
        port = sock.getsockname()[1]
        sock.close()
        proxy = ProxyServer(
            {'host': '127.0.0.1', 'port': port, 'path': '/api'},
            local_resolver=StaticFileResolver(str(tmp_path)),
            port=0,
        )
        with proxy:
            assert proxy.port is not None
            conn = http.client.HTTPConnection('127.0.0.1', proxy.port, timeout=5)
            try:
                conn.request('GET', '/status.json')
                response = conn.getresponse()
                assert response.status == 200
                assert response.getheader('Content-Type') == 'application/json'
                assert response.read() == b'{"ok": true}'
                conn.request('GET', '/missing.json')
                response = conn.getresponse()
                assert response.status == 502
                response.read()
            finally:
                conn.close()

    def test_local_dir_flag(self, tmp_path: Path) -> None:
        proxy = ProxyServer('localhost', local_dir=str(tmp_path))
        assert isinstance(proxy.local_resolver, StaticFileResolver)
        assert proxy.local_resolver.directory == str(tmp_path)
        assert proxy.port is None


@pytest.mark.parametrize('target', ['', {'port': 80}])
def test_invalid_target(target: Any) -> None:
    with pytest.raises(ValueError):
        ProxyServer(target)
