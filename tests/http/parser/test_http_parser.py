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

from reroute.http.parser import HttpParser, bodyFramings, httpParserTypes, httpParserStates
from reroute.http.exception import HttpProtocolException
from reroute.common.utils import build_http_request, build_http_response


class TestHttpParser(unittest.TestCase):

    def setUp(self) -> None:
        self.parser = HttpParser(httpParserTypes.REQUEST_PARSER)

    def test_get_full_parse(self) -> None:
        raw = b'GET %s HTTP/1.1\r\nHost: %s\r\n\r\n'
        pkt = raw % (b'/path/dir/?a=b&c=d#p=q', b'example.com')
        self.parser.parse(pkt)
        self.assertEqual(self.parser.total_size, len(pkt))
        self.assertEqual(self.parser.method, b'GET')
        self.assertEqual(self.parser.path, b'/path/dir/?a=b&c=d#p=q')
        self.assertEqual(self.parser.version, b'HTTP/1.1')
        self.assertEqual(self.parser.header(b'host'), b'example.com')
        self.assertEqual(self.parser.state, httpParserStates.COMPLETE)
        self.assertEqual(self.parser.framing, bodyFramings.NONE)
        self.assertEqual(self.parser.buffer, b'')

    def test_build_request(self) -> None:
        self.assertEqual(
            build_http_request(b'GET', b'http://localhost:12345', b'HTTP/1.1'),
            b'GET http://localhost:12345 HTTP/1.1\r\n\r\n',
        )

    def test_get_partial_parse(self) -> None:
        self.parser.parse(b'GET /path HTTP/1.1')
        self.assertEqual(self.parser.method, None)
        self.assertEqual(self.parser.state, httpParserStates.INITIALIZED)
        self.assertEqual(self.parser.buffer, b'GET /path HTTP/1.1')

        self.parser.parse(b'\r\n')
        self.assertEqual(self.parser.method, b'GET')
        self.assertEqual(self.parser.path, b'/path')
        self.assertEqual(self.parser.state, httpParserStates.LINE_RCVD)

        self.parser.parse(b'Host: localhost')
        self.assertEqual(self.parser.state, httpParserStates.LINE_RCVD)
        self.assertEqual(self.parser.buffer, b'Host: localhost')

        self.parser.parse(b'\r\n')
        self.assertEqual(self.parser.header(b'host'), b'localhost')
        self.assertEqual(self.parser.state, httpParserStates.RCVING_HEADERS)

        self.parser.parse(b'\r\n')
        self.assertEqual(self.parser.state, httpParserStates.COMPLETE)

    def test_duplicate_headers_are_preserved(self) -> None:
        self.parser.parse(
            b'GET / HTTP/1.1\r\n'
            b'Accept: text/html\r\n'
            b'accept: application/json\r\n'
            b'X-Empty:\r\n\r\n',
        )
        self.assertEqual(
            self.parser.headers, [
                (b'Accept', b'text/html'),
                (b'accept', b'application/json'),
                (b'X-Empty', b''),
            ],
        )
        self.assertEqual(self.parser.header(b'ACCEPT'), b'text/html')
        self.assertTrue(self.parser.has_header(b'x-empty'))
        self.assertFalse(self.parser.has_header(b'host'))
        with self.assertRaises(KeyError):
            self.parser.header(b'host')

    def test_leading_empty_lines_are_tolerated(self) -> None:
        self.parser.parse(b'\r\n\r\nGET / HTTP/1.1\r\n\r\n')
        self.assertEqual(self.parser.method, b'GET')
        self.assertTrue(self.parser.is_complete)

    def test_post_pauses_at_headers_complete(self) -> None:
        received = []
        parser = HttpParser(httpParserTypes.REQUEST_PARSER, on_body=received.append)
        parser.parse(
            b'POST /submit HTTP/1.1\r\n'
            b'Content-Length: 7\r\n\r\n'
            b'a=b',
        )
        self.assertEqual(parser.state, httpParserStates.HEADERS_COMPLETE)
        self.assertTrue(parser.headers_complete)
        self.assertFalse(parser.is_complete)
        self.assertEqual(parser.framing, bodyFramings.CONTENT_LENGTH)
        self.assertEqual(received, [])
        self.assertEqual(parser.buffer, b'a=b')

        parser.parse(b'')
        self.assertEqual(received, [b'a=b'])
        self.assertEqual(parser.state, httpParserStates.RCVING_BODY)

        parser.parse(b'&c=dGET / HTTP/1.1\r\n\r\n')
        self.assertEqual(received, [b'a=b', b'&c=d'])
        self.assertTrue(parser.is_complete)
        self.assertEqual(parser.buffer, b'GET / HTTP/1.1\r\n\r\n')
        self.assertEqual(parser.body, None)

    def test_post_full_parse(self) -> None:
        parser = HttpParser.request(
            b'POST /submit HTTP/1.1\r\n'
            b'Content-Type: application/x-www-form-urlencoded\r\n'
            b'Content-Length: 7\r\n\r\n'
            b'a=b&c=d',
        )
        self.assertEqual(parser.method, b'POST')
        self.assertEqual(parser.body, b'a=b&c=d')
        self.assertTrue(parser.is_complete)

    def test_chunked_request(self) -> None:
        parser = HttpParser.request(
            b'POST /upload HTTP/1.1\r\n'
            b'Transfer-Encoding: chunked\r\n'
            b'Content-Length: 100\r\n\r\n'
            b'3\r\nabc\r\n2\r\nde\r\n0\r\n\r\n',
        )
        self.assertTrue(parser.is_chunked_encoded)
        self.assertEqual(parser.body, b'abcde')
        self.assertTrue(parser.is_complete)

    def test_chunked_request_across_reads(self) -> None:
        received = []
        parser = HttpParser(httpParserTypes.REQUEST_PARSER, on_body=received.append)
        parser.parse(b'POST / HTTP/1.1\r\nTransfer-Encoding: chunked\r\n\r\n')
        parser.parse(b'3\r\nab')
        parser.parse(b'c\r\n0\r\n')
        self.assertFalse(parser.is_complete)
        parser.parse(b'\r\n')
        self.assertEqual(received, [b'ab', b'c'])
        self.assertTrue(parser.is_complete)

    def test_request_without_body_headers_is_complete(self) -> None:
        parser = HttpParser.request(b'POST /empty HTTP/1.1\r\n\r\n')
        self.assertTrue(parser.is_complete)
        self.assertFalse(parser.body_expected)

    def test_zero_content_length(self) -> None:
        parser = HttpParser.request(b'PUT /empty HTTP/1.1\r\nContent-Length: 0\r\n\r\n')
        self.assertTrue(parser.is_complete)
        self.assertEqual(parser.body, None)

    def test_invalid_request_line(self) -> None:
        for line in (b'GET\r\n', b'GET / FTP/1.1\r\n', b'GET  / HTTP/1.1\r\n'):
            parser = HttpParser(httpParserTypes.REQUEST_PARSER)
            with self.assertRaises(HttpProtocolException):
                parser.parse(line)

    def test_invalid_header_line(self) -> None:
        with self.assertRaises(HttpProtocolException):
            self.parser.parse(b'GET / HTTP/1.1\r\nno-colon-here\r\n\r\n')

    def test_invalid_content_length(self) -> None:
        with self.assertRaises(HttpProtocolException):
            self.parser.parse(b'POST / HTTP/1.1\r\nContent-Length: abc\r\n\r\n')
        parser = HttpParser(httpParserTypes.REQUEST_PARSER)
        with self.assertRaises(HttpProtocolException):
            parser.parse(b'POST / HTTP/1.1\r\nContent-Length: -1\r\n\r\n')

    def test_keep_alive(self) -> None:
        self.assertTrue(HttpParser.request(b'GET / HTTP/1.1\r\n\r\n').is_keep_alive)
        self.assertFalse(
            HttpParser.request(
                b'GET / HTTP/1.1\r\nConnection: Upgrade, Close\r\n\r\n',
            ).is_keep_alive,
        )
        self.assertFalse(HttpParser.request(b'GET / HTTP/1.0\r\n\r\n').is_keep_alive)
        self.assertTrue(
            HttpParser.request(
                b'GET / HTTP/1.0\r\nConnection: keep-alive\r\n\r\n',
            ).is_keep_alive,
        )

    def test_response_parse(self) -> None:
        parser = HttpParser.response(
            build_http_response(
                200, reason=b'OK',
                headers={b'Content-Type': b'text/plain'},
                body=b'hello',
            ),
        )
        self.assertEqual(parser.code, b'200')
        self.assertEqual(parser.reason, b'OK')
        self.assertEqual(parser.version, b'HTTP/1.1')
        self.assertEqual(parser.body, b'hello')
        self.assertTrue(parser.is_complete)
        self.assertFalse(parser.is_interim)

    def test_response_without_reason(self) -> None:
        parser = HttpParser.response(b'HTTP/1.1 204\r\n\r\n')
        self.assertEqual(parser.code, b'204')
        self.assertEqual(parser.reason, b'')
        self.assertTrue(parser.is_complete)

    def test_response_reason_with_spaces(self) -> None:
        parser = HttpParser.response(b'HTTP/1.1 404 Not Found Here\r\nContent-Length: 0\r\n\r\n')
        self.assertEqual(parser.reason, b'Not Found Here')

    def test_invalid_response_line(self) -> None:
        for line in (b'HTTP/1.1\r\n', b'HTTP/1.1 2000 OK\r\n', b'ICY 200 OK\r\n', b'HTTP/1.1 abc\r\n'):
            parser = HttpParser(httpParserTypes.RESPONSE_PARSER)
            with self.assertRaises(HttpProtocolException):
                parser.parse(line)

    def test_response_close_delimited(self) -> None:
        parser = HttpParser(httpParserTypes.RESPONSE_PARSER)
        parser.parse(b'HTTP/1.0 200 OK\r\nContent-Type: text/plain\r\n\r\nsome ')
        self.assertEqual(parser.framing, bodyFramings.CLOSE_DELIMITED)
        parser.parse(b'')
        parser.parse(b'data')
        self.assertFalse(parser.is_complete)
        self.assertEqual(parser.body, b'some data')
        self.assertTrue(parser.finish())
        self.assertTrue(parser.is_complete)

    def test_finish_incomplete_content_length(self) -> None:
        parser = HttpParser(httpParserTypes.RESPONSE_PARSER)
        parser.parse(b'HTTP/1.1 200 OK\r\nContent-Length: 10\r\n\r\nabc')
        parser.parse(b'')
        self.assertFalse(parser.finish())
        self.assertFalse(parser.is_complete)

    def test_finish_before_headers(self) -> None:
        parser = HttpParser(httpParserTypes.RESPONSE_PARSER)
        parser.parse(b'HTTP/1.1 200 OK\r\n')
        self.assertFalse(parser.finish())

    def test_response_chunked(self) -> None:
        parser = HttpParser.response(
            b'HTTP/1.1 200 OK\r\n'
            b'Transfer-Encoding: gzip, chunked\r\n\r\n'
            b'4\r\nWiki\r\n0\r\n\r\n',
        )
        self.assertTrue(parser.is_chunked_encoded)
        self.assertEqual(parser.body, b'Wiki')
        self.assertTrue(parser.is_complete)

    def test_responses_without_body(self) -> None:
        for code in (b'100', b'101', b'204', b'304'):
            parser = HttpParser.response(
                b'HTTP/1.1 ' + code + b' X\r\nContent-Length: 10\r\n\r\n',
            )
            self.assertTrue(parser.is_complete, code)
            self.assertFalse(parser.body_expected, code)

    def test_head_response_has_no_body(self) -> None:
        parser = HttpParser.response(
            b'HTTP/1.1 200 OK\r\nContent-Length: 1024\r\n\r\n',
            request_method=b'HEAD',
        )
        self.assertTrue(parser.is_complete)
        self.assertEqual(parser.body, None)

    def test_interim_response(self) -> None:
        parser = HttpParser.response(b'HTTP/1.1 100 Continue\r\n\r\nHTTP/1.1 200 OK\r\n')
        self.assertTrue(parser.is_interim)
        self.assertTrue(parser.is_complete)
        self.assertEqual(parser.buffer, b'HTTP/1.1 200 OK\r\n')

    def test_parse_after_complete_buffers(self) -> None:
        parser = HttpParser.request(b'GET / HTTP/1.1\r\n\r\n')
        parser.parse(b'GET /next HTTP/1.1\r\n')
        self.assertEqual(parser.buffer, b'GET /next HTTP/1.1\r\n')
        self.assertEqual(parser.path, b'/')
