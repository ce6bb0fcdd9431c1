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
import time
import signal
import logging
import threading
from typing import Any, List, Union, Mapping, Callable, Optional

from .config import ProxyConfig
from .core import Threadless, TcpSocketListener
from .http import Dispatcher, ProxyRequest, ProxyResponse, HttpProtocolHandler
from .http.server import (
    LocalResolver, HandlerRegistry, StaticFileResolver, InterceptorRegistry,
)
from .common.flag import FlagParser, flags
from .common.types import (
    PatternLike, RequestHandler, ResponseCallback, InterceptorCallback,
)
from .common.constants import (
    IS_WINDOWS, DEFAULT_VERSION, DEFAULT_LOG_FILE, DEFAULT_UPSTREAM,
    DEFAULT_BASE_PATH, DEFAULT_LOG_LEVEL, DEFAULT_LOG_FORMAT,
    DEFAULT_USER_AGENT, DEFAULT_LOG_REQUESTS, DEFAULT_WAIT_FOR_SERVER_TIMEOUT,
)
from .core.connection import TcpClientConnection


logger = logging.getLogger(__name__)


flags.add_argument(
    '--version',
    '-v',
    action='store_true',
    default=DEFAULT_VERSION,
    help='Prints reroute version.',
)

flags.add_argument(
    '--log-level',
    type=str,
    default=DEFAULT_LOG_LEVEL,
    help='Valid options: DEBUG, INFO (default), WARNING, ERROR, CRITICAL. '
    'Both upper and lowercase values are allowed. '
    'You may also simply use the leading character e.g. --log-level d',
)

flags.add_argument(
    '--log-file',
    type=str,
    default=DEFAULT_LOG_FILE,
    help='Default: sys.stdout. Log file destination.',
)

flags.add_argument(
    '--log-format',
    type=str,
    default=DEFAULT_LOG_FORMAT,
    help='Log format for Python logger.',
)

flags.add_argument(
    '--upstream',
    type=str,
    default=DEFAULT_UPSTREAM,
    help='Default: None. Upstream server unmatched requests are passed '
    'through to, as host, host:port or [ipv6]:port.',
)

flags.add_argument(
    '--base-path',
    type=str,
    default=DEFAULT_BASE_PATH,
    help='Default: "". Path prefixed to every request passed through '
    'to the upstream.  Also used as sub-directory of --local-dir.',
)

flags.add_argument(
    '--header',
    dest='headers',
    action='append',
    default=None,
    help='Default header sent upstream as "Name: value".  '
    'You may use --header flag multiple times.',
)

flags.add_argument(
    '--user-agent',
    type=str,
    default=DEFAULT_USER_AGENT,
    help='Default: None. Overrides user-agent header sent upstream '
    'unless the client sends its own.',
)

flags.add_argument(
    '--disable-request-log',
    dest='log_requests',
    action='store_false',
    default=DEFAULT_LOG_REQUESTS,
    help='Default: False.  Disables per request log of passed through requests.',
)

Target = Union[str, Mapping[str, Any], ProxyConfig]


class ProxyServer:
    """Reverse proxy for a single upstream.

    Requests are resolved by registered interceptors, then handlers,
    then the local resolver and finally passed through to the upstream.
    Registration methods may be called before or after ``listen``, from
    any thread.

    ``ProxyServer`` is also a context manager which listens on enter
    and shuts down on exit.
    """

    def __init__(
            self,
            target: Optional[Target] = None,
            input_args: Optional[List[str]] = None,
            local_resolver: Optional[LocalResolver] = None,
            **opts: Any,
    ) -> None:
        self.flags = FlagParser.initialize(input_args, **opts)
        if target is None:
            self.config = ProxyConfig.from_flags(self.flags)
        else:
            self.config = ProxyConfig.from_target(target, user_agent=self.flags.user_agent)
        self.interceptors = InterceptorRegistry()
        self.handlers = HandlerRegistry(self.config.methods)
        self.local_resolver: LocalResolver = local_resolver \
            if local_resolver is not None \
            else StaticFileResolver(self.flags.local_dir)
        self.dispatcher = Dispatcher(
            self.config,
            self.interceptors,
            self.handlers,
            self.local_resolver,
            flags=self.flags,
        )
        self.listener: Optional[TcpSocketListener] = None
        self.threadless: Optional[Threadless] = None
        self._thread: Optional[threading.Thread] = None
        # True while serve_forever owns the loop and the listener
        self._serving = False

    def __enter__(self) -> 'ProxyServer':
        if self.listener is None:
            self.listen()
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown()

    @property
    def port(self) -> Optional[int]:
        """Port the server is bound to, None before ``listen``."""
        if self.listener is None:
            return None
        return self.listener.bound_port

    def intercept(
            self,
            pattern: PatternLike,
            callback: Optional[InterceptorCallback] = None,
    ) -> 'ProxyServer':
        """Registers callback for request paths matching pattern.

        Without a callback, the interceptor for pattern is removed."""
        self.interceptors.register(pattern, callback)
        return self

    def add_handler(
            self,
            path: str,
            handler: RequestHandler,
            verbs: Optional[Any] = None,
    ) -> 'ProxyServer':
        self.handlers.add(path, handler, verbs)
        return self

    def remove_handler(self, path: str, verbs: Optional[Any] = None) -> 'ProxyServer':
        self.handlers.remove(path, verbs)
        return self

    def pass_through(
            self,
            request: ProxyRequest,
            response: ProxyResponse,
            on_response: Optional[ResponseCallback] = None,
    ) -> bool:
        """Proxies request upstream, ``on_response`` receives the full body."""
        return self.dispatcher.pass_through(request, response, on_response)

    def _work_factory(self, conn: TcpClientConnection, uid: str) -> HttpProtocolHandler:
        return HttpProtocolHandler(
            conn,
            flags=self.flags,
            uid=uid,
            dispatcher=self.dispatcher,
        )

    def setup(self, port: Optional[int] = None) -> None:
        """Binds the listener, the loop is not started yet."""
        assert self.listener is None, 'Server already listening'
        self.listener = TcpSocketListener(flags=self.flags, port=port)
        self.listener.setup()
        # Override flags.port to match the actual port
        # we are listening upon.  This is necessary to preserve
        # the server port when port 0 is used.
        self.flags.port = self.listener.bound_port
        self.threadless = Threadless(
            flags=self.flags,
            listener=self.listener,
            work_factory=self._work_factory,
        )
        logger.info(
            'Proxying to %s:%d%s' %
            (self.config.host, self.config.port, self.config.path),
        )

    def listen(
            self,
            port: Optional[int] = None,
            callback: Optional[Callable[[], Any]] = None,
    ) -> 'ProxyServer':
        """Binds and runs the event loop on a background thread.

        ``callback`` is invoked once the server accepts connections."""
        self.setup(port)
        assert self.threadless is not None
        self._thread = threading.Thread(
            target=self.threadless.run,
            name='reroute-%d' % self.port,
            daemon=True,
        )
        self._thread.start()
        if not self.threadless.running.wait(DEFAULT_WAIT_FOR_SERVER_TIMEOUT):
            raise RuntimeError('Event loop did not start')
        if callback is not None:
            callback()
        return self

    def serve_forever(self) -> None:
        """Runs the event loop on the calling thread until ``shutdown``."""
        if self.listener is None:
            self.setup()
        assert self.threadless is not None
        self._serving = True
        try:
            self.threadless.run()
        finally:
            self._serving = False
            self._close_listener()

    def shutdown(self) -> None:
        """Stops the event loop.  When ``serve_forever`` runs on another
        thread, it closes the listener itself once the loop returns."""
        if self.threadless is not None:
            self.threadless.shutdown()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if not self._serving:
            self._close_listener()

    def _close_listener(self) -> None:
        if self.listener is not None:
            self.listener.shutdown()
            self.listener = None
        self.threadless = None

    def register_signals(self) -> None:
        signal.signal(signal.SIGINT, self._handle_exit_signal)
        signal.signal(signal.SIGTERM, self._handle_exit_signal)
        if not IS_WINDOWS:
            signal.signal(signal.SIGHUP, self._handle_exit_signal)

    @staticmethod
    def _handle_exit_signal(signum: int, _frame: Any) -> None:
        logger.debug('Received signal %d' % signum)
        sys.exit(0)


def create_server(target: Optional[Target] = None, **kwargs: Any) -> ProxyServer:
    return ProxyServer(target, **kwargs)


def sleep_loop(p: Optional[ProxyServer] = None) -> None:
    while True:
        try:
            time.sleep(1)
        except KeyboardInterrupt:
            break


def main(input_args: Optional[List[str]] = None, **opts: Any) -> None:
    try:
        server = ProxyServer(
            input_args=sys.argv[1:] if input_args is None else input_args,
            **opts,
        )
    except ValueError as e:
        flags.parser.error(str(e))
    if threading.current_thread() == threading.main_thread():
        server.register_signals()
    with server:
        sleep_loop(server)


def entry_point() -> None:
    main()
