# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import argparse
from dataclasses import field, dataclass
from typing import Any, Dict, Tuple, Union, Mapping, FrozenSet, Optional

from .common.types import HeaderList
from .common.utils import text_, bytes_, normalize_verbs, normalize_headers
from .common.constants import (
    DEFAULT_BASE_PATH, DEFAULT_HTTP_PORT, DEFAULT_LOG_REQUESTS,
    DEFAULT_HANDLER_VERBS,
)


def parse_upstream_target(target: str) -> Tuple[str, int]:
    """Parses ``host``, ``host:port`` or ``[ipv6]:port`` into (host, port)."""
    target = target.strip()
    if target.startswith('['):
        host, sep, rest = target[1:].partition(']')
        if not sep:
            raise ValueError('Invalid upstream target %r' % target)
        port = rest[1:] if rest.startswith(':') else None
        if rest and port is None:
            raise ValueError('Invalid upstream target %r' % target)
    elif ':' in target:
        host, port = target.rsplit(':', 1)
    else:
        host, port = target, None
    if not host:
        raise ValueError('Upstream host missing in %r' % target)
    return host, DEFAULT_HTTP_PORT if port is None else parse_port(port)


def parse_port(port: Any) -> int:
    try:
        value = int(port)
    except (TypeError, ValueError):
        raise ValueError('Invalid upstream port %r' % (port,)) from None
    if not 0 < value < 65536:
        raise ValueError('Upstream port %d out of range' % value)
    return value


# Accepted mapping keys, camelCase spellings map onto their snake_case key
TARGET_KEYS = {
    'host': 'host',
    'port': 'port',
    'path': 'path',
    'headers': 'headers',
    'methods': 'methods',
    'log_requests': 'log_requests',
    'logRequests': 'log_requests',
    'user_agent': 'user_agent',
    'userAgent': 'user_agent',
}


def normalize_target_keys(target: Mapping[str, Any]) -> Dict[str, Any]:
    """Maps target keys onto their snake_case spelling.

    Raises ValueError for unknown keys."""
    unknown = sorted(str(k) for k in target if k not in TARGET_KEYS)
    if unknown:
        raise ValueError('Unknown upstream option(s) %s' % ', '.join(unknown))
    return {TARGET_KEYS[k]: v for k, v in target.items()}


def with_user_agent(headers: HeaderList, user_agent: Optional[str]) -> HeaderList:
    """Replaces any configured user-agent header when user_agent is given."""
    if user_agent is None:
        return headers
    headers = [(k, v) for k, v in headers if k.lower() != b'user-agent']
    headers.append((b'user-agent', bytes_(user_agent)))
    return headers


@dataclass(frozen=True)
class ProxyConfig:
    """Upstream configuration shared by every request of a server.

    Instances are immutable, headers are handed out as copies so
    per-request mutation never leaks back into the configuration."""

    host: str
    port: int = DEFAULT_HTTP_PORT
    path: str = DEFAULT_BASE_PATH
    headers: Tuple[Tuple[bytes, bytes], ...] = ()
    log_requests: bool = DEFAULT_LOG_REQUESTS
    methods: FrozenSet[str] = field(default=DEFAULT_HANDLER_VERBS)

    def clone_headers(self) -> HeaderList:
        return list(self.headers)

    @property
    def host_header(self) -> bytes:
        """Value of the ``Host`` header sent to the upstream."""
        host = self.host if ':' not in self.host else '[%s]' % self.host
        if self.port == DEFAULT_HTTP_PORT:
            return bytes_(host)
        return bytes_('%s:%d' % (host, self.port))

    @classmethod
    def from_target(
            cls,
            target: Union[str, Mapping[str, Any], 'ProxyConfig'],
            user_agent: Optional[str] = None,
    ) -> 'ProxyConfig':
        """Builds configuration from ``"host"``, ``"host:port"`` or a mapping.

        Supported mapping keys are ``host``, ``port``, ``path``,
        ``headers``, ``log_requests``, ``user_agent`` and ``methods``.
        ``logRequests`` and ``userAgent`` are accepted as well, any other
        key raises ``ValueError``.
        """
        if isinstance(target, ProxyConfig):
            return target
        if isinstance(target, str):
            host, port = parse_upstream_target(target)
            return cls(
                host=host,
                port=port,
                headers=tuple(with_user_agent([], user_agent)),
            )
        target = normalize_target_keys(target)
        if not target.get('host'):
            raise ValueError('Upstream host is required')
        headers = normalize_headers(target.get('headers'))
        headers = with_user_agent(
            headers, user_agent or target.get('user_agent'),
        )
        methods = target.get('methods')
        return cls(
            host=text_(target['host']),
            port=parse_port(target.get('port') or DEFAULT_HTTP_PORT),
            path=text_(target.get('path') or DEFAULT_BASE_PATH),
            headers=tuple(headers),
            log_requests=bool(target.get('log_requests', DEFAULT_LOG_REQUESTS)),
            methods=normalize_verbs(methods) if methods else DEFAULT_HANDLER_VERBS,
        )

    @classmethod
    def from_flags(cls, flags: argparse.Namespace) -> 'ProxyConfig':
        if not flags.upstream:
            raise ValueError('Upstream target is required, use --upstream')
        host, port = parse_upstream_target(flags.upstream)
        return cls.from_target(
            {
                'host': host,
                'port': port,
                'path': flags.base_path,
                'headers': flags.headers,
                'log_requests': flags.log_requests,
            },
            user_agent=flags.user_agent,
        )
