# -*- coding: utf-8 -*-
"""
    reroute
    ~~~~~~~
    Layered single-upstream reverse proxy: interceptors, handlers,
    local overrides and a streaming pass-through.

    :copyright: (c) 2013-present by Abhinav Singh and contributors.
    :license: BSD, see LICENSE for more details.
"""
import os
import logging
import mimetypes
from abc import ABC, abstractmethod
from urllib.parse import unquote
from typing import TYPE_CHECKING, Optional

from ..codes import httpStatusCodes
from ..methods import httpMethods
from ...common.flag import flags
from ...common.utils import bytes_
from ...common.constants import DEFAULT_LOCAL_DIR


if TYPE_CHECKING:   # pragma: no cover
    from ..request import ProxyRequest
    from ..response import ProxyResponse
    from ...config import ProxyConfig


flags.add_argument(
    '--local-dir',
    type=str,
    default=DEFAULT_LOCAL_DIR,
    help='Default: local.  Directory of local overrides.  Files found under '
    'this directory joined with --base-path are served instead of being '
    'proxied upstream.',
)

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = 'application/octet-stream'


class LocalResolver(ABC):
    """Local override stage.

    ``attempt`` must not write anything unless it returns True, and when it
    returns True the response must have been written and ended."""

    @abstractmethod
    def attempt(
            self,
            request: 'ProxyRequest',
            response: 'ProxyResponse',
            config: 'ProxyConfig',
    ) -> bool:
        raise NotImplementedError()     # pragma: no cover


class NullResolver(LocalResolver):
    """Never handles anything."""

    def attempt(
            self,
            request: 'ProxyRequest',
            response: 'ProxyResponse',
            config: 'ProxyConfig',
    ) -> bool:
        return False


class StaticFileResolver(LocalResolver):
    """Serves regular files found under ``directory`` joined with the base path.

    Only GET and HEAD are served, the query string is ignored and paths
    escaping the root are never served."""

    def __init__(self, directory: str = DEFAULT_LOCAL_DIR) -> None:
        self.directory = directory

    def root(self, config: 'ProxyConfig') -> str:
        return os.path.realpath(
            os.path.join(self.directory, config.path.lstrip('/')),
        )

    def resolve(self, path: str, config: 'ProxyConfig') -> Optional[str]:
        """Returns the file serving ``path`` or None."""
        root = self.root(config)
        path = unquote(path.split('?', 1)[0].split('#', 1)[0])
        candidate = os.path.realpath(os.path.join(root, path.lstrip('/')))
        if candidate != root and not candidate.startswith(root + os.sep):
            logger.debug('Refusing path %s outside of %s' % (path, root))
            return None
        if not os.path.isfile(candidate):
            return None
        return candidate

    def attempt(
            self,
            request: 'ProxyRequest',
            response: 'ProxyResponse',
            config: 'ProxyConfig',
    ) -> bool:
        if bytes_(request.method) not in (httpMethods.GET, httpMethods.HEAD):
            return False
        path = self.resolve(request.path, config)
        if path is None:
            return False
        try:
            with open(path, 'rb') as f:
                content = f.read()
        except OSError as e:
            logger.debug('Unable to read %s: %s' % (path, e))
            return False
        content_type = mimetypes.guess_type(path)[0] or DEFAULT_CONTENT_TYPE
        response.write_head(
            httpStatusCodes.OK,
            {
                b'Content-Type': bytes_(content_type),
                b'Content-Length': bytes_(len(content)),
            },
        )
        response.end(content)
        logger.debug('Served %s from %s' % (request.path, path))
        return True
