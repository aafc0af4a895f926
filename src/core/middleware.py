"""
WSGI output interception.

CDNMiddleware wraps a WSGI application, captures text/html response bodies,
runs them through the active Rewriter and emits the result. Other responses
stream through untouched.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .logger import ErrorTracker
from .rewriter import Rewriter, RewriterFactory


def header_value(headers, name: str) -> Optional[str]:
    name = name.lower()
    for key, value in headers:
        if key.lower() == name:
            return value
    return None


def replace_header(headers, name: str, value: str) -> list:
    lower = name.lower()
    new_headers = [(k, v) for k, v in headers if k.lower() != lower]
    new_headers.append((name, value))
    return new_headers


def response_charset(content_type: str) -> str:
    for param in content_type.split(';')[1:]:
        key, _, value = param.strip().partition('=')
        if key.lower() == 'charset' and value:
            return value.strip('"\'')
    return 'utf-8'


def close_iterable(app_iter):
    if hasattr(app_iter, 'close'):
        app_iter.close()


class PrependedBody:
    """
    Response iterable that yields chunks already pulled from the application
    before the rest of its iterator. close() reaches the original iterable.
    """

    def __init__(self, head: List[bytes], rest, app_iter):
        self.head = head
        self.rest = rest
        self.app_iter = app_iter

    def __iter__(self):
        for chunk in self.head:
            yield chunk
        for chunk in self.rest:
            yield chunk

    def close(self):
        close_iterable(self.app_iter)


class CDNMiddleware:
    """
    Args:
        app: WSGI application producing the origin responses
        factory: RewriterFactory used at startup and on reload()
        error_tracker: Optional ErrorTracker for failed rewrite passes
    """

    def __init__(self, app: Callable, factory: RewriterFactory,
                 error_tracker: Optional[ErrorTracker] = None):
        self.app = app
        self.factory = factory
        self.logger = logging.getLogger(__name__)
        self.error_tracker = error_tracker or ErrorTracker(self.logger)
        self.rewriter: Optional[Rewriter] = factory.build()

    def reload(self) -> Optional[Rewriter]:
        """
        Rebuild the rewriter from the current configuration.

        The new instance replaces the old one in a single assignment;
        requests already holding the old rewriter finish with it.
        """
        self.rewriter = self.factory.build()
        return self.rewriter

    def __call__(self, environ, start_response):
        rewriter = self.rewriter
        if rewriter is None:
            return self.app(environ, start_response)

        started = []
        captured = []
        written: List[bytes] = []

        def capture_start_response(status, headers, exc_info=None):
            started.append(status)
            content_type = header_value(headers, 'content-type') or ''
            if not content_type.lower().startswith('text/html'):
                return start_response(status, headers, exc_info)
            captured[:] = [status, headers, exc_info]
            return written.append

        app_iter = self.app(environ, capture_start_response)
        body_iter = iter(app_iter)

        head: List[bytes] = []
        if not started:
            # Generator applications only call start_response on the first next()
            try:
                head.append(next(body_iter))
            except StopIteration:
                pass
            except Exception:
                close_iterable(app_iter)
                raise

        if not captured:
            if head:
                return PrependedBody(head, body_iter, app_iter)
            return app_iter

        try:
            written.extend(head)
            for chunk in body_iter:
                written.append(chunk)
        finally:
            close_iterable(app_iter)

        status, headers, exc_info = captured
        body = b''.join(written)
        body = self._rewrite_body(rewriter, body, headers, environ.get('PATH_INFO', ''))

        headers = replace_header(headers, 'Content-Length', str(len(body)))
        start_response(status, headers, exc_info)
        return [body]

    def _rewrite_body(self, rewriter: Rewriter, body: bytes, headers, path: str) -> bytes:
        charset = response_charset(header_value(headers, 'content-type') or '')
        try:
            text = body.decode(charset)
            rewritten, count = rewriter.rewrite_with_count(text)
            if not count:
                return body
            self.logger.debug(f"Rewrote {count} asset references for {path}")
            return rewritten.encode(charset)
        except Exception as e:
            self.error_tracker.log_error(e, context="rewrite pass", path=path)
            return body

