"""
CDN URL Rewriter

Applies a compiled asset pattern to a complete response body in a single
left-to-right pass, replacing every qualifying reference with its CDN-hosted
equivalent. Everything else passes through unchanged.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

from .config import Configuration, ConfigurationError
from .policy import RewritePolicy


class Rewriter:
    """
    Immutable, reusable rewriter for one policy.

    The pattern is compiled in the constructor so that a malformed
    configuration fails when the rewriter is built, never per request.
    """

    def __init__(self, policy: RewritePolicy):
        self.logger = logging.getLogger(__name__)
        self.policy = policy
        self.pattern = policy.compile()

    def rewrite(self, body: str) -> str:
        """
        Rewrite asset references in an HTML body.

        Args:
            body: Complete response body

        Returns:
            Body with qualifying references pointing at the CDN host
        """
        rewritten, _ = self.rewrite_with_count(body)
        return rewritten

    def rewrite_with_count(self, body: str) -> Tuple[str, int]:
        """
        Rewrite an HTML body and report how many references were replaced.

        Returns:
            Tuple of (rewritten_body, replacement_count)
        """
        if not body:
            return body, 0

        parts = []
        last = 0
        count = 0
        for ref in self.pattern.iter_references(body):
            parts.append(body[last:ref.start])
            parts.append(self.policy.replacement(ref))
            last = ref.end
            count += 1

        if not count:
            return body, 0

        parts.append(body[last:])
        return ''.join(parts), count

    def __repr__(self) -> str:
        return f"Rewriter(cdn_host={self.policy.cdn_host!r}, mode={self.policy.mode.value!r})"


def rewrite(body: str, policy: RewritePolicy) -> str:
    """Rewrite a body with a policy. Builds a throwaway Rewriter."""
    return Rewriter(policy).rewrite(body)


class RewriterFactory:
    """
    Produces Rewriter instances from the site's configuration source.

    Args:
        get_configuration: Callable returning the current Configuration
        resolve_site_host: Callable returning the site's own host or home URL
        resolve_upload_base: Callable returning the upload storage base URL
    """

    def __init__(self,
                 get_configuration: Callable[[], Configuration],
                 resolve_site_host: Optional[Callable[[], str]] = None,
                 resolve_upload_base: Optional[Callable[[], str]] = None):
        self.get_configuration = get_configuration
        self.resolve_site_host = resolve_site_host
        self.resolve_upload_base = resolve_upload_base
        self.logger = logging.getLogger(__name__)

    def create(self) -> Rewriter:
        """
        Build a rewriter for the current configuration.

        Raises:
            ConfigurationError: if rewriting cannot be activated
        """
        config = self.get_configuration()
        policy = RewritePolicy.resolve(
            config,
            site_host=self.resolve_site_host,
            upload_base=self.resolve_upload_base,
        )
        rewriter = Rewriter(policy)
        self.logger.info(f"CDN rewriting active: {rewriter!r}")
        return rewriter

    def build(self) -> Optional[Rewriter]:
        """
        Build a rewriter, or return None when rewriting is disabled.

        An unconfigured CDN is the expected default, so configuration errors
        are logged and turned into "no rewriting".
        """
        try:
            return self.create()
        except ConfigurationError as e:
            self.logger.info(f"CDN rewriting disabled: {e}")
            return None


def build_rewriter(config: Configuration,
                   site_host: Optional[str] = None,
                   upload_base: Optional[str] = None) -> Optional[Rewriter]:
    """
    Convenience wrapper for static values.

    Returns:
        Rewriter, or None when the configuration does not activate rewriting
    """
    factory = RewriterFactory(
        lambda: config,
        resolve_site_host=(lambda: site_host) if site_host is not None else None,
        resolve_upload_base=(lambda: upload_base) if upload_base is not None else None,
    )
    return factory.build()
