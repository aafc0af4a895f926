"""
Rewrite policy selection.

A RewritePolicy fixes, at configuration time, which references are eligible
(every same-origin asset, or only assets under the upload storage path) and
how a matched reference is turned into its CDN equivalent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from .config import Configuration, ConfigurationError, RewriteMode
from .pattern import AssetPattern, MatchedReference, OriginScope
from utils.validators import extract_host


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RewritePolicy:
    cdn_host: str
    mode: RewriteMode
    scope: OriginScope
    extensions: Tuple[str, ...]

    @classmethod
    def all_assets(cls, cdn_host: str, site_host: str, extensions: Sequence[str]) -> 'RewritePolicy':
        """Rewrite any asset under the site's own host, or relative to it."""
        return cls(
            cdn_host=cdn_host,
            mode=RewriteMode.ALL_ASSETS,
            scope=OriginScope.site(site_host),
            extensions=tuple(extensions),
        )

    @classmethod
    def uploads_only(cls, cdn_host: str, upload_base_url: str, extensions: Sequence[str]) -> 'RewritePolicy':
        """Rewrite only assets under the upload storage base URL."""
        return cls(
            cdn_host=cdn_host,
            mode=RewriteMode.UPLOADS_ONLY,
            scope=OriginScope.uploads(upload_base_url),
            extensions=tuple(extensions),
        )

    @classmethod
    def resolve(cls,
                config: Configuration,
                site_host: Optional[Callable[[], str]] = None,
                upload_base: Optional[Callable[[], str]] = None) -> 'RewritePolicy':
        """
        Build the policy for a configuration using the site's resolvers.

        Args:
            config: Active configuration
            site_host: Callable returning the site's own host (or home URL)
            upload_base: Callable returning the upload storage base URL

        Returns:
            RewritePolicy for config.mode

        Raises:
            ConfigurationError: if the configuration is inactive or the
                resolver required by its mode fails
        """
        if not config.is_active:
            raise ConfigurationError(config.inactive_reason())

        if config.mode is RewriteMode.UPLOADS_ONLY:
            base_url = _call_resolver(upload_base, 'upload base URL')
            policy = cls.uploads_only(config.cdn_host, base_url, config.extensions)
            if not policy.scope.base_path and not policy.scope.host:
                raise ConfigurationError(f"Upload base URL has no host or path: {base_url!r}")
        else:
            host = extract_host(_call_resolver(site_host, 'site host'))
            if not host:
                raise ConfigurationError("Site host could not be determined")
            policy = cls.all_assets(config.cdn_host, host, config.extensions)

        logger.debug(f"Resolved rewrite policy: {policy}")
        return policy

    def compile(self) -> AssetPattern:
        return AssetPattern(self.extensions, self.scope)

    def replacement(self, ref: MatchedReference) -> str:
        """Return the CDN-hosted attribute text for a matched reference."""
        return (
            f"={ref.quote}//{self.cdn_host}{self.scope.base_path}/"
            f"{ref.path}.{ref.extension}{ref.query or ''}{ref.quote}"
        )


def _call_resolver(resolver: Optional[Callable[[], str]], what: str) -> str:
    if resolver is None:
        raise ConfigurationError(f"No resolver for the {what}")
    try:
        value = resolver()
    except Exception as e:
        raise ConfigurationError(f"Could not resolve the {what}: {e}") from e
    if not value:
        raise ConfigurationError(f"Empty {what}")
    return value
