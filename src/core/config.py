"""
Rewriter configuration.

A Configuration is loaded once (from the settings store and the process
environment) and treated as immutable for the lifetime of the rewriter that
is built from it.
"""

from __future__ import annotations

import os
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping, Optional, Sequence, Tuple


DEFAULT_EXTENSIONS: Tuple[str, ...] = ('jpe?g', 'gif', 'png', 'css', 'bmp', 'js', 'ico')

TRUTHY = ('1', 'true', 'yes', 'on')

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when a configuration cannot produce a working rewriter."""


class RewriteMode(Enum):
    ALL_ASSETS = 'all'
    UPLOADS_ONLY = 'uploads'

    @classmethod
    def from_setting(cls, value: Optional[str]) -> 'RewriteMode':
        """Map the persisted `uploads` flag ("on"/"off") to a mode. Missing means on."""
        if value is None:
            return cls.UPLOADS_ONLY
        return cls.UPLOADS_ONLY if str(value).strip().lower() == 'on' else cls.ALL_ASSETS


@dataclass(frozen=True)
class Configuration:
    cdn_host: str = ''
    mode: RewriteMode = RewriteMode.UPLOADS_ONLY
    extensions: Tuple[str, ...] = field(default=DEFAULT_EXTENSIONS)
    disabled: bool = False

    def __post_init__(self):
        # Accept any sequence but store an immutable tuple
        object.__setattr__(self, 'extensions', tuple(self.extensions))

    @property
    def is_active(self) -> bool:
        return bool(self.cdn_host) and bool(self.extensions) and not self.disabled

    def inactive_reason(self) -> Optional[str]:
        if self.disabled:
            return "CDN rewriting disabled"
        if not self.cdn_host:
            return "no CDN host configured"
        if not self.extensions:
            return "no file extensions configured"
        return None


def _split_extensions(raw: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(',') if part.strip())


def coerce_extensions(value: object) -> Tuple[str, ...]:
    """
    Normalize an extension setting to a tuple of patterns.

    A string is split on commas; a list or tuple must hold only strings.

    Raises:
        ConfigurationError: for any other value
    """
    if isinstance(value, str):
        return _split_extensions(value)
    if isinstance(value, (list, tuple)) and all(isinstance(e, str) for e in value):
        return tuple(e.strip() for e in value if e.strip())
    raise ConfigurationError(
        f"Extensions must be a list of strings or a comma-separated string, got {value!r}"
    )


def apply_environment(config: Configuration, environ: Optional[Mapping[str, str]] = None) -> Configuration:
    """
    Apply environment overrides on top of a configuration.

    Recognized variables: CDN_HOST, CDN_UPLOADS_ONLY, CDN_DISABLE and
    CDN_EXTENSIONS (comma-separated).

    Args:
        config: Configuration loaded from persisted settings
        environ: Mapping to read from (default: os.environ)

    Returns:
        New Configuration with overrides applied
    """
    env = os.environ if environ is None else environ
    changes = {}

    if env.get('CDN_HOST'):
        changes['cdn_host'] = env['CDN_HOST'].strip()
    if 'CDN_UPLOADS_ONLY' in env:
        uploads = env['CDN_UPLOADS_ONLY'].strip().lower() in TRUTHY
        changes['mode'] = RewriteMode.UPLOADS_ONLY if uploads else RewriteMode.ALL_ASSETS
    if 'CDN_DISABLE' in env:
        changes['disabled'] = env['CDN_DISABLE'].strip().lower() in TRUTHY
    if 'CDN_EXTENSIONS' in env:
        changes['extensions'] = _split_extensions(env['CDN_EXTENSIONS'])

    if changes:
        logger.debug(f"Environment overrides applied: {sorted(changes)}")
        return replace(config, **changes)
    return config


def configuration_from_settings(settings: Mapping[str, object],
                                extensions: Optional[Sequence[str]] = None) -> Configuration:
    """
    Build a Configuration from a persisted settings mapping.

    Args:
        settings: Mapping with `cdn_host`, `uploads` and optional `extensions`
        extensions: Explicit extension list overriding the settings value

    Returns:
        Configuration (not yet checked for activity)

    Raises:
        ConfigurationError: if the extension setting is malformed
    """
    exts = extensions
    if exts is None:
        exts = settings.get('extensions')
    if exts is None:
        exts = DEFAULT_EXTENSIONS
    return Configuration(
        cdn_host=str(settings.get('cdn_host') or '').strip(),
        mode=RewriteMode.from_setting(settings.get('uploads')),
        extensions=coerce_extensions(exts),
    )
