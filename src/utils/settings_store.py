"""
Persisted CDN settings.

Settings live in a small JSON file with the keys `cdn_host`, `uploads`
("on"/"off") and an optional `extensions` list. The store only reads and
writes that file; turning settings into a Configuration is done by
core.config.
"""

import json
import os
import logging
from typing import Any, Dict, Mapping, Optional

from core.config import Configuration, apply_environment, coerce_extensions, configuration_from_settings
from core.logger import ErrorTracker
from utils.validators import validate_cdn_host


DEFAULT_SETTINGS_NAME = ".originpull.json"


class SettingsStore:
    def __init__(self, path: Optional[str] = None):
        self.path = path or os.path.join(os.path.abspath('.'), DEFAULT_SETTINGS_NAME)
        self.logger = logging.getLogger(__name__)
        self.error_tracker = ErrorTracker(self.logger)

    def validate(self, dirty: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Clean a settings mapping before it is saved.

        `cdn_host` defaults to an empty string; `uploads` becomes "on" when
        truthy or absent and "off" otherwise. A host with a scheme or path is
        cleared. `extensions` may be a list of strings or a comma-separated
        string.

        Raises:
            ConfigurationError: if `extensions` is any other value
        """
        clean: Dict[str, Any] = {}

        host = dirty.get('cdn_host') or ''
        if host:
            ok, host, err = validate_cdn_host(host)
            if not ok:
                self.error_tracker.log_warning(f"Rejected CDN host: {err}", context="settings", path=self.path)
                host = ''
        clean['cdn_host'] = host

        # An absent flag keeps the uploads-only default
        uploads = dirty.get('uploads', 'on')
        if isinstance(uploads, str):
            uploads = uploads.strip().lower() not in ('', 'off', 'false', '0', 'no')
        clean['uploads'] = 'on' if uploads else 'off'

        if dirty.get('extensions') is not None:
            clean['extensions'] = list(coerce_extensions(dirty['extensions']))

        return clean

    def load(self) -> Dict[str, Any]:
        """Return the raw settings mapping (empty when no file exists)."""
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            self.error_tracker.log_warning(f"Could not read settings: {e}", context="settings", path=self.path)
            return {}
        if not isinstance(data, dict):
            self.error_tracker.log_warning("Ignoring malformed settings file", context="settings", path=self.path)
            return {}
        return data

    def save(self, settings: Mapping[str, Any]) -> Dict[str, Any]:
        """Validate and write settings. Returns what was written."""
        clean = self.validate(settings)
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(clean, f, indent=2)
        self.logger.info(f"Settings saved to {self.path}")
        return clean

    def update(self, **changes: Any) -> Dict[str, Any]:
        """Merge changes into the stored settings and save them."""
        current = self.load()
        current.update({k: v for k, v in changes.items() if v is not None})
        return self.save(current)

    def load_configuration(self, environ: Optional[Mapping[str, str]] = None) -> Configuration:
        """
        Build the active Configuration: stored settings plus environment overrides.

        Raises:
            ConfigurationError: if the stored extension setting is malformed
        """
        config = configuration_from_settings(self.load())
        return apply_environment(config, environ)
