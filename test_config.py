#!/usr/bin/env python3
"""
Configuration, settings store and URL validation tests.
"""

import json
import sys
from pathlib import Path

import pytest

# Add the src directory to the path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from core.config import (
    Configuration, ConfigurationError, RewriteMode, DEFAULT_EXTENSIONS,
    apply_environment, configuration_from_settings,
)
from utils.settings_store import SettingsStore
from utils.validators import validate_cdn_host, split_base_url, extract_host


def test_default_configuration_is_inactive():
    config = Configuration()
    assert not config.is_active
    assert config.mode is RewriteMode.UPLOADS_ONLY
    assert config.extensions == DEFAULT_EXTENSIONS


def test_configuration_is_immutable():
    config = Configuration(cdn_host='cdn.example.net', extensions=['png'])
    assert config.extensions == ('png',)
    with pytest.raises(AttributeError):
        config.cdn_host = 'other'


def test_uploads_setting_maps_to_mode():
    assert RewriteMode.from_setting(None) is RewriteMode.UPLOADS_ONLY
    assert RewriteMode.from_setting('on') is RewriteMode.UPLOADS_ONLY
    assert RewriteMode.from_setting('off') is RewriteMode.ALL_ASSETS


def test_configuration_from_settings():
    config = configuration_from_settings({'cdn_host': ' cdn.example.net ', 'uploads': 'off'})
    assert config.cdn_host == 'cdn.example.net'
    assert config.mode is RewriteMode.ALL_ASSETS
    assert config.is_active


def test_empty_extension_list_in_settings_disables():
    config = configuration_from_settings({'cdn_host': 'cdn.example.net', 'extensions': []})
    assert not config.is_active
    assert config.inactive_reason() == "no file extensions configured"


def test_environment_overrides():
    base = Configuration(cdn_host='cdn.example.net', mode=RewriteMode.UPLOADS_ONLY)
    env = {
        'CDN_HOST': 'edge.example.org',
        'CDN_UPLOADS_ONLY': 'false',
        'CDN_EXTENSIONS': 'png, webp',
    }
    config = apply_environment(base, env)
    assert config.cdn_host == 'edge.example.org'
    assert config.mode is RewriteMode.ALL_ASSETS
    assert config.extensions == ('png', 'webp')


def test_environment_kill_switch():
    base = Configuration(cdn_host='cdn.example.net')
    config = apply_environment(base, {'CDN_DISABLE': '1'})
    assert config.disabled
    assert not config.is_active


def test_no_environment_returns_same_configuration():
    base = Configuration(cdn_host='cdn.example.net')
    assert apply_environment(base, {}) is base


def test_settings_validate(tmp_path):
    store = SettingsStore(str(tmp_path / 'settings.json'))
    clean = store.validate({'cdn_host': 'cdn.example.net', 'uploads': ''})
    assert clean == {'cdn_host': 'cdn.example.net', 'uploads': 'off'}

    clean = store.validate({'uploads': True})
    assert clean == {'cdn_host': '', 'uploads': 'on'}

    # An absent flag keeps uploads-only mode
    assert store.validate({'cdn_host': 'cdn.example.net'})['uploads'] == 'on'


def test_settings_validate_rejects_host_with_scheme(tmp_path):
    store = SettingsStore(str(tmp_path / 'settings.json'))
    clean = store.validate({'cdn_host': 'https://cdn.example.net'})
    assert clean['cdn_host'] == ''
    assert len(store.error_tracker.warnings) == 1
    assert store.error_tracker.warnings[0]['message'].startswith('Rejected CDN host')


def test_settings_validate_extensions(tmp_path):
    store = SettingsStore(str(tmp_path / 'settings.json'))
    assert store.validate({'extensions': 'png'})['extensions'] == ['png']
    assert store.validate({'extensions': 'png, webp'})['extensions'] == ['png', 'webp']
    assert store.validate({'extensions': [' gif ', '']})['extensions'] == ['gif']
    with pytest.raises(ConfigurationError):
        store.validate({'extensions': 5})
    with pytest.raises(ConfigurationError):
        store.validate({'extensions': ['png', 5]})


def test_configuration_from_settings_extension_forms():
    config = configuration_from_settings({'cdn_host': 'cdn.example.net', 'extensions': 'png'})
    assert config.extensions == ('png',)

    config = configuration_from_settings({'cdn_host': 'cdn.example.net', 'extensions': 'png,webp'})
    assert config.extensions == ('png', 'webp')

    with pytest.raises(ConfigurationError):
        configuration_from_settings({'cdn_host': 'cdn.example.net', 'extensions': 5})
    with pytest.raises(ConfigurationError):
        configuration_from_settings({'cdn_host': 'cdn.example.net', 'extensions': {'png': True}})


def test_settings_store_round_trip(tmp_path):
    store = SettingsStore(str(tmp_path / 'settings.json'))
    assert store.load() == {}

    store.update(cdn_host='cdn.example.net', uploads='off')
    with open(store.path, encoding='utf-8') as f:
        assert json.load(f) == {'cdn_host': 'cdn.example.net', 'uploads': 'off'}

    config = store.load_configuration(environ={})
    assert config.cdn_host == 'cdn.example.net'
    assert config.mode is RewriteMode.ALL_ASSETS


def test_settings_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / 'settings.json'
    path.write_text('{not json', encoding='utf-8')
    store = SettingsStore(str(path))
    assert store.load() == {}
    assert not store.load_configuration(environ={}).is_active


@pytest.mark.parametrize('host,valid', [
    ('cdn.example.net', True),
    ('d111111abcdef8.cloudfront.net', True),
    ('cdn.example.net:8080', True),
    ('http://cdn.example.net', False),
    ('//cdn.example.net', False),
    ('cdn.example.net/path', False),
    ('bad..host', False),
    ('', False),
])
def test_validate_cdn_host(host, valid):
    ok, normalized, error = validate_cdn_host(host)
    assert ok is valid
    assert bool(error) is not valid


def test_split_base_url():
    assert split_base_url('http://example.com/wp-content/uploads') == ('example.com', '/wp-content/uploads')
    assert split_base_url('//example.com/wp-content/uploads/') == ('example.com', '/wp-content/uploads')
    assert split_base_url('https://static.example.com') == ('static.example.com', '')


def test_extract_host():
    assert extract_host('https://example.com/blog/') == 'example.com'
    assert extract_host('example.com') == 'example.com'
    assert extract_host('') is None


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-q"]))
