#!/usr/bin/env python3
"""
Command-line tests: settings, rewrite, audit and preview.
"""

import json
import sys
from pathlib import Path
from unittest import mock

import pytest

# Add the src directory to the path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from core import cli


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    for var in ('CDN_HOST', 'CDN_UPLOADS_ONLY', 'CDN_DISABLE', 'CDN_EXTENSIONS'):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


def run(workdir, *args):
    base = ['--settings', str(workdir / 'settings.json'), '--log-dir', str(workdir / 'logs')]
    return cli.main(base + list(args))


def test_settings_command_saves(workdir, capsys):
    assert run(workdir, 'settings', '--cdn-host', 'cdn.example.net', '--uploads', 'off') == 0
    out = json.loads(capsys.readouterr().out)
    assert out == {'cdn_host': 'cdn.example.net', 'uploads': 'off'}

    assert run(workdir, 'settings') == 0
    assert json.loads(capsys.readouterr().out)['cdn_host'] == 'cdn.example.net'


def test_rewrite_command_all_assets(workdir, capsys):
    run(workdir, 'settings', '--cdn-host', 'cdn.example.net', '--uploads', 'off')
    capsys.readouterr()

    page = workdir / 'page.html'
    page.write_text('<img src="https://example.com/a.png"><img src="/b.svg">', encoding='utf-8')

    assert run(workdir, '--site-host', 'example.com', 'rewrite', str(page)) == 0
    assert capsys.readouterr().out == '<img src="//cdn.example.net/a.png"><img src="/b.svg">'


def test_rewrite_command_uploads_only_to_file(workdir):
    run(workdir, 'settings', '--cdn-host', 'cdn.example.net', '--uploads', 'on')

    page = workdir / 'page.html'
    page.write_text('<img src="/wp-content/uploads/x.jpg"><img src="/theme/y.jpg">', encoding='utf-8')
    out = workdir / 'out.html'

    assert run(workdir, '--upload-base', 'http://example.com/wp-content/uploads',
               'rewrite', str(page), '-o', str(out)) == 0
    assert out.read_text(encoding='utf-8') == (
        '<img src="//cdn.example.net/wp-content/uploads/x.jpg"><img src="/theme/y.jpg">'
    )


def test_rewrite_without_configuration_is_unchanged(workdir, capsys):
    page = workdir / 'page.html'
    page.write_text('<img src="/a.png">', encoding='utf-8')

    assert run(workdir, '--site-host', 'example.com', 'rewrite', str(page)) == 0
    assert capsys.readouterr().out == '<img src="/a.png">'


def test_audit_command(workdir, capsys):
    page = workdir / 'page.html'
    page.write_text('<img src="//cdn.example.net/a.png"><script src="/b.js"></script>', encoding='utf-8')

    assert run(workdir, 'audit', str(page), '--cdn-host', 'cdn.example.net') == 0
    out = capsys.readouterr().out
    summary = json.loads(out[:out.index('}') + 1])
    assert summary['on_cdn'] == 1
    assert summary['off_cdn'] == 1
    assert '/b.js' in out


def test_preview_command_uses_page_host(workdir, capsys):
    run(workdir, 'settings', '--cdn-host', 'cdn.example.net', '--uploads', 'off')
    capsys.readouterr()

    page = {'html': '<link href="https://example.com/s.css">', 'url': 'https://example.com/',
            'host': 'example.com', 'content_type': 'text/html'}
    with mock.patch.object(cli.PageFetcher, 'fetch', return_value=page):
        assert run(workdir, 'preview', 'https://example.com/') == 0

    captured = capsys.readouterr()
    assert captured.out == '<link href="//cdn.example.net/s.css">'
    assert '1 asset references rewritten' in captured.err


def test_malformed_stored_extensions_are_reported(workdir, capsys):
    (workdir / 'settings.json').write_text(
        json.dumps({'cdn_host': 'cdn.example.net', 'extensions': 5}), encoding='utf-8')
    page = workdir / 'page.html'
    page.write_text('<img src="/a.png">', encoding='utf-8')

    assert run(workdir, 'audit', str(page)) == 2
    assert 'Extensions must be' in capsys.readouterr().err


def test_no_command_prints_help(workdir, capsys):
    assert cli.main([]) == 2
    assert 'originpull' in capsys.readouterr().out


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-q"]))
