"""
Command-line entry point.

    originpull rewrite page.html --site-host example.com
    originpull preview https://example.com/ --upload-base https://example.com/wp-content/uploads
    originpull audit rewritten.html
    originpull settings --cdn-host cdn.example.com --uploads off
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from .audit import audit_markup
from .config import ConfigurationError
from .logger import initialize_logging
from .page_fetcher import PageFetcher, PageFetchError
from .rewriter import RewriterFactory
from utils.settings_store import SettingsStore


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='originpull',
        description='Rewrite HTML asset URLs for an origin-pull CDN.',
    )
    parser.add_argument('--settings', default=None, help='Settings JSON file (default: ./.originpull.json)')
    parser.add_argument('--site-host', default=None, help="Site's own host or home URL (all-assets mode)")
    parser.add_argument('--upload-base', default=None, help='Upload storage base URL (uploads-only mode)')
    parser.add_argument('--log-dir', default='logs', help='Directory for log files')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    sub = parser.add_subparsers(dest='command')

    p_rewrite = sub.add_parser('rewrite', help='Rewrite an HTML file (use - for stdin)')
    p_rewrite.add_argument('path')
    p_rewrite.add_argument('-o', '--output', default=None, help='Write result here instead of stdout')

    p_preview = sub.add_parser('preview', help='Fetch an origin page and print it rewritten')
    p_preview.add_argument('url')

    p_audit = sub.add_parser('audit', help='Report which asset references use the CDN host')
    p_audit.add_argument('path')
    p_audit.add_argument('--cdn-host', default=None, help='CDN host to check against (default: configured host)')

    p_settings = sub.add_parser('settings', help='Show or change persisted settings')
    p_settings.add_argument('--cdn-host', default=None)
    p_settings.add_argument('--uploads', choices=['on', 'off'], default=None)
    p_settings.add_argument('--extensions', default=None, help='Comma-separated extension patterns')

    return parser


def _read_input(path: str) -> str:
    if path == '-':
        return sys.stdin.read()
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def _factory(args, store: SettingsStore, site_host: Optional[str] = None) -> RewriterFactory:
    site = args.site_host or site_host
    return RewriterFactory(
        store.load_configuration,
        resolve_site_host=(lambda: site) if site else None,
        resolve_upload_base=(lambda: args.upload_base) if args.upload_base else None,
    )


def cmd_rewrite(args, store: SettingsStore) -> int:
    html = _read_input(args.path)
    rewriter = _factory(args, store).build()
    if rewriter is None:
        result, count = html, 0
    else:
        result, count = rewriter.rewrite_with_count(html)
    logger.info(f"Rewrote {count} asset references in {args.path}")

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(result)
    else:
        sys.stdout.write(result)
    return 0


def cmd_preview(args, store: SettingsStore) -> int:
    fetcher = PageFetcher()
    try:
        page = fetcher.fetch(args.url)
    except PageFetchError as e:
        logger.error(str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        fetcher.close()

    rewriter = _factory(args, store, site_host=page['host']).build()
    if rewriter is None:
        print("CDN rewriting is not configured; showing the page unchanged", file=sys.stderr)
        sys.stdout.write(page['html'])
        return 0

    result, count = rewriter.rewrite_with_count(page['html'])
    print(f"{count} asset references rewritten", file=sys.stderr)
    sys.stdout.write(result)
    return 0


def cmd_audit(args, store: SettingsStore) -> int:
    cdn_host = args.cdn_host or store.load_configuration().cdn_host
    if not cdn_host:
        print("error: no CDN host configured; pass --cdn-host", file=sys.stderr)
        return 2

    report = audit_markup(_read_input(args.path), cdn_host)
    print(json.dumps(report.summary(), indent=2))
    for ref in report.off_cdn:
        print(f"  off-cdn  <{ref.tag} {ref.attr}> {ref.url}")
    return 0


def cmd_settings(args, store: SettingsStore) -> int:
    changes = {}
    if args.cdn_host is not None:
        changes['cdn_host'] = args.cdn_host
    if args.uploads is not None:
        changes['uploads'] = args.uploads
    if args.extensions is not None:
        changes['extensions'] = [e for e in args.extensions.split(',') if e.strip()]

    settings = store.update(**changes) if changes else store.load()
    print(json.dumps(settings, indent=2))
    return 0


COMMANDS = {
    'rewrite': cmd_rewrite,
    'preview': cmd_preview,
    'audit': cmd_audit,
    'settings': cmd_settings,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 2

    initialize_logging(args.log_dir, logging.DEBUG if args.verbose else logging.INFO)
    store = SettingsStore(args.settings)
    try:
        return COMMANDS[args.command](args, store)
    except ConfigurationError as e:
        logger.error(f"Invalid settings: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == '__main__':  # pragma: no cover
    raise SystemExit(main())
