"""
Asset reference audit.

Parses markup with BeautifulSoup to list the asset references a page loads
(images, stylesheets, icons, scripts) and reports which of them are served
from the CDN host. Used to check a rewritten page; the rewriter itself never
parses HTML.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from bs4 import BeautifulSoup

from utils.validators import extract_host


ASSET_LINK_RELS = ('stylesheet', 'icon', 'shortcut', 'apple-touch-icon', 'preload')


@dataclass
class AssetReference:
    url: str
    tag: str
    attr: str
    on_cdn: bool = False


@dataclass
class AuditReport:
    cdn_host: str
    references: List[AssetReference] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.references)

    @property
    def on_cdn(self) -> List[AssetReference]:
        return [r for r in self.references if r.on_cdn]

    @property
    def off_cdn(self) -> List[AssetReference]:
        return [r for r in self.references if not r.on_cdn]

    def summary(self) -> dict:
        return {
            'cdn_host': self.cdn_host,
            'total': self.total,
            'on_cdn': len(self.on_cdn),
            'off_cdn': len(self.off_cdn),
        }


class AssetAuditor:
    def __init__(self, cdn_host: str):
        self.cdn_host = cdn_host
        self.logger = logging.getLogger(__name__)

    def audit(self, html: str) -> AuditReport:
        soup = BeautifulSoup(html, 'lxml')
        report = AuditReport(cdn_host=self.cdn_host)

        for img in soup.find_all('img'):
            self._add(report, img.get('src'), 'img', 'src')
            for candidate in self._parse_srcset(img.get('srcset')):
                self._add(report, candidate, 'img', 'srcset')

        for source in soup.find_all('source'):
            for candidate in self._parse_srcset(source.get('srcset')):
                self._add(report, candidate, 'source', 'srcset')

        for link in soup.find_all('link', rel=self._is_asset_rel):
            self._add(report, link.get('href'), 'link', 'href')

        for script in soup.find_all('script', src=True):
            self._add(report, script.get('src'), 'script', 'src')

        self.logger.debug(f"Audit: {report.summary()}")
        return report

    def _add(self, report: AuditReport, url: Optional[str], tag: str, attr: str):
        if not url or url.startswith('data:'):
            return
        report.references.append(
            AssetReference(url=url, tag=tag, attr=attr, on_cdn=self._is_cdn(url))
        )

    def _is_cdn(self, url: str) -> bool:
        if not url.startswith(('//', 'http://', 'https://')):
            return False
        return extract_host(url) == self.cdn_host

    @staticmethod
    def _is_asset_rel(rel) -> bool:
        if not rel:
            return False
        values = rel if isinstance(rel, list) else str(rel).split()
        return any(v.lower() in ASSET_LINK_RELS for v in values)

    @staticmethod
    def _parse_srcset(srcset: Optional[str]) -> List[str]:
        # srcset entries are comma-separated; each entry has URL + descriptor
        if not srcset:
            return []
        candidates = []
        for part in srcset.split(','):
            item = part.strip()
            if item:
                candidates.append(item.split()[0])
        return candidates


def audit_markup(html: str, cdn_host: str) -> AuditReport:
    """Audit asset references in markup against a CDN host."""
    return AssetAuditor(cdn_host).audit(html)
