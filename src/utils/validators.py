"""
URL Validation Utilities

This module provides host validation and upload base URL normalization
for the OriginPull rewriter.
"""

import re
from urllib.parse import urlparse
from typing import Tuple, Optional
import logging


class URLValidator:
    """
    Validates CDN hosts and decomposes origin URLs into host and path.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)

        # Hostname with an optional port, no scheme
        self.domain_pattern = re.compile(
            r'^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*(:\d{1,5})?$'
        )

    def validate_cdn_host(self, host: str) -> Tuple[bool, str, str]:
        """
        Validate a CDN hostname as entered in settings.

        Args:
            host: The hostname to validate (no scheme, no path)

        Returns:
            Tuple of (is_valid, normalized_host, error_message)
        """
        if not host or not isinstance(host, str):
            return False, "", "CDN host cannot be empty"

        host = host.strip()

        if '://' in host or host.startswith('//'):
            return False, "", "CDN host must not include a scheme"

        if '/' in host:
            return False, "", "CDN host must not include a path"

        if not self.domain_pattern.match(host):
            return False, "", "Invalid CDN host format"

        return True, host, ""

    def normalize_base_url(self, url: str) -> str:
        """
        Normalize an upload base URL.

        Protocol-relative values are given an http scheme so that host and
        path can be extracted.

        Args:
            url: Upload base URL as resolved by the site

        Returns:
            Absolute URL string
        """
        url = url.strip()
        if url.startswith('//'):
            url = 'http://' + url.lstrip('/')
        return url

    def split_base_url(self, url: str) -> Tuple[Optional[str], str]:
        """
        Split an upload base URL into host and path.

        Args:
            url: Upload base URL, absolute or protocol-relative

        Returns:
            Tuple of (host, path). Host is None when the URL carries none;
            path never ends with a slash.
        """
        parsed = urlparse(self.normalize_base_url(url))
        host = parsed.netloc or None
        path = parsed.path.rstrip('/')
        return host, path

    def extract_host(self, url: str) -> Optional[str]:
        """
        Extract the host from a URL or a bare hostname.

        Args:
            url: The URL to extract the host from

        Returns:
            Host string, or None if extraction fails
        """
        if not url:
            return None

        url = url.strip()
        if '//' not in url:
            url = '//' + url

        try:
            parsed = urlparse(self.normalize_base_url(url))
            return parsed.netloc or None
        except ValueError as e:
            self.logger.error(f"Error parsing URL {url}: {e}")
            return None


# Global validator instance
_validator_instance: Optional[URLValidator] = None


def get_validator() -> URLValidator:
    """
    Get the global URL validator instance.

    Returns:
        URLValidator instance
    """
    global _validator_instance
    if _validator_instance is None:
        _validator_instance = URLValidator()
    return _validator_instance


def validate_cdn_host(host: str) -> Tuple[bool, str, str]:
    """
    Validate a CDN hostname.

    Returns (is_valid, normalized_host, error_message).
    """
    return get_validator().validate_cdn_host(host)


def split_base_url(url: str) -> Tuple[Optional[str], str]:
    """Return (host, path) for an upload base URL."""
    return get_validator().split_base_url(url)


def extract_host(url: str) -> Optional[str]:
    """Return the host part of a URL or bare hostname."""
    return get_validator().extract_host(url)
