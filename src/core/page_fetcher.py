"""
Origin Page Fetching Module

Downloads a page from the origin site so its markup can be previewed
through the rewriter before the CDN is switched on.
"""

import requests
import time
from typing import Optional, Dict, Any
import logging
from urllib.parse import urlparse


class PageFetchError(Exception):
    """Raised when an origin page cannot be retrieved."""


class PageFetcher:
    """
    Retrieves origin HTML with retries and exponential backoff.
    """

    def __init__(self, retry_delay: float = 1.0, max_retries: int = 2, timeout: float = 30):
        """
        Args:
            retry_delay: Base delay in seconds before a retry
            max_retries: Maximum number of retry attempts for failed requests
            timeout: Per-request timeout in seconds
        """
        self.retry_delay = retry_delay
        self.max_retries = max_retries
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'OriginPull/1.0 (CDN rewrite preview)',
            'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
        })

    def fetch(self, url: str) -> Dict[str, Any]:
        """
        Retrieve HTML content from the origin.

        Args:
            url: Absolute http(s) URL of the page

        Returns:
            Dictionary containing:
            - 'html': The page markup
            - 'url': The final URL after redirects
            - 'host': Host of the requested URL
            - 'content_type': Response content type

        Raises:
            PageFetchError: if the URL is invalid or all attempts fail
        """
        parsed = urlparse(url)
        if parsed.scheme not in ('http', 'https') or not parsed.netloc:
            raise PageFetchError(f"Not an http(s) URL: {url}")

        self.logger.info(f"Fetching origin page: {url}")
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                delay = self.retry_delay * (2 ** attempt)  # Exponential backoff
                self.logger.info(f"Retry {attempt} after {delay:.1f}s delay")
                time.sleep(delay)

            try:
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()

                content_type = response.headers.get('content-type', '').lower()
                if 'text/html' not in content_type:
                    self.logger.warning(f"Non-HTML content type for {url}: {content_type}")

                html = response.text
                self.logger.info(f"Fetched {len(html)} characters from {url}")
                return {
                    'html': html,
                    'url': response.url or url,
                    'host': parsed.netloc,
                    'content_type': content_type,
                }

            except requests.exceptions.Timeout as e:
                self.logger.warning(f"Timeout fetching {url} (attempt {attempt + 1})")
                last_error = e

            except requests.exceptions.HTTPError as e:
                status_code = e.response.status_code if e.response is not None else None
                self.logger.warning(f"HTTP error {status_code} for {url} (attempt {attempt + 1})")
                last_error = e

                # Don't retry on permanent errors
                if status_code in (403, 404, 410):
                    raise PageFetchError(f"HTTP {status_code} for {url}") from e

            except requests.exceptions.RequestException as e:
                self.logger.warning(f"Request error for {url} (attempt {attempt + 1}): {e}")
                last_error = e

        raise PageFetchError(
            f"Failed to fetch {url} after {self.max_retries + 1} attempts: {last_error}"
        ) from last_error

    def close(self):
        """Close the HTTP session."""
        self.session.close()
