"""
OriginPull: Origin-Pull CDN URL Rewriter

Rewrites asset references (images, stylesheets, scripts, icons) in outbound
HTML so they are served from a content-delivery host that pulls from the
origin on cache miss.
"""

__version__ = "1.0"
__author__ = "OriginPull Project"
__description__ = "Origin-Pull CDN URL Rewriter"
