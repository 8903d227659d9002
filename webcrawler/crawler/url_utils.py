"""
URL normalization and filtering helpers.
"""

import logging
import re
from typing import Iterable, List, Optional, Pattern
from urllib.parse import urljoin, urlsplit

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {'http': 80, 'https': 443}


def normalize_url(raw: Optional[str]) -> Optional[str]:
    """
    Canonicalize an absolute http(s) URL.

    The scheme and host are lower-cased, the fragment and user info are
    dropped, default ports are elided and an empty path becomes ``/``.
    Returns None for anything that is not a valid http(s) URL.
    """
    if raw is None or not raw.strip():
        return None
    try:
        parts = urlsplit(raw.strip())
        port = parts.port
    except ValueError:
        return None

    scheme = parts.scheme.lower()
    if scheme not in DEFAULT_PORTS:
        return None

    host = parts.hostname
    if not host:
        return None
    if ':' in host:
        host = f"[{host}]"

    netloc = host
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{port}"

    path = parts.path or '/'
    url = f"{scheme}://{netloc}{path}"
    if parts.query.strip():
        url = f"{url}?{parts.query}"
    return url


def resolve_link(base_url: str, href: Optional[str]) -> Optional[str]:
    """Resolve an anchor target against its page and normalize it."""
    if href is None:
        return None
    href = href.strip()
    if not href:
        return None
    try:
        absolute = urljoin(base_url, href)
    except ValueError:
        return None
    return normalize_url(absolute)


def domain_of(url: Optional[str]) -> Optional[str]:
    """Host part of a URL, or None."""
    if not url:
        return None
    try:
        return urlsplit(url).hostname
    except ValueError:
        return None


def compile_patterns(raw_patterns: Optional[Iterable[str]]) -> List[Pattern]:
    """
    Compile regex patterns from configuration.

    Blank entries are skipped and invalid expressions are logged and ignored.
    """
    compiled = []
    for pattern in raw_patterns or []:
        if pattern is None or not pattern.strip():
            continue
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            logger.warning(f"Invalid regex pattern in crawler config: {pattern} ({e}), ignored")
    return compiled


def is_accepted(url: str, includes: List[Pattern], excludes: List[Pattern]) -> bool:
    """
    A URL is accepted when no exclude pattern matches and, if include patterns
    are configured, at least one of them matches. Excludes take precedence.
    """
    if any(p.search(url) for p in excludes):
        return False
    if not includes:
        return True
    return any(p.search(url) for p in includes)
