"""
URL validation and sanitization.

Two sanitize/validate flavours exist: the strict one raises
ValidationError (used at the API boundary), the lenient one returns a
UrlCheck so a form can show the problem without exception handling.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from ogcard.constants import ALLOWED_PROTOCOLS, BLOCKED_DOMAINS
from ogcard.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class UrlCheck:
    """Result of a non-throwing URL validation."""

    is_valid: bool
    sanitized: str
    error: Optional[str] = None


def _hostname(url: str) -> Optional[str]:
    parsed = urlparse(url)
    # raises ValueError on a malformed port
    _ = parsed.port
    return parsed.hostname


def is_valid_url(url: str) -> bool:
    """Return True if url parses with an http or https scheme and a host."""
    if not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url)
        hostname = _hostname(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https"):
        return False
    if not hostname or any(ch.isspace() for ch in parsed.netloc):
        return False
    return True


def _add_scheme(trimmed: str) -> str:
    if not trimmed.startswith("http://") and not trimmed.startswith("https://"):
        return f"https://{trimmed}"
    return trimmed


def sanitize_url(url: str) -> str:
    """
    Trim a URL and add https:// when no scheme is present.

    Raises:
        ValidationError: If the URL is empty
    """
    trimmed = (url or "").strip()
    if not trimmed:
        raise ValidationError("URL cannot be empty")
    return _add_scheme(trimmed)


def sanitize_url_lenient(url: str) -> str:
    """Like sanitize_url, but returns an empty string for empty input."""
    trimmed = (url or "").strip()
    if not trimmed:
        return ""
    return _add_scheme(trimmed)


def validate_and_sanitize_url(url: str) -> str:
    """
    Sanitize a URL and check that the result is a valid http(s) URL.

    Raises:
        ValidationError: If the URL is empty or malformed
    """
    sanitized = sanitize_url(url)
    if not is_valid_url(sanitized):
        raise ValidationError("Invalid URL format")
    return sanitized


def check_url(url: str) -> UrlCheck:
    """Validate and sanitize without raising, for form-style callers."""
    if not (url or "").strip():
        return UrlCheck(is_valid=False, sanitized="", error="URL cannot be empty")

    sanitized = sanitize_url_lenient(url)
    if not is_valid_url(sanitized):
        return UrlCheck(is_valid=False, sanitized=sanitized, error="Invalid URL format")

    return UrlCheck(is_valid=True, sanitized=sanitized)


def is_scrapable_url(url: str) -> bool:
    """
    Check the protocol allow-list and the blocked-domain list.

    Blocked domains are matched as substrings or prefixes of the hostname,
    not as IP ranges, so e.g. 172.17.0.1 is not blocked.
    """
    try:
        parsed = urlparse(url)
        hostname = _hostname(url)
    except (ValueError, TypeError, AttributeError):
        return False

    if f"{parsed.scheme}:" not in ALLOWED_PROTOCOLS:
        return False

    if not hostname:
        return False

    for domain in BLOCKED_DOMAINS:
        if domain in hostname or hostname.startswith(domain):
            logger.debug(f"Blocked hostname {hostname} (matches {domain})")
            return False

    return True
