"""
Pattern-based HTML metadata extraction.

Everything here is a pure function over accumulated text. No DOM is built:
the input is often a truncated <head> section, and regular expressions
cope with partial and malformed markup where a parser would not help.
"""
import re
from typing import Iterable, List, Optional, Pattern, Union
from urllib.parse import urljoin

from ogcard.constants import BODY_START_MARKER, HEAD_END_MARKER

HTML_ENTITIES = {
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#x27;": "'",
    "&#39;": "'",
    "&apos;": "'",
    "&nbsp;": " ",
    "&copy;": "©",
    "&reg;": "®",
    "&trade;": "™",
    "&hellip;": "…",
    "&mdash;": "—",
    "&ndash;": "–",
    "&lsquo;": "'",
    "&rsquo;": "'",
    "&ldquo;": '"',
    "&rdquo;": '"',
}

_ENTITY_RE = re.compile(r"&(?:#x?)?[a-zA-Z0-9]+;")
_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_IMG_TAG_RE = re.compile(r"<img[^>]+>", re.IGNORECASE)
_IMG_SRC_RE = re.compile(r"""<img[^>]+src=["']([^"']+)["'][^>]*>""", re.IGNORECASE)
_BENGALI_RE = re.compile(r"[\u0980-\u09FF]")
_LATIN_RE = re.compile("[A-Za-z]")

FAVICON_PATTERNS = [
    re.compile(r"""<link[^>]+rel=["']icon["'][^>]+href=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r"""<link[^>]+rel=["']shortcut icon["'][^>]+href=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r"""<link[^>]+rel=["']apple-touch-icon["'][^>]+href=["']([^"']+)["']""", re.IGNORECASE),
]


def _decode_numeric(entity: str) -> Optional[str]:
    if entity.startswith("&#x"):
        digits, base = entity[3:-1], 16
    elif entity.startswith("&#"):
        digits, base = entity[2:-1], 10
    else:
        return None
    try:
        code = int(digits, base)
        if code > 0:
            return chr(code)
    except (ValueError, OverflowError):
        pass
    return None


def decode_html_entities(text: str) -> str:
    """
    Replace known named entities and numeric entities with characters.

    Unknown names and invalid numbers are left as they are.
    """
    def replace(match):
        entity = match.group(0)
        if entity in HTML_ENTITIES:
            return HTML_ENTITIES[entity]
        decoded = _decode_numeric(entity)
        return decoded if decoded is not None else entity

    return _ENTITY_RE.sub(replace, text)


def detect_language(text: str) -> str:
    """Classify text as 'bn' (Bengali), 'en' (Latin) or 'unknown'."""
    if not text:
        return "unknown"

    has_bangla = bool(_BENGALI_RE.search(text))
    has_english = bool(_LATIN_RE.search(text))

    if has_bangla and not has_english:
        return "bn"
    if has_english and not has_bangla:
        return "en"
    return "unknown"


def extract_title(html: str) -> Optional[str]:
    """Return the decoded text of the first <title> element."""
    match = _TITLE_RE.search(html)
    return decode_html_entities(match.group(1).strip()) if match else None


def extract_meta_content(html: str, property_name: str, is_property: bool = False) -> Optional[str]:
    """
    Return the content attribute of a matching <meta> tag.

    Args:
        html: HTML text to search
        property_name: Value of the property/name attribute, e.g. 'og:title'
        is_property: Match on 'property' (Open Graph) instead of 'name'

    Returns:
        Decoded, trimmed content, or None if no tag matches
    """
    attribute = "property" if is_property else "name"
    pattern = re.compile(
        rf"""<meta[^>]+{attribute}=["']{re.escape(property_name)}["'][^>]+content=["']([^"']+)["']""",
        re.IGNORECASE,
    )
    match = pattern.search(html)
    return decode_html_entities(match.group(1).strip()) if match else None


def extract_favicon(html: str) -> Optional[str]:
    """Return the href of the first icon, shortcut icon or apple-touch-icon link."""
    for pattern in FAVICON_PATTERNS:
        match = pattern.search(html)
        if match:
            return match.group(1).strip()
    return None


def _matches_any(src: str, patterns: Iterable[Union[str, Pattern]]) -> bool:
    return any(re.search(pattern, src) for pattern in patterns)


def extract_body_images(
    body_html: str,
    base_url: str,
    max_images: int,
    ignored_patterns: Iterable[Union[str, Pattern]] = (),
) -> List[str]:
    """
    Collect absolute image URLs from <img src> tags in document order.

    Sources matching an ignored pattern or failing to resolve are skipped,
    duplicates are dropped, and at most max_images URLs are returned.
    """
    ignored_patterns = list(ignored_patterns)
    images: List[str] = []

    for match in _IMG_SRC_RE.finditer(body_html):
        if len(images) >= max_images:
            break

        src = match.group(1).strip()
        if _matches_any(src, ignored_patterns):
            continue

        try:
            resolved = urljoin(base_url, src)
        except ValueError:
            continue

        if resolved not in images:
            images.append(resolved)

    return images


def count_image_tags(html: str) -> int:
    """Count <img ...> tags in html."""
    return len(_IMG_TAG_RE.findall(html))


def find_head_end_index(html: str) -> int:
    """Index just past </head>, or -1."""
    pos = html.find(HEAD_END_MARKER)
    return pos + len(HEAD_END_MARKER) if pos != -1 else -1


def find_body_start_index(html: str) -> int:
    """Index of the <body tag, or -1."""
    return html.find(BODY_START_MARKER)
