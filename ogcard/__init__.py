"""
ogcard - link previews and social cards

Fetches only the <head> of a page (and optionally a sample of body images),
extracts Open Graph and fallback metadata with pattern matching, and
renders the result as an editable, exportable social card.

Example Usage:
    >>> from ogcard import get_preview_data, SocialCard
    >>> metadata = get_preview_data("example.com")
    >>> with SocialCard.from_metadata(metadata) as card:
    ...     card.export_png("card.png")
"""

__version__ = "0.3.0"
__author__ = "ogcard Contributors"

# Preview pipeline
from ogcard.service import LinkPreviewService, get_preview_data
from ogcard.scraper import (
    StreamingFetcher,
    fetch_body_images,
    fetch_head_content,
    normalize_metadata,
    parse_metadata,
)

# Models
from ogcard.models import MetaData, ScrapedData, ScrapingOptions

# Errors
from ogcard.errors import (
    NetworkError,
    PolicyError,
    PreviewError,
    ScrapingError,
    ValidationError,
    get_error_message,
)

# Validation
from ogcard.validators import (
    check_url,
    is_scrapable_url,
    is_valid_url,
    sanitize_url,
    validate_and_sanitize_url,
)

# Configuration
from ogcard.config import OgcardConfig, get_config, init_config

# Cards
from ogcard.card import SocialCard

__all__ = [
    # Pipeline
    "LinkPreviewService",
    "get_preview_data",
    "StreamingFetcher",
    "fetch_head_content",
    "fetch_body_images",
    "parse_metadata",
    "normalize_metadata",
    # Models
    "MetaData",
    "ScrapedData",
    "ScrapingOptions",
    # Errors
    "PreviewError",
    "ValidationError",
    "PolicyError",
    "NetworkError",
    "ScrapingError",
    "get_error_message",
    # Validation
    "check_url",
    "is_scrapable_url",
    "is_valid_url",
    "sanitize_url",
    "validate_and_sanitize_url",
    # Config
    "OgcardConfig",
    "get_config",
    "init_config",
    # Cards
    "SocialCard",
]
