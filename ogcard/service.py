"""
Link preview orchestration: validate, fetch, parse, normalize.
"""
import logging
from typing import Callable, Optional

from ogcard.errors import (
    NetworkError,
    PolicyError,
    ScrapingError,
    ValidationError,
    get_error_message,
)
from ogcard.models import MetaData, ScrapingOptions
from ogcard.scraper import StreamingFetcher, normalize_metadata, parse_metadata
from ogcard.validators import is_scrapable_url, validate_and_sanitize_url

logger = logging.getLogger(__name__)


class LinkPreviewService:
    """
    Build a MetaData record for a URL.

    Each call uses a fresh StreamingFetcher from fetcher_factory, so no
    state is shared between requests.

    Args:
        fetcher_factory: Callable returning a StreamingFetcher
    """

    def __init__(self, fetcher_factory: Optional[Callable[[], StreamingFetcher]] = None):
        self.fetcher_factory = fetcher_factory or StreamingFetcher

    def get_preview_data(self, raw_url: str, options: Optional[ScrapingOptions] = None) -> MetaData:
        """
        Fetch and normalize preview metadata for raw_url.

        Raises:
            ValidationError: The URL is empty or malformed
            PolicyError: The URL is not allowed to be scraped
            ScrapingError: Fetching failed or the page had no usable metadata
        """
        options = options or ScrapingOptions()

        url = validate_and_sanitize_url(raw_url)
        if not is_scrapable_url(url):
            raise PolicyError("URL is not allowed for scraping")

        try:
            with self.fetcher_factory() as fetcher:
                head_content = fetcher.fetch_head_content(url)
                if not head_content:
                    raise ScrapingError("Unable to extract page metadata", 422)

                scraped = parse_metadata(head_content)

                if options.fetch_body_images:
                    try:
                        scraped.body_images = fetcher.fetch_body_images(url)
                    except Exception as e:
                        logger.warning(f"Failed to fetch body images for {url}: {e}")
                        scraped.body_images = []

            metadata = normalize_metadata(scraped, url)
        except (ScrapingError, ValidationError, PolicyError):
            raise
        except NetworkError as e:
            info = get_error_message(e)
            raise ScrapingError(info.message, info.status_code, code="network") from e
        except Exception as e:
            raise ScrapingError(f"Failed to process link preview: {e}", 500) from e

        if metadata.is_empty:
            raise ScrapingError("No meaningful metadata found on the page", 422)

        logger.info(f"Built preview for {url}: {metadata.title!r}")
        return metadata


def get_preview_data(raw_url: str, options: Optional[ScrapingOptions] = None) -> MetaData:
    """Build preview metadata with a default service."""
    return LinkPreviewService().get_preview_data(raw_url, options)
