"""
Streaming page fetchers and metadata normalization.

The fetchers read a response body chunk by chunk and stop as soon as the
interesting part of the page has arrived: the end of <head> for metadata,
or enough <img> tags after <body for image sampling. The rest of the
stream is abandoned and the connection released.
"""
import codecs
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
import logging
import re
import time
from typing import Dict, Iterator, List, Optional, Pattern, Sequence, Union
from urllib.parse import urljoin

import requests
from urllib3.exceptions import HTTPError, ReadTimeoutError

from ogcard.constants import (
    CHUNK_SIZE,
    FAVICON_FALLBACK_PATH,
    IGNORED_IMAGE_PATTERNS,
    MAX_BODY_IMAGES,
    MAX_BODY_SIZE,
    MAX_HEAD_SIZE,
    REQUEST_HEADERS,
    REQUEST_TIMEOUT,
    USER_AGENT,
)
from ogcard.errors import NetworkError
from ogcard.html_parser import (
    count_image_tags,
    extract_body_images,
    extract_favicon,
    extract_meta_content,
    extract_title,
    find_body_start_index,
    find_head_end_index,
)
from ogcard.models import MetaData, ScrapedData

logger = logging.getLogger(__name__)

_CHARSET_RE = re.compile(r"charset=[\"']?([\w.:-]+)", re.IGNORECASE)


class StreamingFetcher:
    """Fetch just enough of a page to extract head metadata or body images."""

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT,
        user_agent: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        max_head_size: int = MAX_HEAD_SIZE,
        max_body_size: int = MAX_BODY_SIZE,
        max_body_images: int = MAX_BODY_IMAGES,
        ignored_image_patterns: Sequence[Union[str, Pattern]] = IGNORED_IMAGE_PATTERNS,
        chunk_size: int = CHUNK_SIZE,
        verify_ssl: bool = True,
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Wall-clock deadline for a whole fetch, in seconds
            user_agent: Custom user agent string
            headers: Extra request headers (browser-like defaults otherwise)
            max_head_size: Stop reading head content after this many characters
            max_body_size: Stop reading body content after this many characters
            max_body_images: Stop once this many <img> tags were seen
            ignored_image_patterns: Regexes for image sources to skip
            chunk_size: Bytes requested per read
            verify_ssl: Verify TLS certificates
        """
        self.timeout = timeout
        self.user_agent = user_agent or USER_AGENT
        self.max_head_size = max_head_size
        self.max_body_size = max_body_size
        self.max_body_images = max_body_images
        self.ignored_image_patterns = list(ignored_image_patterns)
        self.chunk_size = chunk_size
        self.verify_ssl = verify_ssl

        self.session = requests.Session()
        self.session.headers.update({"User-Agent": self.user_agent})
        self.session.headers.update(headers if headers is not None else REQUEST_HEADERS)

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _timeout_error(self) -> NetworkError:
        return NetworkError(
            f"Request timeout after {int(self.timeout * 1000)} ms", timeout=True
        )

    def _open(self, url: str) -> requests.Response:
        """Issue a streaming GET and check the status."""
        try:
            response = self.session.get(
                url,
                stream=True,
                timeout=self.timeout,
                allow_redirects=True,
                verify=self.verify_ssl,
            )
        except requests.Timeout as e:
            raise self._timeout_error() from e
        except requests.RequestException as e:
            raise NetworkError(f"Request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            response.close()
            raise NetworkError(
                f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
            )

        return response

    @staticmethod
    def _encoding(response: requests.Response) -> str:
        content_type = response.headers.get("Content-Type", "")
        match = _CHARSET_RE.search(content_type)
        if match:
            try:
                return codecs.lookup(match.group(1)).name
            except LookupError:
                logger.debug(f"Unknown charset {match.group(1)!r}, using utf-8")
        return "utf-8"

    def _iter_chunks(self, response: requests.Response, deadline: float) -> Iterator[bytes]:
        """
        Yield body bytes as soon as they arrive, until EOF or the deadline.

        Each read runs on a helper thread and is awaited for the time left
        before the deadline, so a stalled or trickling server cannot hold
        the fetch past it. Only one read is in flight at a time.
        """
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise self._timeout_error()

                future = executor.submit(response.raw.read1, self.chunk_size, decode_content=True)
                try:
                    chunk = future.result(timeout=remaining)
                except FutureTimeoutError as e:
                    raise self._timeout_error() from e
                except ReadTimeoutError as e:
                    raise self._timeout_error() from e
                except (HTTPError, OSError) as e:
                    raise NetworkError(f"Error reading response: {e}") from e

                if not chunk:
                    return
                yield chunk
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _iter_text(self, response: requests.Response, deadline: float) -> Iterator[str]:
        """Yield decoded text chunks until the stream ends or the deadline passes."""
        decoder = codecs.getincrementaldecoder(self._encoding(response))(errors="replace")
        for chunk in self._iter_chunks(response, deadline):
            text = decoder.decode(chunk)
            if text:
                yield text

        tail = decoder.decode(b"", final=True)
        if tail:
            yield tail

    def fetch_head_content(self, url: str) -> str:
        """
        Stream a page until </head> is seen or the head size cap is reached.

        Args:
            url: Page URL

        Returns:
            Text up to and including </head>, or at most max_head_size
            characters when the marker never arrived

        Raises:
            NetworkError: On a non-2xx status, timeout or transport failure
        """
        deadline = time.monotonic() + self.timeout
        response = self._open(url)
        collected = ""

        try:
            for text in self._iter_text(response, deadline):
                collected += text

                head_end = find_head_end_index(collected)
                if head_end != -1:
                    collected = collected[:head_end]
                    logger.debug(f"Found </head> in {url} after {head_end} characters")
                    break

                if len(collected) > self.max_head_size:
                    collected = collected[: self.max_head_size]
                    logger.debug(f"Head of {url} exceeded {self.max_head_size} characters, stopping")
                    break
        finally:
            response.close()

        return collected

    def fetch_body_images(self, url: str) -> List[str]:
        """
        Stream a page past <body and collect up to max_body_images image URLs.

        Raises:
            NetworkError: On a non-2xx status, timeout or transport failure
        """
        deadline = time.monotonic() + self.timeout
        response = self._open(url)
        collected = ""
        body_found = False

        try:
            for text in self._iter_text(response, deadline):
                collected += text

                if not body_found:
                    body_start = find_body_start_index(collected)
                    if body_start == -1:
                        # Keep a trailing window while scanning large heads
                        if len(collected) > self.max_head_size:
                            collected = collected[-(self.max_head_size // 2):]
                        continue
                    collected = collected[body_start:]
                    body_found = True

                if (count_image_tags(collected) >= self.max_body_images
                        or len(collected) > self.max_body_size):
                    break
        finally:
            response.close()

        if not body_found:
            logger.debug(f"No <body found in {url}, scanning trailing content")

        return extract_body_images(
            collected, url, self.max_body_images, self.ignored_image_patterns
        )


def create_fetcher(**kwargs) -> StreamingFetcher:
    """Create a StreamingFetcher instance with optional configuration."""
    return StreamingFetcher(**kwargs)


def fetch_head_content(url: str, **kwargs) -> str:
    """Fetch head content with a fresh fetcher."""
    with create_fetcher(**kwargs) as fetcher:
        return fetcher.fetch_head_content(url)


def fetch_body_images(url: str, **kwargs) -> List[str]:
    """Fetch body image URLs with a fresh fetcher."""
    with create_fetcher(**kwargs) as fetcher:
        return fetcher.fetch_body_images(url)


def parse_metadata(head_html: str) -> ScrapedData:
    """Extract raw metadata fields from head HTML."""
    return ScrapedData(
        title=extract_title(head_html),
        description=extract_meta_content(head_html, "description"),
        og_title=extract_meta_content(head_html, "og:title", True),
        og_description=extract_meta_content(head_html, "og:description", True),
        og_image=extract_meta_content(head_html, "og:image", True),
        favicon=extract_favicon(head_html),
    )


def resolve_url(value: Optional[str], base_url: str) -> str:
    """Resolve value against base_url, returning '' when empty or unparsable."""
    if not value:
        return ""
    try:
        return urljoin(base_url, value)
    except ValueError:
        return ""


def normalize_metadata(scraped: ScrapedData, original_url: str) -> MetaData:
    """
    Merge Open Graph and fallback fields into the final record.

    Open Graph title/description win over <title>/<meta name=description>.
    The image comes only from og:image. The favicon falls back to
    /favicon.ico on the page origin.
    """
    title = scraped.og_title or scraped.title or ""
    description = scraped.og_description or scraped.description or ""
    image = resolve_url(scraped.og_image, original_url)
    favicon = (resolve_url(scraped.favicon, original_url)
               or resolve_url(FAVICON_FALLBACK_PATH, original_url))

    body_images = list(scraped.body_images) if scraped.body_images else None

    return MetaData(
        title=title,
        description=description,
        image=image,
        favicon=favicon,
        url=original_url,
        body_images=body_images,
    )
