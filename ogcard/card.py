"""
Social card rendering.

A SocialCard is a small scene graph (background, title, image, subtitle)
built from preview metadata. Each card owns its loaded image and is
created per use; call close() (or use it as a context manager) when done.
Rendering and PNG export use Pillow.
"""
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union
from urllib.parse import urljoin

import requests
from PIL import Image, ImageDraw, ImageFont

from ogcard.constants import (
    ASPECT_TOLERANCE,
    CARD_SIZE,
    CHUNK_SIZE,
    EXPORT_SCALE,
    IMAGE_AREA_RESERVED,
    IMAGE_AREA_SIDE,
    IMAGE_AREA_TOP,
    LINE_HEIGHT,
    MAX_IMAGE_REDIRECTS,
    MAX_IMAGE_SIZE,
    REQUEST_TIMEOUT,
    SUBTITLE_COLOR,
    SUBTITLE_FONT_SIZE,
    SUBTITLE_OFFSET,
    SUBTITLES,
    TARGET_ASPECT_RATIO,
    TITLE_COLOR,
    TITLE_FONT_SIZE,
    TITLE_PADDING,
    TITLE_TOP,
    USER_AGENT,
)
from ogcard.html_parser import detect_language
from ogcard.models import MetaData
from ogcard.validators import is_scrapable_url

logger = logging.getLogger(__name__)

# Natural size assumed when no image could be loaded
DEFAULT_IMAGE_SIZE = (800, 600)


@dataclass
class Rect:
    left: float
    top: float
    width: float
    height: float
    fill: str = "white"


@dataclass
class TextBox:
    """Centered, word-wrapped text. left is the horizontal center."""

    text: str
    left: float
    top: float
    width: float
    font_size: int
    fill: str
    bold: bool = False
    line_height: float = LINE_HEIGHT


@dataclass
class ImageBox:
    url: str
    left: float
    top: float
    width: float
    height: float


Element = Union[Rect, TextBox, ImageBox]


def fit_image(image_width: float, image_height: float,
              area_width: float, area_height: float) -> Tuple[float, float]:
    """
    Size an image for the card's image area.

    Images far from 16:9 are forced into a 16:9 box; others keep their
    aspect ratio and fit the area's width or height.
    """
    aspect = image_width / image_height

    if abs(aspect - TARGET_ASPECT_RATIO) > ASPECT_TOLERANCE:
        width = area_width
        height = width / TARGET_ASPECT_RATIO
        if height > area_height:
            height = area_height
            width = height * TARGET_ASPECT_RATIO
    elif aspect > area_width / area_height:
        width = area_width
        height = width / aspect
    else:
        height = area_height
        width = height * aspect

    return width, height


def wrap_text(text: str, font, max_width: float, draw: ImageDraw.ImageDraw) -> List[str]:
    """Greedy word wrap; a single word wider than max_width gets its own line."""
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if current and draw.textlength(candidate, font=font) > max_width:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines


def load_font(path: Optional[str], size: int):
    """Load a TrueType font, or Pillow's default font at the given size."""
    if path:
        try:
            return ImageFont.truetype(path, size)
        except OSError as e:
            logger.warning(f"Could not load font {path}: {e}, using default font")
    return ImageFont.load_default(size=size)


def download_image(url: str, timeout: float = REQUEST_TIMEOUT,
                   max_bytes: int = MAX_IMAGE_SIZE) -> Optional[Image.Image]:
    """
    Download an image, returning None if it can't be fetched or decoded.

    Every hop, including redirect targets, must pass is_scrapable_url; the
    body is streamed and abandoned once it exceeds max_bytes.
    """
    response = None
    try:
        for _ in range(MAX_IMAGE_REDIRECTS + 1):
            if not is_scrapable_url(url):
                logger.warning(f"Refusing to download image from {url}")
                return None
            response = requests.get(url, timeout=timeout, stream=True, allow_redirects=False,
                                    headers={"User-Agent": USER_AGENT})
            if not response.is_redirect:
                break
            url = urljoin(url, response.headers.get("Location", ""))
            response.close()
            response = None
        else:
            logger.warning(f"Too many redirects for image {url}")
            return None

        response.raise_for_status()
        data = bytearray()
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            data.extend(chunk)
            if len(data) > max_bytes:
                logger.warning(f"Image {url} exceeds {max_bytes} bytes, skipping")
                return None

        image = Image.open(io.BytesIO(bytes(data)))
        image.load()
        return image
    except requests.RequestException as e:
        logger.warning(f"Image download failed for {url}: {e}")
    except OSError as e:
        logger.warning(f"Could not decode image from {url}: {e}")
    except ValueError as e:
        logger.warning(f"Bad image URL {url}: {e}")
    finally:
        if response is not None:
            response.close()
    return None


class SocialCard:
    """
    Editable social card built from preview metadata.

    Args:
        title: Card title (editable copy, not tied to the metadata)
        description: Description (editable copy, kept for export)
        images: Candidate image URLs; the first one is selected
        size: Logical canvas size in pixels (square)
        title_font: Path to a TrueType font for the title
        subtitle_font: Path to a TrueType font for the subtitle
        image_loader: Callable mapping a URL to a PIL image or None
    """

    def __init__(
        self,
        title: str,
        description: str = "",
        images: Optional[List[str]] = None,
        size: int = CARD_SIZE,
        title_font: Optional[str] = None,
        subtitle_font: Optional[str] = None,
        image_loader: Optional[Callable[[str], Optional[Image.Image]]] = None,
    ):
        self.title = title
        self.description = description
        # Unique, non-blank, in order
        self.images = list(dict.fromkeys(url for url in (images or []) if url and url.strip()))
        self.size = size
        self.title_font = title_font
        self.subtitle_font = subtitle_font
        self.image_loader = image_loader or download_image
        self._selected = 0
        self._image: Optional[Image.Image] = None
        self._image_url: Optional[str] = None

    @classmethod
    def from_metadata(cls, metadata: MetaData, **kwargs) -> "SocialCard":
        """Create a card from metadata: og:image first, then body images, without duplicates."""
        images = [metadata.image] + list(metadata.body_images or [])
        return cls(metadata.title, metadata.description, images=images, **kwargs)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        """Release the loaded image."""
        if self._image is not None:
            self._image.close()
        self._image = None
        self._image_url = None

    @property
    def selected_image(self) -> Optional[str]:
        return self.images[self._selected] if self.images else None

    def select_image(self, index: int):
        """Select which candidate image the card shows."""
        if not 0 <= index < len(self.images):
            raise IndexError(f"Image index {index} out of range (0-{len(self.images) - 1})")
        self._selected = index

    @property
    def subtitle(self) -> str:
        return SUBTITLES["bn"] if detect_language(self.title) == "bn" else SUBTITLES["en"]

    @property
    def image_area(self) -> Tuple[float, float, float, float]:
        """(left, top, width, height) of the region reserved for the image."""
        return (
            IMAGE_AREA_SIDE,
            IMAGE_AREA_TOP,
            self.size - 2 * IMAGE_AREA_SIDE,
            self.size - IMAGE_AREA_RESERVED,
        )

    def load_image(self) -> Optional[Image.Image]:
        """Load the selected image once; reloads when the selection changes."""
        url = self.selected_image
        if url is None:
            return None
        if self._image_url != url:
            self.close()
            self._image = self.image_loader(url)
            self._image_url = url
        return self._image

    def layout(self, image_size: Optional[Tuple[int, int]] = None) -> List[Element]:
        """
        Build the ordered list of elements to draw.

        Args:
            image_size: Natural size of the selected image, if known
        """
        text_width = self.size - 2 * TITLE_PADDING
        elements: List[Element] = [Rect(0, 0, self.size, self.size)]

        elements.append(TextBox(
            text=self.title,
            left=self.size / 2,
            top=TITLE_TOP,
            width=text_width,
            font_size=TITLE_FONT_SIZE,
            fill=TITLE_COLOR,
            bold=True,
        ))

        url = self.selected_image
        if url:
            area_left, area_top, area_width, area_height = self.image_area
            natural_width, natural_height = image_size or DEFAULT_IMAGE_SIZE
            width, height = fit_image(natural_width, natural_height, area_width, area_height)
            elements.append(ImageBox(
                url=url,
                left=area_left + (area_width - width) / 2,
                top=area_top + (area_height - height) / 2,
                width=width,
                height=height,
            ))

        elements.append(TextBox(
            text=self.subtitle,
            left=self.size / 2,
            top=self.size - SUBTITLE_OFFSET,
            width=text_width,
            font_size=SUBTITLE_FONT_SIZE,
            fill=SUBTITLE_COLOR,
        ))

        return elements

    def render(self, scale: int = EXPORT_SCALE) -> Image.Image:
        """Draw the card at scale times its logical size."""
        image = self.load_image()
        canvas = Image.new("RGB", (self.size * scale, self.size * scale), "white")
        draw = ImageDraw.Draw(canvas)

        for element in self.layout(image.size if image is not None else None):
            if isinstance(element, Rect):
                draw.rectangle(
                    [element.left * scale, element.top * scale,
                     (element.left + element.width) * scale - 1,
                     (element.top + element.height) * scale - 1],
                    fill=element.fill,
                )
            elif isinstance(element, TextBox):
                self._draw_text(draw, element, scale)
            elif isinstance(element, ImageBox) and image is not None:
                self._paste_image(canvas, image, element, scale)

        return canvas

    def _draw_text(self, draw: ImageDraw.ImageDraw, box: TextBox, scale: int):
        font_path = self.title_font if box.bold else self.subtitle_font
        font = load_font(font_path, box.font_size * scale)
        step = box.font_size * box.line_height * scale
        y = box.top * scale
        for line in wrap_text(box.text, font, box.width * scale, draw):
            draw.text((box.left * scale, y), line, font=font, fill=box.fill, anchor="ma")
            y += step

    @staticmethod
    def _paste_image(canvas: Image.Image, image: Image.Image, box: ImageBox, scale: int):
        size = (max(1, round(box.width * scale)), max(1, round(box.height * scale)))
        resized = image.convert("RGBA").resize(size, Image.Resampling.LANCZOS)
        canvas.paste(resized, (round(box.left * scale), round(box.top * scale)), resized)

    def export_png(self, path: Optional[Path] = None, scale: int = EXPORT_SCALE) -> bytes:
        """
        Render the card as PNG.

        Args:
            path: Optional file to write
            scale: Export resolution multiplier

        Returns:
            PNG bytes
        """
        output = io.BytesIO()
        self.render(scale).save(output, format="PNG")
        data = output.getvalue()
        if path is not None:
            Path(path).write_bytes(data)
            logger.info(f"Saved card to {path}")
        return data
