"""
Per-request metadata records.

ScrapedData holds raw extracted fields; MetaData is the normalized record
returned to callers. Neither is cached or shared across requests.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ScrapingOptions:
    """Options for a single preview request."""

    fetch_body_images: bool = False


@dataclass
class ScrapedData:
    """Raw fields extracted from head (and optionally body) HTML."""

    title: Optional[str] = None
    description: Optional[str] = None
    og_title: Optional[str] = None
    og_description: Optional[str] = None
    og_image: Optional[str] = None
    favicon: Optional[str] = None
    body_images: Optional[List[str]] = None


@dataclass(frozen=True)
class MetaData:
    """
    Normalized link preview metadata.

    image and favicon are absolute URLs or empty strings. body_images is
    None unless body images were requested and at least one was found.
    """

    title: str
    description: str
    image: str
    favicon: str
    url: str
    body_images: Optional[List[str]] = field(default=None)

    @property
    def is_empty(self) -> bool:
        """True when title, description and image are all blank."""
        return not self.title and not self.description and not self.image

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON wire shape."""
        data: Dict[str, Any] = {
            "title": self.title,
            "description": self.description,
            "image": self.image,
            "favicon": self.favicon,
            "url": self.url,
        }
        if self.body_images:
            data["bodyImages"] = list(self.body_images)
        return data
