"""
Constants for ogcard.

Fixed scraper limits and request settings. Fetchers accept overrides as
keyword arguments, but nothing changes these values at runtime.
"""
import re

# Network
REQUEST_TIMEOUT_MS = 15000
REQUEST_TIMEOUT = REQUEST_TIMEOUT_MS / 1000
CHUNK_SIZE = 8192

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

REQUEST_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept-Encoding": "gzip, deflate",
    "DNT": "1",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}

# Streaming limits (characters of decoded text)
MAX_HEAD_SIZE = 100_000
MAX_BODY_SIZE = 500_000
MAX_BODY_IMAGES = 10

# Markers
HEAD_END_MARKER = "</head>"
BODY_START_MARKER = "<body"

# Scrapability policy. Matched as substrings/prefixes of the hostname.
BLOCKED_DOMAINS = (
    "localhost",
    "127.0.0.1",
    "0.0.0.0",
    "10.",
    "192.168.",
    "172.16.",
)
ALLOWED_PROTOCOLS = ("http:", "https:")

# Body images whose src matches any of these are skipped
IGNORED_IMAGE_PATTERNS = (
    re.compile(r"^data:", re.IGNORECASE),
    re.compile(r"\.svg(\?|$)", re.IGNORECASE),
    re.compile(r"(pixel|spacer|blank|1x1)\.(gif|png)", re.IGNORECASE),
    re.compile(r"[/_-](tracking|tracker|beacon)[/_.-]", re.IGNORECASE),
    re.compile(r"doubleclick\.net|googlesyndication\.com|facebook\.com/tr", re.IGNORECASE),
    re.compile(r"/(ads?|advert(isement)?s?)/", re.IGNORECASE),
    re.compile(r"gravatar\.com/avatar", re.IGNORECASE),
)

FAVICON_FALLBACK_PATH = "/favicon.ico"

# Card image downloads
MAX_IMAGE_SIZE = 10_000_000  # bytes
MAX_IMAGE_REDIRECTS = 5

# Social card geometry (logical pixels, exported at EXPORT_SCALE)
CARD_SIZE = 600
EXPORT_SCALE = 2
TITLE_TOP = 40
TITLE_PADDING = 40
TITLE_FONT_SIZE = 24
TITLE_COLOR = "#2c3e50"
SUBTITLE_FONT_SIZE = 16
SUBTITLE_COLOR = "#7f8c8d"
SUBTITLE_OFFSET = 70
IMAGE_AREA_TOP = 90
IMAGE_AREA_SIDE = 30
IMAGE_AREA_RESERVED = 160
LINE_HEIGHT = 1.4
TARGET_ASPECT_RATIO = 16 / 9
ASPECT_TOLERANCE = 0.5

SUBTITLES = {
    "bn": "বিস্তারিত কমেন্টে",
    "en": "See details in comments",
}
