"""
ogcard REST API server.

Endpoints:
- GET  /preview?url=...&fetchBodyImages=1   link preview metadata
- POST /preview {"url": ..., "fetchBodyImages": true}
- GET  /card?url=...                         rendered social card (PNG)

Every preview response uses the same envelope:
    {"success": true,  "url", "metadata": {...}, "timestamp"}
    {"success": false, "url", "metadata": null, "error", "timestamp"}

Usage:
    ogcard serve              # Start on default port 8000
    ogcard serve --port 3000  # Custom port
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Query, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ogcard import __version__
from ogcard.card import SocialCard
from ogcard.config import OgcardConfig, get_config
from ogcard.errors import get_error_message
from ogcard.models import MetaData, ScrapingOptions
from ogcard.scraper import StreamingFetcher
from ogcard.service import LinkPreviewService

logger = logging.getLogger(__name__)

TRUTHY_FLAGS = ("1", "true")


class PreviewRequest(BaseModel):
    """Request body for POST /preview."""
    url: Optional[str] = None
    fetchBodyImages: bool = False


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_envelope(url: str, metadata: MetaData) -> dict:
    return {
        "success": True,
        "url": url,
        "metadata": metadata.to_dict(),
        "timestamp": _timestamp(),
    }


def error_envelope(url: Optional[str], message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "url": url or "",
            "metadata": None,
            "error": message,
            "timestamp": _timestamp(),
        },
    )


def parse_flag(value: Optional[str]) -> bool:
    """Interpret a query-string flag such as fetchBodyImages=1."""
    return (value or "").strip().lower() in TRUTHY_FLAGS


def create_app(service: Optional[LinkPreviewService] = None,
               config: Optional[OgcardConfig] = None,
               card_factory=SocialCard.from_metadata) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Preview service (a default one is created otherwise)
        config: Configuration (global configuration otherwise)
        card_factory: Callable building a SocialCard from MetaData
    """
    config = config or get_config()
    service = service or LinkPreviewService(
        fetcher_factory=lambda: StreamingFetcher(verify_ssl=config.verify_ssl)
    )

    app = FastAPI(
        title="ogcard API",
        description="Link preview metadata and social cards",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    def run_preview(url: Optional[str], fetch_body_images: bool):
        if not url:
            return error_envelope(url, "URL is required", 400)
        try:
            metadata = service.get_preview_data(
                url, ScrapingOptions(fetch_body_images=fetch_body_images)
            )
        except Exception as e:
            info = get_error_message(e)
            logger.info(f"Preview failed for {url}: {info.message} ({info.status_code})")
            return error_envelope(url, info.message, info.status_code)
        return success_envelope(metadata.url, metadata)

    @app.get("/")
    def root():
        """API root endpoint."""
        return {
            "name": "ogcard API",
            "version": __version__,
            "endpoints": {
                "preview": "/preview?url=<url>&fetchBodyImages=1",
                "card": "/card?url=<url>",
                "docs": "/docs",
            },
        }

    @app.get("/preview")
    def get_preview(
        url: Optional[str] = Query(None, description="Page URL"),
        fetchBodyImages: Optional[str] = Query(None, description="'1' or 'true' to sample body images"),
    ):
        """Get link preview metadata for a URL."""
        return run_preview(url, parse_flag(fetchBodyImages))

    @app.post("/preview")
    def post_preview(request: PreviewRequest):
        """Get link preview metadata for a URL given in the JSON body."""
        return run_preview(request.url, request.fetchBodyImages)

    @app.get("/card")
    def get_card(
        url: Optional[str] = Query(None, description="Page URL"),
        title: Optional[str] = Query(None, description="Override the card title"),
        imageIndex: int = Query(0, ge=0, description="Which candidate image to show"),
        scale: int = Query(config.export_scale, ge=1, le=4, description="Export resolution multiplier"),
        fetchBodyImages: Optional[str] = Query(None),
    ):
        """Render the social card for a URL as PNG."""
        if not url:
            return error_envelope(url, "URL is required", 400)
        try:
            metadata = service.get_preview_data(
                url, ScrapingOptions(fetch_body_images=parse_flag(fetchBodyImages))
            )
            with card_factory(metadata, size=config.card_size,
                              title_font=config.title_font,
                              subtitle_font=config.subtitle_font) as card:
                if title:
                    card.title = title
                if imageIndex and card.images:
                    card.select_image(imageIndex)
                png = card.export_png(scale=scale)
        except IndexError as e:
            return error_envelope(url, str(e), 400)
        except Exception as e:
            info = get_error_message(e)
            return error_envelope(url, info.message, info.status_code)
        return Response(content=png, media_type="image/png")

    return app


def run_server(host: str = "127.0.0.1", port: int = 8000, config: Optional[OgcardConfig] = None):
    """Run the API under uvicorn."""
    import uvicorn

    config = config or get_config()
    logging.basicConfig(level=config.log_level.upper(), format="%(levelname)s: %(message)s")
    logger.info(f"Starting ogcard API on http://{host}:{port}")
    uvicorn.run(create_app(config=config), host=host, port=port, log_level=config.log_level.lower())
