"""Tests for ogcard.server REST API."""

import io

import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock, patch
from PIL import Image

from ogcard.card import SocialCard
from ogcard.config import OgcardConfig
from ogcard.errors import PolicyError, ScrapingError, ValidationError
from ogcard.models import MetaData, ScrapingOptions
from ogcard.server import create_app, parse_flag


METADATA = MetaData(
    title="Example",
    description="An example page",
    image="https://example.com/og.png",
    favicon="https://example.com/favicon.ico",
    url="https://example.com",
)


def card_factory(metadata, **kwargs):
    loader = lambda url: Image.new("RGB", (1600, 900), "red")
    return SocialCard.from_metadata(metadata, image_loader=loader, **kwargs)


@pytest.fixture
def service():
    mock = MagicMock()
    mock.get_preview_data.return_value = METADATA
    return mock


@pytest.fixture
def client(service):
    app = create_app(service=service, config=OgcardConfig(), card_factory=card_factory)
    return TestClient(app)


class TestParseFlag:
    @pytest.mark.parametrize("value,expected", [
        ("1", True), ("true", True), ("TRUE", True),
        ("0", False), ("yes", False), ("", False), (None, False),
    ])
    def test_values(self, value, expected):
        assert parse_flag(value) is expected


class TestRoot:
    def test_lists_endpoints(self, client):
        data = client.get("/").json()
        assert data["name"] == "ogcard API"
        assert "preview" in data["endpoints"]


class TestGetPreview:
    """Test GET /preview."""

    def test_success_envelope(self, client, service):
        response = client.get("/preview", params={"url": "example.com"})

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["url"] == "https://example.com"
        assert data["metadata"] == METADATA.to_dict()
        assert "timestamp" in data
        service.get_preview_data.assert_called_once_with(
            "example.com", ScrapingOptions(fetch_body_images=False)
        )

    def test_fetch_body_images_flag(self, client, service):
        client.get("/preview", params={"url": "example.com", "fetchBodyImages": "1"})
        service.get_preview_data.assert_called_once_with(
            "example.com", ScrapingOptions(fetch_body_images=True)
        )

    def test_missing_url(self, client, service):
        response = client.get("/preview")

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["metadata"] is None
        assert data["error"] == "URL is required"
        service.get_preview_data.assert_not_called()

    @pytest.mark.parametrize("error,status", [
        (ValidationError("Invalid URL format"), 400),
        (PolicyError("URL is not allowed for scraping"), 400),
        (ScrapingError("Request timeout - the website took too long to respond", 408), 408),
        (ScrapingError("No meaningful metadata found on the page", 422), 422),
        (ScrapingError("The target website is experiencing issues", 502), 502),
    ])
    def test_error_status(self, client, service, error, status):
        service.get_preview_data.side_effect = error

        response = client.get("/preview", params={"url": "example.com"})

        assert response.status_code == status
        data = response.json()
        assert data["success"] is False
        assert data["error"] == error.message
        assert data["url"] == "example.com"

    def test_unexpected_error_is_500(self, client, service):
        service.get_preview_data.side_effect = RuntimeError("boom")

        response = client.get("/preview", params={"url": "example.com"})

        assert response.status_code == 500
        assert response.json()["error"] == "boom"


class TestPostPreview:
    """Test POST /preview."""

    def test_success(self, client, service):
        response = client.post("/preview", json={"url": "https://example.com", "fetchBodyImages": True})

        assert response.status_code == 200
        assert response.json()["success"] is True
        service.get_preview_data.assert_called_once_with(
            "https://example.com", ScrapingOptions(fetch_body_images=True)
        )

    def test_missing_url(self, client):
        response = client.post("/preview", json={})

        assert response.status_code == 400
        assert response.json()["error"] == "URL is required"

    def test_body_images_in_response(self, client, service):
        service.get_preview_data.return_value = MetaData(
            "T", "", "", "", "https://example.com", body_images=["https://example.com/1.png"]
        )

        data = client.post("/preview", json={"url": "example.com", "fetchBodyImages": True}).json()

        assert data["metadata"]["bodyImages"] == ["https://example.com/1.png"]


class TestCard:
    """Test GET /card."""

    def test_png_response(self, client):
        response = client.get("/card", params={"url": "example.com"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        image = Image.open(io.BytesIO(response.content))
        assert image.size == (1200, 1200)

    def test_scale_param(self, client):
        response = client.get("/card", params={"url": "example.com", "scale": 1})
        assert Image.open(io.BytesIO(response.content)).size == (600, 600)

    def test_missing_url(self, client):
        assert client.get("/card").status_code == 400

    def test_image_index_out_of_range(self, client):
        response = client.get("/card", params={"url": "example.com", "imageIndex": 5})

        assert response.status_code == 400
        assert "out of range" in response.json()["error"]

    def test_preview_error_propagates(self, client, service):
        service.get_preview_data.side_effect = ScrapingError("Page not found", 404)

        response = client.get("/card", params={"url": "example.com"})

        assert response.status_code == 404
        assert response.json()["error"] == "Page not found"

    def test_private_image_not_downloaded(self, service):
        service.get_preview_data.return_value = MetaData(
            "Example", "", "http://10.0.0.5/internal.png", "", "https://example.com"
        )
        client = TestClient(create_app(service=service, config=OgcardConfig()))

        with patch("ogcard.card.requests.get") as mock_get:
            response = client.get("/card", params={"url": "example.com"})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        mock_get.assert_not_called()
