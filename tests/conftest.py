import os

import pytest
from unittest.mock import MagicMock

import ogcard.config


SAMPLE_HEAD = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>Example Domain &amp; Friends</title>
  <meta name="description" content="Plain description">
  <meta property="og:title" content="OG Title &mdash; Example">
  <meta property="og:description" content="OG description">
  <meta property="og:image" content="/images/cover.png">
  <link rel="icon" href="/static/icon.png">
</head>"""

SAMPLE_BODY = """
<body class="home">
  <img src="/a.jpg" alt="a">
  <img src="https://cdn.example.com/b.png">
  <img src="/a.jpg">
  <img src="/pixel.gif">
  <img src="c.webp">
</body>
</html>"""


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from real config files and the global config."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in [k for k in os.environ if k.startswith("OGCARD_")]:
        monkeypatch.delenv(key)
    monkeypatch.setattr(ogcard.config, "_config", None)
    yield


@pytest.fixture
def sample_head():
    return SAMPLE_HEAD


@pytest.fixture
def sample_page():
    return SAMPLE_HEAD + SAMPLE_BODY


@pytest.fixture
def make_response():
    """Build a mock streaming response that yields the given byte chunks from raw.read1()."""
    def _make(chunks, status_code=200, reason="OK",
              content_type="text/html; charset=utf-8"):
        pending = iter(chunks)
        response = MagicMock()
        response.status_code = status_code
        response.reason = reason
        response.headers = {"Content-Type": content_type}
        response.raw.read1.side_effect = lambda *args, **kwargs: next(pending, b"")
        return response
    return _make
