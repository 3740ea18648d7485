"""Shared fixtures: a scripted fake model client and sample model replies."""

import base64
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from winesnap.api.v1.routes import get_client_factory
from winesnap.config import Settings, get_settings
from winesnap.main import app
from winesnap.services.model_client import ModelClient


class FakeModelClient(ModelClient):
    """Returns scripted replies in order; an Exception reply is raised instead."""

    def __init__(self, replies=()):
        self.replies = list(replies)
        self.calls = []
        self.closed = False

    def complete(self, prompt, image=None, max_tokens=1024):
        self.calls.append({"prompt": prompt, "image": image, "max_tokens": max_tokens})
        if not self.replies:
            raise AssertionError("unexpected model call")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def close(self):
        self.closed = True


def _image_bytes(width=64, height=48, fmt="JPEG", mode="RGB"):
    img = Image.new(mode, (width, height), color=(120, 20, 40) if mode == "RGB" else (120, 20, 40, 255))
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def jpeg_b64():
    return base64.b64encode(_image_bytes()).decode("ascii")


@pytest.fixture
def extracted_payload():
    return {
        "producer": "Chateau X",
        "wine_name": None,
        "vintage": "2015",
        "region": "Bordeaux",
        "country": "France",
        "grapes": ["Merlot", "Cabernet Franc"],
        "appellation": "Saint-Emilion Grand Cru",
        "abv": "13.5%",
        "label_text_read": "CHATEAU X\nSaint-Emilion Grand Cru\n2015\n13.5% vol",
        "confidence_0_to_1": 0.87,
    }


@pytest.fixture
def enriched_payload():
    return {
        "overview": "A Merlot-led right bank Bordeaux from Saint-Emilion.",
        "style_overview": "Medium to full bodied, plummy fruit with some earth (typical, not read from the label).",
        "typical_tasting_notes": ["plum", "black cherry", "cedar"],
        "food_pairings": ["roast lamb", "duck confit", "mushroom risotto", "aged comte"],
        "serving": {"temperature_c": 16, "decanting": "30-60 minutes", "glassware": "Bordeaux glass"},
        "aging_window": "Typically drinks well 8-15 years after vintage.",
        "producer_background": None,
        "region_background": "Saint-Emilion is on Bordeaux's right bank, known for Merlot and Cabernet Franc.",
        "price_context": "Cannot be judged from the label alone.",
        "uncertainties": ["exact blend percentages", "oak regime"],
        "followup_questions": ["Is this a grand cru classe?"],
    }


@pytest.fixture
def settings():
    return Settings(anthropic_api_key="test-key")


@pytest.fixture
def api(settings):
    """Build a TestClient wired to a FakeModelClient.

    Pass fake=False to keep the real client factory.
    """

    def _make(replies=(), settings=settings, fake=True):
        app.dependency_overrides[get_settings] = lambda: settings
        client = FakeModelClient(replies) if fake else None
        if client is not None:
            app.dependency_overrides[get_client_factory] = lambda: (lambda _settings: client)
        return TestClient(app), client

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def make_image():
    return _image_bytes
