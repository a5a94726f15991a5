"""Shared fixtures: in-memory images, data URLs and a relay client with the model stubbed."""

import base64
import io
import json
import os
import sys
from pathlib import Path
from typing import Callable, List

import pytest
from fastapi.testclient import TestClient
from PIL import Image


def ensure_packages_on_path() -> None:
    root = Path(__file__).resolve().parent.parent
    for sub in ("backend", "client"):
        path = str(root / sub)
        if path not in sys.path:
            sys.path.append(path)


ensure_packages_on_path()

os.environ.setdefault("GEMINI_API_KEY", "")
os.environ.setdefault("ENVIRONMENT", "test")

from ecoscan.api import routes_analyze  # noqa: E402
from ecoscan.core.config import settings  # noqa: E402
from ecoscan.main import create_app  # noqa: E402


def make_image(size=(320, 240), kind="noise", fmt="PNG", color=(128, 128, 128)) -> bytes:
    """
    kind="noise": detailed image (passes the quality heuristics)
    kind="flat":  single color (zero contrast, tagged blur)
    """
    if kind == "noise":
        img = Image.effect_noise(size, 64).convert("RGB")
    else:
        img = Image.new("RGB", size, color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def data_url(data: bytes, mime_type: str = "image/png") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('utf-8')}"


GOOD_REPLY = {
    "productName": "Plastic Water Bottle",
    "sustainabilityScore": 35,
    "confidence": 85,
    "imageQuality": "good",
    "ecoLabels": ["BPA Free"],
    "recyclability": "PET #1, widely recyclable",
    "carbonFootprint": "~83 g CO2e per bottle",
    "waterFootprint": "~3 L per bottle",
    "materialComposition": "PET plastic, PP cap",
    "lifespan": "Single use",
    "energyProduction": "Not applicable",
    "alternatives": [
        {"name": "Stainless Steel Water Bottle", "description": "Lasts 10+ years", "score": 88},
        {"name": "Glass Water Bottle", "description": "Inert and recyclable", "score": 84},
    ],
}


@pytest.fixture
def image_png() -> bytes:
    return make_image()


@pytest.fixture
def image_data_url(image_png: bytes) -> str:
    return data_url(image_png)


@pytest.fixture
def configured(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(settings, "RETURN_DEBUG", False)
    monkeypatch.setattr(settings, "ENVIRONMENT", "test")
    return settings


@pytest.fixture
def model_reply(monkeypatch: pytest.MonkeyPatch) -> Callable[[object], List[dict]]:
    """
    Stubs the external call. model_reply(text_or_dict_or_exception) returns
    the list of payloads the relay sent.
    """

    def install(reply) -> List[dict]:
        calls: List[dict] = []

        async def fake_generate(payload, client=None):
            calls.append(payload)
            if isinstance(reply, BaseException):
                raise reply
            return reply if isinstance(reply, str) else json.dumps(reply)

        monkeypatch.setattr(routes_analyze.gemini, "generate_analysis", fake_generate)
        return calls

    return install


@pytest.fixture
def client(configured):
    with TestClient(create_app(), raise_server_exceptions=False) as test_client:
        yield test_client
