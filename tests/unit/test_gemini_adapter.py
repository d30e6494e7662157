# tests/unit/test_gemini_adapter.py

from __future__ import annotations
import asyncio
import base64
import sys
from pathlib import Path
from types import SimpleNamespace

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import genstudio.providers.gemini_adapter as ga
from genstudio.core.models import ImageAnalysis, InlineImage, ToolRequest

PNG = base64.b64encode(b"png-bytes").decode()
JPG = base64.b64encode(b"jpg-bytes").decode()


class FakeModels:
    def __init__(self):
        self.calls = []

    async def generate_content(self, *, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        return {"candidates": []}


class FakeClient:
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.aio = SimpleNamespace(models=FakeModels())
        FakeClient.instances.append(self)


def test_contents_put_images_before_text():
    req = ToolRequest(
        model="m", instruction="swap it",
        images=(InlineImage(PNG, "image/png"), InlineImage(JPG, "image/jpeg")),
    )
    content = ga.build_contents(req)
    assert content.role == "user"
    assert [p.inline_data.mime_type for p in content.parts[:2]] == ["image/png", "image/jpeg"]
    assert content.parts[0].inline_data.data == b"png-bytes"
    assert content.parts[2].text == "swap it"


def test_image_config():
    cfg = ga.build_config(ToolRequest(model="m", instruction="x"), timeout=120)
    assert cfg.response_modalities == ["IMAGE"]
    assert cfg.response_mime_type is None
    assert cfg.http_options.timeout == 120000


def test_json_config_carries_schema():
    req = ToolRequest(model="m", instruction="x", modality="json", response_schema=ImageAnalysis)
    cfg = ga.build_config(req)
    assert cfg.response_mime_type == "application/json"
    assert cfg.response_schema is not None
    assert cfg.http_options is None


def test_generate_calls_async_client(monkeypatch):
    monkeypatch.setattr(ga, "genai", SimpleNamespace(Client=FakeClient))
    adapter = ga.GeminiAdapter.create(api_key="my-key-0123", provider_cfg={"timeout": 5})
    req = ToolRequest(model="gemini-2.5-flash-image", instruction="restore", images=(InlineImage(PNG, "image/png"),))

    resp = asyncio.run(adapter.generate(req))

    assert resp == {"candidates": []}
    client = FakeClient.instances[-1]
    assert client.kwargs == {"api_key": "my-key-0123"}
    call = client.aio.models.calls[0]
    assert call["model"] == "gemini-2.5-flash-image"
    assert call["contents"].parts[-1].text == "restore"
    assert call["config"].http_options.timeout == 5000


def test_base_url_goes_to_http_options(monkeypatch):
    monkeypatch.setattr(ga, "genai", SimpleNamespace(Client=FakeClient))
    ga.GeminiAdapter("k" * 20, base_url="http://localhost:9999")
    assert FakeClient.instances[-1].kwargs["http_options"].base_url == "http://localhost:9999"
