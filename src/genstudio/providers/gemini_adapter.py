# src/genstudio/providers/gemini_adapter.py
from __future__ import annotations
import base64
from typing import Any, Dict, Optional

from google import genai
from google.genai import types

from genstudio.core.models import ToolRequest
from genstudio.providers.registry import ProviderRegistry


def build_contents(request: ToolRequest) -> types.Content:
    """Images first, in request order, then the instruction."""
    parts = [
        types.Part.from_bytes(data=base64.b64decode(img.data), mime_type=img.mime_type)
        for img in request.images
    ]
    parts.append(types.Part.from_text(text=request.instruction))
    return types.Content(role="user", parts=parts)


def build_config(request: ToolRequest, timeout: Optional[float] = None) -> types.GenerateContentConfig:
    kwargs: Dict[str, Any] = {}
    if request.modality == "image":
        kwargs["response_modalities"] = ["IMAGE"]
    else:
        kwargs["response_mime_type"] = "application/json"
        if request.response_schema is not None:
            kwargs["response_schema"] = request.response_schema
    if timeout is not None:
        # SDK expects milliseconds
        kwargs["http_options"] = types.HttpOptions(timeout=int(timeout * 1000))
    return types.GenerateContentConfig(**kwargs)


@ProviderRegistry.register("gemini")
class GeminiAdapter:
    """
    Thin adapter over google-genai. One instance per resolved key.
    SDK errors are left untouched; the retry layer classifies them.
    """
    name = "gemini"

    def __init__(self, api_key: str, *, timeout: Optional[float] = None, base_url: Optional[str] = None):
        client_kwargs: Dict[str, Any] = {"api_key": api_key}
        if base_url:
            client_kwargs["http_options"] = types.HttpOptions(base_url=base_url)
        self.client = genai.Client(**client_kwargs)
        self.timeout = timeout

    @classmethod
    def create(cls, *, api_key: str, provider_cfg: Optional[Dict[str, Any]] = None) -> "GeminiAdapter":
        cfg = provider_cfg or {}
        return cls(api_key, timeout=cfg.get("timeout"), base_url=cfg.get("base_url"))

    async def generate(self, request: ToolRequest) -> Any:
        return await self.client.aio.models.generate_content(
            model=request.model,
            contents=build_contents(request),
            config=build_config(request, self.timeout),
        )
