from __future__ import annotations
import asyncio
import json
from typing import Any, Dict, Optional

from genstudio.core.models import ToolRequest
from genstudio.providers.registry import ProviderRegistry

# 1x1 transparent PNG
_PIXEL_PNG = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


@ProviderRegistry.register("echo")
class EchoProvider:
    """
    Offline stub. Image tools get a fixed 1x1 PNG; JSON tools get the
    schema's defaults. Optional delay simulates network latency.
    """
    name = "echo"

    def __init__(self, delay: float = 0.0, image: str = _PIXEL_PNG):
        self.delay = float(delay)
        self.image = image
        self.requests: list[ToolRequest] = []

    @classmethod
    def create(cls, *, api_key: str, provider_cfg: Optional[Dict[str, Any]] = None) -> "EchoProvider":
        return cls(delay=(provider_cfg or {}).get("delay", 0.0))

    def _text_for(self, request: ToolRequest) -> str:
        if request.response_schema is not None:
            return request.response_schema().model_dump_json()
        return json.dumps({})

    async def generate(self, request: ToolRequest) -> Dict[str, Any]:
        self.requests.append(request)
        if self.delay > 0:
            await asyncio.sleep(self.delay)
        if request.modality == "image":
            # text before the image, as the real model sometimes does
            parts = [{"text": "echo"}, {"inlineData": {"mimeType": "image/png", "data": self.image}}]
        else:
            parts = [{"text": self._text_for(request)}]
        return {"candidates": [{"content": {"parts": parts}}]}
