from __future__ import annotations
import base64
from typing import Any, Iterable, Optional

from .errors import EmptyResponseError, NoImageDataError
from .models import GeneratedArtifact

DEFAULT_IMAGE_MIME = "image/png"


def _field(obj: Any, *names: str) -> Any:
    # SDK objects use snake_case attributes, REST JSON uses camelCase keys.
    for name in names:
        if isinstance(obj, dict):
            if obj.get(name) is not None:
                return obj[name]
        else:
            val = getattr(obj, name, None)
            if val is not None:
                return val
    return None


def _parts(candidate: Any) -> Iterable[Any]:
    content = _field(candidate, "content")
    if content is None:
        return ()
    return _field(content, "parts") or ()


def _as_base64(data: Any) -> str:
    if isinstance(data, (bytes, bytearray)):
        return base64.b64encode(bytes(data)).decode("ascii")
    return str(data)


def extract_image(response: Any) -> GeneratedArtifact:
    """
    First inline image of the first candidate, as a data-URI artifact.
    Structural only; the payload is not decoded or validated.
    """
    candidates = _field(response, "candidates") or []
    if not candidates:
        raise NoImageDataError("No candidates returned from Gemini API.")

    for part in _parts(candidates[0]):
        blob = _field(part, "inline_data", "inlineData")
        if blob is None:
            continue
        data = _field(blob, "data")
        if data is None:
            continue
        mime = _field(blob, "mime_type", "mimeType") or DEFAULT_IMAGE_MIME
        return GeneratedArtifact(mime_type=mime, data=_as_base64(data))

    raise NoImageDataError("No image data found in the response.")


def extract_text(response: Any) -> str:
    text: Optional[str] = None
    if not isinstance(response, dict):
        # SDK responses expose a .text convenience property
        text = getattr(response, "text", None)
    if not text:
        candidates = _field(response, "candidates") or []
        if candidates:
            text = "".join(
                t for t in (_field(p, "text") for p in _parts(candidates[0])) if isinstance(t, str)
            )
    if not text or not text.strip():
        raise EmptyResponseError("Gemini returned an empty response.")
    return text
