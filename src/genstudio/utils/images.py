"""
Image input/output helpers.

Inputs are read into immutable InlineImage values (base64 + mime type).
Formats the model does not accept are re-encoded to JPEG first.
"""

from __future__ import annotations
import asyncio
import base64
import binascii
import mimetypes
import re
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from genstudio.core.errors import InvalidImageError
from genstudio.core.models import GeneratedArtifact, InlineImage

SUPPORTED_MIME_TYPES = frozenset({"image/png", "image/jpeg", "image/webp", "image/heic", "image/heif"})
JPEG_QUALITY = 95

_DATA_URI = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def encode_image_bytes(raw: bytes, mime_type: Optional[str] = None) -> InlineImage:
    """
    Pass supported formats through untouched; convert the rest to JPEG.
    """
    if mime_type in SUPPORTED_MIME_TYPES:
        return InlineImage(data=_b64(raw), mime_type=mime_type)

    try:
        img = Image.open(BytesIO(raw))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageError(f"Could not read image ({mime_type or 'unknown type'}). Please upload a JPEG or PNG.") from e

    detected = Image.MIME.get(img.format or "")
    if detected in SUPPORTED_MIME_TYPES:
        return InlineImage(data=_b64(raw), mime_type=detected)

    buf = BytesIO()
    img.convert("RGB").save(buf, format="JPEG", quality=JPEG_QUALITY)
    return InlineImage(data=_b64(buf.getvalue()), mime_type="image/jpeg")


def ensure_png(image: InlineImage) -> InlineImage:
    """Re-encode to PNG unless the payload is already PNG."""
    if image.mime_type == "image/png":
        return image
    try:
        img = Image.open(BytesIO(base64.b64decode(image.data)))
        img.load()
    except (UnidentifiedImageError, OSError, binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Could not read image ({image.mime_type}) for PNG conversion.") from e
    if img.mode not in ("1", "L", "LA", "P", "RGB", "RGBA"):
        img = img.convert("RGBA")
    buf = BytesIO()
    img.save(buf, format="PNG")
    return InlineImage(data=_b64(buf.getvalue()), mime_type="image/png")


def load_image(path: Path) -> InlineImage:
    path = Path(path)
    if not path.is_file():
        raise InvalidImageError(f"Image not found: {path}")
    mime, _ = mimetypes.guess_type(path.name)
    return encode_image_bytes(path.read_bytes(), mime)


async def prepare_image(path: Path) -> InlineImage:
    """load_image without blocking the event loop."""
    return await asyncio.to_thread(load_image, path)


def parse_image_payload(value: str, mime_type: Optional[str] = None) -> InlineImage:
    """
    Accept either a data URI or bare base64 (+ mime type) from an API client.
    """
    value = value.strip()
    m = _DATA_URI.match(value)
    if m:
        mime_type = m.group("mime") or mime_type
        value = m.group("data")
    try:
        raw = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError("Image payload is not valid base64.") from e
    return encode_image_bytes(raw, mime_type)


def save_artifact(artifact: GeneratedArtifact, dest: Path) -> Path:
    """Write the artifact bytes; the suffix follows the mime type if dest has none."""
    dest = Path(dest)
    if not dest.suffix:
        dest = dest.with_suffix(mimetypes.guess_extension(artifact.mime_type) or ".png")
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(base64.b64decode(artifact.data))
    return dest
