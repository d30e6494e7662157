# tests/unit/test_images.py

from __future__ import annotations
import asyncio
import base64
import sys
from io import BytesIO
from pathlib import Path
import pytest
from PIL import Image

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from genstudio.core.errors import InvalidImageError
from genstudio.core.models import GeneratedArtifact
from genstudio.utils.images import (
    encode_image_bytes,
    ensure_png,
    load_image,
    parse_image_payload,
    prepare_image,
    save_artifact,
)


def _image_bytes(fmt: str) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (4, 4), (200, 10, 10)).save(buf, format=fmt)
    return buf.getvalue()


def test_supported_mime_passes_through_untouched():
    raw = b"not even decoded"
    img = encode_image_bytes(raw, "image/webp")
    assert img.mime_type == "image/webp"
    assert base64.b64decode(img.data) == raw


def test_unknown_mime_detected_from_bytes():
    raw = _image_bytes("PNG")
    img = encode_image_bytes(raw, None)
    assert img.mime_type == "image/png"
    assert base64.b64decode(img.data) == raw


def test_unsupported_format_converted_to_jpeg():
    img = encode_image_bytes(_image_bytes("BMP"), "image/bmp")
    assert img.mime_type == "image/jpeg"
    assert Image.open(BytesIO(base64.b64decode(img.data))).format == "JPEG"


def test_garbage_is_invalid_image():
    with pytest.raises(InvalidImageError):
        encode_image_bytes(b"definitely not an image", "application/octet-stream")


def test_load_image_from_disk(tmp_path: Path):
    p = tmp_path / "photo.png"
    p.write_bytes(_image_bytes("PNG"))
    assert load_image(p).mime_type == "image/png"
    assert asyncio.run(prepare_image(p)).mime_type == "image/png"


def test_load_image_missing(tmp_path: Path):
    with pytest.raises(InvalidImageError, match="not found"):
        load_image(tmp_path / "nope.jpg")


def test_parse_data_uri_and_bare_base64():
    raw = _image_bytes("PNG")
    b64 = base64.b64encode(raw).decode()
    assert parse_image_payload(f"data:image/png;base64,{b64}").mime_type == "image/png"
    assert parse_image_payload(b64, "image/png").data == b64
    # bare base64 without a mime type is sniffed
    assert parse_image_payload(b64).mime_type == "image/png"


def test_parse_invalid_base64():
    with pytest.raises(InvalidImageError, match="base64"):
        parse_image_payload("data:image/png;base64,@@@not-base64@@@")


def test_save_artifact_adds_suffix(tmp_path: Path):
    art = GeneratedArtifact(mime_type="image/png", data=base64.b64encode(b"pixels").decode())
    out = save_artifact(art, tmp_path / "nested" / "result")
    assert out == tmp_path / "nested" / "result.png"
    assert out.read_bytes() == b"pixels"

    kept = save_artifact(art, tmp_path / "custom.bin")
    assert kept.suffix == ".bin"


def test_ensure_png_reencodes_jpeg():
    jpeg = encode_image_bytes(_image_bytes("JPEG"), "image/jpeg")
    png = ensure_png(jpeg)
    assert png.mime_type == "image/png"
    assert Image.open(BytesIO(base64.b64decode(png.data))).format == "PNG"


def test_ensure_png_leaves_png_alone():
    png = encode_image_bytes(_image_bytes("PNG"), "image/png")
    assert ensure_png(png) is png


def test_ensure_png_rejects_unreadable_payload():
    from genstudio.core.models import InlineImage
    with pytest.raises(InvalidImageError):
        ensure_png(InlineImage(base64.b64encode(b"junk").decode(), "image/jpeg"))
