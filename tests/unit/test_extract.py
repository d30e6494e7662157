# tests/unit/test_extract.py

from __future__ import annotations
import sys
from pathlib import Path
from types import SimpleNamespace
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from genstudio.core.errors import EmptyResponseError, NoImageDataError
from genstudio.core.extract import extract_image, extract_text


def _rest(*parts):
    return {"candidates": [{"content": {"parts": list(parts)}}]}


def test_inline_image_becomes_data_uri():
    resp = _rest({"inlineData": {"mimeType": "image/png", "data": "AAAA"}})
    art = extract_image(resp)
    assert art.mime_type == "image/png"
    assert art.data_uri == "data:image/png;base64,AAAA"


def test_text_parts_are_skipped():
    resp = _rest({"text": "here you go"}, {"inlineData": {"mimeType": "image/jpeg", "data": "QkJC"}})
    assert extract_image(resp).data_uri == "data:image/jpeg;base64,QkJC"


def test_first_image_wins():
    resp = _rest(
        {"inlineData": {"mimeType": "image/png", "data": "Zmlyc3Q="}},
        {"inlineData": {"mimeType": "image/png", "data": "c2Vjb25k"}},
    )
    assert extract_image(resp).data == "Zmlyc3Q="


def test_missing_mime_defaults_to_png():
    assert extract_image(_rest({"inline_data": {"data": "AAAA"}})).mime_type == "image/png"


@pytest.mark.parametrize("resp", [
    {"candidates": []},
    {},
    _rest(),
    _rest({"text": "I cannot do that"}),
    {"candidates": [{"finishReason": "SAFETY"}]},
])
def test_no_image_raises(resp):
    with pytest.raises(NoImageDataError):
        extract_image(resp)


def test_no_candidates_message():
    with pytest.raises(NoImageDataError, match="No candidates"):
        extract_image({"candidates": []})


def test_sdk_objects_with_raw_bytes():
    blob = SimpleNamespace(data=b"\x89PNG", mime_type="image/webp")
    resp = SimpleNamespace(candidates=[
        SimpleNamespace(content=SimpleNamespace(parts=[
            SimpleNamespace(text="caption", inline_data=None),
            SimpleNamespace(text=None, inline_data=blob),
        ]))
    ])
    art = extract_image(resp)
    assert art.mime_type == "image/webp"
    assert art.data == "iVBORw=="


def test_extract_text_from_rest_parts():
    resp = _rest({"text": '{"prompts": '}, {"text": '["a"]}'})
    assert extract_text(resp) == '{"prompts": ["a"]}'


def test_extract_text_prefers_sdk_property():
    assert extract_text(SimpleNamespace(text='{"ok": 1}', candidates=[])) == '{"ok": 1}'


@pytest.mark.parametrize("resp", [{"candidates": []}, _rest({"text": "   "}), SimpleNamespace(text=None, candidates=None)])
def test_extract_text_empty_raises(resp):
    with pytest.raises(EmptyResponseError):
        extract_text(resp)
