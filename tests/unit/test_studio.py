# tests/unit/test_studio.py

from __future__ import annotations
import asyncio
import base64
import sys
from io import BytesIO
from pathlib import Path
from PIL import Image

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from genstudio.core.errors import ErrorKind, GivenUpError
from genstudio.core.gateway import GenerationGateway
from genstudio.core.models import ImageAnalysis, InlineImage, LookbookConsultation, RecommendedShot
from genstudio.providers.echo import EchoProvider
from genstudio.resilience.retry import RetryPolicy
from genstudio.secrets.sources import CredentialResolver
from genstudio.tools import prompts
from genstudio.tools.studio import Studio

FACE = InlineImage("RkFDRQ==", "image/jpeg")
BG = InlineImage("QkFDSw==", "image/png")
PRODUCT = InlineImage("UFJPRA==", "image/webp")
MODEL = InlineImage("TU9ERUw=", "image/jpeg")


def _studio(transport=None):
    transport = transport or EchoProvider()
    gw = GenerationGateway(CredentialResolver(default="default-key-1"), lambda key: transport,
                           RetryPolicy(request_timeout=None))
    return Studio(gw, image_model="img", text_model="txt", pacing=0), transport


def test_image_tools_send_images_before_instruction():
    studio, echo = _studio()
    art = asyncio.run(studio.swap_background(FACE, BG))
    assert art.mime_type == "image/png"
    req = echo.requests[-1]
    assert req.model == "img"
    assert req.images == (FACE, BG)
    assert req.instruction == prompts.BACKGROUND_SWAP
    assert req.modality == "image"


def test_inpaint_mask_reencoded_as_png():
    studio, echo = _studio()
    buf = BytesIO()
    Image.new("L", (4, 4), 255).save(buf, format="JPEG")
    jpeg_mask = InlineImage(base64.b64encode(buf.getvalue()).decode(), "image/jpeg")
    asyncio.run(studio.inpaint(FACE, jpeg_mask, "a red scarf"))
    req = echo.requests[-1]
    assert req.images[0] == FACE
    assert req.images[1].mime_type == "image/png"
    assert base64.b64decode(req.images[1].data).startswith(b"\x89PNG")
    assert '"a red scarf"' in req.instruction


def test_inpaint_png_mask_passes_through():
    studio, echo = _studio()
    asyncio.run(studio.inpaint(FACE, BG, "sky"))
    assert echo.requests[-1].images[1] is BG


def test_try_on_orders_model_then_product():
    studio, echo = _studio()
    asyncio.run(studio.try_on(MODEL, PRODUCT, "watch"))
    req = echo.requests[-1]
    assert req.images == (MODEL, PRODUCT)
    assert "Image 2: The Product (watch)." in req.instruction


def test_lookbook_request_image_order():
    studio, _ = _studio()
    req = studio.lookbook_request(PRODUCT, "Front View", background=BG, model=MODEL)
    assert req.images == (PRODUCT, BG, MODEL)
    req = studio.lookbook_request(PRODUCT, "Front View", model=MODEL, background_prompt="loft")
    assert req.images == (PRODUCT, MODEL)
    assert "Background context: loft." in req.instruction


def test_lookbook_batch_uses_consultation_as_guidance():
    studio, echo = _studio()
    consult = LookbookConsultation(material_analysis="matte wool", lighting_suggestion="softbox",
                                   recommended_shots=[RecommendedShot(shot_name="Texture Macro")])
    result = asyncio.run(studio.lookbook_batch(PRODUCT, ["Front View", "Texture Macro"], consultation=consult))
    assert [o.label for o in result.outcomes] == ["Front View", "Texture Macro"]
    assert len(result.artifacts) == 2
    assert all("Material: matte wool. Lighting: softbox." in r.instruction for r in echo.requests)


def test_lookbook_batch_halts_on_quota():
    class QuotaAfterFirst(EchoProvider):
        async def generate(self, request):
            if self.requests:
                raise GivenUpError(ErrorKind.TRANSIENT_QUOTA, 6)
            return await super().generate(request)

    studio, transport = _studio(QuotaAfterFirst())
    result = asyncio.run(studio.lookbook_batch(PRODUCT, ["A", "B", "C"]))
    assert result.halted
    assert [o.ok for o in result.outcomes] == [True, False]


def test_json_tools_with_echo_defaults():
    studio, echo = _studio()
    analysis = asyncio.run(studio.describe_image(FACE))
    assert isinstance(analysis, ImageAnalysis)
    assert echo.requests[-1].model == "txt"
    assert echo.requests[-1].modality == "json"
    assert asyncio.run(studio.prompts_from_brief("summer campaign")) == []
    consult = asyncio.run(studio.consult_lookbook(PRODUCT, "silk"))
    assert consult.recommended_shots == []
    assert echo.requests[-1].images == (PRODUCT,)
