from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from genstudio.bootstrap import build_app
from genstudio.core.errors import (
    ErrorKind,
    GivenUpError,
    InvalidCredentialError,
    InvalidImageError,
    MissingCredentialError,
    ProviderClientError,
    format_error,
)
from genstudio.core.models import GeneratedArtifact
from genstudio.secrets.sources import MemoryKeyStore
from genstudio.tools.prompts import PRODUCT_CATEGORIES, lookbook_shot_list
from genstudio.utils.images import parse_image_payload


class ImagePayload(BaseModel):
    """Data URI, or bare base64 with mime_type."""
    data: str
    mime_type: Optional[str] = None

    def to_inline(self):
        return parse_image_payload(self.data, self.mime_type)


class KeyRequest(BaseModel):
    key: str


class FaceSafeRequest(BaseModel):
    face: ImagePayload
    prompt: str
    negative_prompt: str = ""
    face_lock: int = Field(80, ge=0, le=100)


class SingleImageRequest(BaseModel):
    image: ImagePayload


class BgSwapRequest(BaseModel):
    subject: ImagePayload
    background: ImagePayload


class InpaintRequest(BaseModel):
    source: ImagePayload
    mask: ImagePayload
    prompt: str


class IdPhotoRequest(BaseModel):
    image: ImagePayload
    background_color: str = "white"
    add_attire: bool = False


class TravelRequest(BaseModel):
    subject: ImagePayload
    location: str
    style: str = "photorealistic"
    time_of_day: str = "golden hour"


class TryOnRequest(BaseModel):
    model: ImagePayload
    product: ImagePayload
    category: str = "clothing"


class LookbookRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    product: ImagePayload
    angles: List[str] = []
    functional_details: List[str] = []
    texture_macro: bool = False
    brand_detail: bool = False
    detail_circle: bool = False
    variations: bool = False
    background: Optional[ImagePayload] = None
    background_prompt: str = ""
    model: Optional[ImagePayload] = None
    model_prompt: str = ""
    model_lock: int = Field(80, ge=0, le=100)
    bg_lock: int = Field(50, ge=0, le=100)
    guidance: Optional[str] = None
    product_name: str = ""
    product_features: str = ""


class BriefRequest(BaseModel):
    brief: str


class ConsultRequest(BaseModel):
    product: ImagePayload
    additional_info: str = ""


def _status_for(exc: Exception) -> int:
    if isinstance(exc, GivenUpError):
        return 429 if exc.kind is ErrorKind.TRANSIENT_QUOTA else 503
    if isinstance(exc, (MissingCredentialError, InvalidCredentialError, InvalidImageError)):
        return 400
    # malformed upstream answers and non-retryable upstream errors
    return 502


async def _call(coro: Awaitable[Any]) -> Any:
    try:
        return await coro
    except Exception as e:
        raise HTTPException(status_code=_status_for(e), detail=format_error(e)) from e


def _image_input(payload: ImagePayload):
    try:
        return payload.to_inline()
    except ProviderClientError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def _image_response(artifact: GeneratedArtifact) -> JSONResponse:
    return JSONResponse({"image": artifact.data_uri})


def create_app(config_path: Path, *, key_store=None) -> FastAPI:
    """
    JSON API over the studio tools. The user key lives in memory for the
    lifetime of the process unless a persistent store is passed in.
    """
    ctx = build_app(Path(config_path), key_store=key_store if key_store is not None else MemoryKeyStore())
    cfg = ctx["cfg"]
    studio = ctx["studio"]
    credentials = ctx["credentials"]

    app = FastAPI(title="genstudio")
    app.state.ctx = ctx

    @app.get("/api/config")
    def api_config():
        return {
            "provider": cfg["model"]["provider"],
            "image_model": studio.image_model,
            "text_model": studio.text_model,
            "key_source": credentials.source(),
            "categories": list(PRODUCT_CATEGORIES),
        }

    @app.put("/api/settings/key")
    def api_set_key(req: KeyRequest):
        try:
            ctx["key_store"].save(req.key)
        except InvalidCredentialError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return {"key_source": credentials.source()}

    @app.delete("/api/settings/key")
    def api_clear_key():
        ctx["key_store"].clear()
        return {"key_source": credentials.source()}

    # ----- image tools -----

    @app.post("/api/tools/face-safe")
    async def face_safe(req: FaceSafeRequest):
        return _image_response(await _call(studio.face_safe(
            _image_input(req.face), req.prompt, req.negative_prompt, req.face_lock)))

    @app.post("/api/tools/ootd-extract")
    async def ootd_extract(req: SingleImageRequest):
        return _image_response(await _call(studio.extract_outfit(_image_input(req.image))))

    @app.post("/api/tools/bg-swap")
    async def bg_swap(req: BgSwapRequest):
        return _image_response(await _call(studio.swap_background(
            _image_input(req.subject), _image_input(req.background))))

    @app.post("/api/tools/restore")
    async def restore(req: SingleImageRequest):
        return _image_response(await _call(studio.restore_photo(_image_input(req.image))))

    @app.post("/api/tools/inpaint")
    async def inpaint(req: InpaintRequest):
        return _image_response(await _call(studio.inpaint(
            _image_input(req.source), _image_input(req.mask), req.prompt)))

    @app.post("/api/tools/id-photo")
    async def id_photo(req: IdPhotoRequest):
        return _image_response(await _call(studio.id_photo(
            _image_input(req.image), req.background_color, req.add_attire)))

    @app.post("/api/tools/travel")
    async def travel(req: TravelRequest):
        return _image_response(await _call(studio.travel_photo(
            _image_input(req.subject), req.location, req.style, req.time_of_day)))

    @app.post("/api/tools/product-fashion")
    async def product_fashion(req: TryOnRequest):
        if req.category not in PRODUCT_CATEGORIES:
            raise HTTPException(status_code=400, detail=f"Unknown category '{req.category}'")
        return _image_response(await _call(studio.try_on(
            _image_input(req.model), _image_input(req.product), req.category)))

    @app.post("/api/tools/lookbook")
    async def lookbook(req: LookbookRequest):
        shots = lookbook_shot_list(
            req.angles, texture_macro=req.texture_macro, brand_detail=req.brand_detail,
            detail_circle=req.detail_circle, functional_details=req.functional_details,
            variations=req.variations,
        )
        if not shots:
            raise HTTPException(status_code=400, detail="Select at least one shot")
        result = await studio.lookbook_batch(
            _image_input(req.product), shots,
            background=_image_input(req.background) if req.background else None,
            background_prompt=req.background_prompt,
            model=_image_input(req.model) if req.model else None,
            model_prompt=req.model_prompt, model_lock=req.model_lock, bg_lock=req.bg_lock,
            guidance=req.guidance, product_name=req.product_name, product_features=req.product_features,
        )
        return {
            "results": [
                {"shot": o.label, "image": o.artifact.data_uri if o.ok else None, "error": o.error}
                for o in result.outcomes
            ],
            "halted": result.halted,
            "halt_reason": result.halt_reason,
        }

    # ----- JSON tools -----

    @app.post("/api/tools/img2prompt")
    async def img2prompt(req: SingleImageRequest):
        return (await _call(studio.describe_image(_image_input(req.image)))).model_dump()

    @app.post("/api/tools/prompt-maker")
    async def prompt_maker(req: BriefRequest):
        if not req.brief.strip():
            raise HTTPException(status_code=400, detail="Empty brief")
        return {"prompts": await _call(studio.prompts_from_brief(req.brief))}

    @app.post("/api/tools/lookbook-consult")
    async def lookbook_consult(req: ConsultRequest):
        return (await _call(studio.consult_lookbook(_image_input(req.product), req.additional_info))).model_dump()

    return app


def run(
    *,
    config: Path,
    host: str = "127.0.0.1",
    port: int = 8000,
    reload: bool = False,
) -> None:
    import uvicorn

    app = create_app(config)
    uvicorn.run(app, host=host, port=port, reload=reload)
