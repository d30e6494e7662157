from __future__ import annotations
import asyncio
from typing import Iterable, List, Optional

from genstudio.core.batch import BatchResult, StopFlag, run_batch
from genstudio.core.gateway import GenerationGateway
from genstudio.core.models import (
    GeneratedArtifact,
    ImageAnalysis,
    InlineImage,
    LookbookConsultation,
    PromptIdeas,
    ToolRequest,
)
from genstudio.utils.images import ensure_png
from . import prompts
from .prompts import LookbookContext

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_TEXT_MODEL = "gemini-2.5-flash"


class Studio:
    """
    The studio tools. Each method assembles one request (images in order,
    then the instruction) and hands it to the gateway.
    """

    def __init__(self, gateway: GenerationGateway, *, image_model: str = DEFAULT_IMAGE_MODEL,
                 text_model: str = DEFAULT_TEXT_MODEL, pacing: float = 3.0):
        self.gateway = gateway
        self.image_model = image_model
        self.text_model = text_model
        self.pacing = pacing

    def _image_request(self, instruction: str, *images: InlineImage) -> ToolRequest:
        return ToolRequest(model=self.image_model, instruction=instruction, images=tuple(images))

    async def _image(self, instruction: str, *images: InlineImage) -> GeneratedArtifact:
        return await self.gateway.generate_image(self._image_request(instruction, *images))

    # ----- image tools -----

    async def face_safe(self, face: InlineImage, prompt: str, negative_prompt: str = "",
                        face_lock: int = 80) -> GeneratedArtifact:
        return await self._image(prompts.face_safe(prompt, negative_prompt, face_lock), face)

    async def extract_outfit(self, person: InlineImage) -> GeneratedArtifact:
        return await self._image(prompts.OUTFIT_EXTRACTION, person)

    async def swap_background(self, subject: InlineImage, background: InlineImage) -> GeneratedArtifact:
        return await self._image(prompts.BACKGROUND_SWAP, subject, background)

    async def restore_photo(self, photo: InlineImage) -> GeneratedArtifact:
        return await self._image(prompts.PHOTO_RESTORE, photo)

    async def inpaint(self, source: InlineImage, mask: InlineImage, replacement: str) -> GeneratedArtifact:
        # the mask is always sent as PNG
        mask = await asyncio.to_thread(ensure_png, mask)
        return await self._image(prompts.inpaint(replacement), source, mask)

    async def id_photo(self, portrait: InlineImage, background_color: str = "white",
                       add_attire: bool = False) -> GeneratedArtifact:
        return await self._image(prompts.id_photo(background_color, add_attire), portrait)

    async def travel_photo(self, subject: InlineImage, location: str, style: str = "photorealistic",
                           time_of_day: str = "golden hour") -> GeneratedArtifact:
        return await self._image(prompts.travel_photo(location, style, time_of_day), subject)

    async def try_on(self, model: InlineImage, product: InlineImage, category: str = "clothing") -> GeneratedArtifact:
        return await self._image(prompts.try_on(category), model, product)

    def lookbook_request(self, product: InlineImage, shot_type: str, *,
                         background: Optional[InlineImage] = None, background_prompt: str = "",
                         model: Optional[InlineImage] = None, model_prompt: str = "",
                         model_lock: int = 80, bg_lock: int = 50, guidance: Optional[str] = None,
                         product_name: str = "", product_features: str = "") -> ToolRequest:
        images: List[InlineImage] = [product]
        if background is not None:
            images.append(background)
            bg_ctx = LookbookContext("image")
        else:
            bg_ctx = LookbookContext("prompt", background_prompt or "Professional studio lighting, neutral background")
        if model is not None:
            images.append(model)
            model_ctx = LookbookContext("image")
        else:
            model_ctx = LookbookContext("prompt", model_prompt or "Professional fashion model, natural pose")
        instruction = prompts.lookbook_asset(
            shot_type, bg_ctx, model_ctx, model_lock=model_lock, bg_lock=bg_lock, guidance=guidance,
            product_name=product_name, product_features=product_features,
        )
        return self._image_request(instruction, *images)

    async def lookbook_asset(self, product: InlineImage, shot_type: str, **kwargs) -> GeneratedArtifact:
        return await self.gateway.generate_image(self.lookbook_request(product, shot_type, **kwargs))

    async def lookbook_batch(self, product: InlineImage, shots: Iterable[str], *,
                             consultation: Optional[LookbookConsultation] = None,
                             stop: Optional[StopFlag] = None, on_progress=None, **kwargs) -> BatchResult:
        """One lookbook asset per shot, paced, halting early on exhausted quota."""
        if consultation is not None and "guidance" not in kwargs:
            kwargs["guidance"] = (
                f"Material: {consultation.material_analysis}. Lighting: {consultation.lighting_suggestion}."
            )
        requests = [(shot, self.lookbook_request(product, shot, **kwargs)) for shot in shots]

        def task(req: ToolRequest):
            return lambda: self.gateway.generate_image(req)

        return await run_batch(
            [(shot, task(req)) for shot, req in requests],
            pacing=self.pacing, stop=stop, on_progress=on_progress,
        )

    # ----- JSON tools -----

    async def describe_image(self, image: InlineImage) -> ImageAnalysis:
        req = ToolRequest(model=self.text_model, instruction=prompts.IMAGE_ANALYSIS, images=(image,),
                          modality="json", response_schema=ImageAnalysis)
        return await self.gateway.generate_json(req, ImageAnalysis)

    async def prompts_from_brief(self, brief: str) -> List[str]:
        req = ToolRequest(model=self.text_model, instruction=prompts.prompts_from_brief(brief),
                          modality="json", response_schema=PromptIdeas)
        return (await self.gateway.generate_json(req, PromptIdeas)).prompts

    async def consult_lookbook(self, product: InlineImage, additional_info: str = "") -> LookbookConsultation:
        req = ToolRequest(model=self.text_model, instruction=prompts.lookbook_consultation(additional_info),
                          images=(product,), modality="json", response_schema=LookbookConsultation)
        return await self.gateway.generate_json(req, LookbookConsultation)
