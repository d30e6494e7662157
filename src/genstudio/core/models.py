from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Tuple, Type

from pydantic import BaseModel

Modality = Literal["image", "json"]


@dataclass(frozen=True)
class InlineImage:
    """Base64 payload + mime type, as sent to the model."""
    data: str
    mime_type: str


@dataclass(frozen=True)
class GeneratedArtifact:
    mime_type: str
    data: str  # base64

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


@dataclass(frozen=True)
class ToolRequest:
    """
    One outbound call: an instruction plus ordered inline images.
    Images always precede the instruction in the request contents.
    """
    model: str
    instruction: str
    images: Tuple[InlineImage, ...] = ()
    modality: Modality = "image"
    response_schema: Optional[Type[BaseModel]] = field(default=None, compare=False)


# ----- JSON-mode answers -----

class ImageAnalysis(BaseModel):
    prompt: str = ""
    negativePrompt: str = ""
    tags: List[str] = []
    camera: str = ""
    lighting: str = ""


class PromptIdeas(BaseModel):
    prompts: List[str] = []


class RecommendedShot(BaseModel):
    shot_name: str
    rationale: str = ""
    technical_prompt: str = ""


class LookbookConsultation(BaseModel):
    product_type: str = ""
    material_analysis: str = ""
    lighting_suggestion: str = ""
    recommended_shots: List[RecommendedShot] = []
