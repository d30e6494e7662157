"""
Instruction text for each studio tool.

Pure string assembly; no I/O. Each builder returns the single instruction
sent after the tool's input images.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Literal, Optional

NEGATIVE_PROMPT = (
    "Negative prompt: bad anatomy, distorted hands, missing fingers, extra limbs, blurry, low quality, "
    "watermark, text, distorted face, bad eyes, unnatural pose, mannequin, plastic skin."
)

TRY_ON_NEGATIVE_PROMPT = (
    "Negative prompt: bad anatomy, distorted hands, missing fingers, extra limbs, blurry, low quality, "
    "watermark, text, distorted face, bad eyes, unnatural pose, mannequin, plastic skin, wrong orientation, "
    "upside down watch, distorted dial."
)

OUTFIT_EXTRACTION = (
    "From the person in this image, precisely extract their complete outfit (clothing, shoes, accessories). "
    "The output must be an image with a transparent background containing only the extracted items."
)

BACKGROUND_SWAP = (
    "Take the primary subject from the first image and place them realistically onto the second image, "
    "which is the new background. Ensure lighting, shadows, and perspective are consistent."
)

PHOTO_RESTORE = (
    "Restore this old, damaged, or low-quality photo. Improve clarity, fix scratches, remove noise, "
    "enhance details, and realistically colorize it if it's black and white."
)

IMAGE_ANALYSIS = (
    "Analyze this image and generate a detailed prompt for a text-to-image model to recreate it. "
    "Also provide a negative prompt, relevant tags, and describe the camera and lighting setup. "
    "Respond in JSON format."
)

PRODUCT_CATEGORIES = ("clothing", "watch", "jewelry", "shoes", "bag")

_CATEGORY_INSTRUCTIONS = {
    "watch": (
        "The product is a wrist watch. Place it naturally on the model's wrist. Ensure the watch face is "
        "clearly visible, facing outward/upward, and oriented correctly (12 o'clock at the top). The strap "
        "should wrap realistically around the wrist. Do not distort the watch dial."
    ),
    "jewelry": (
        "The product is jewelry. Place it on the appropriate body part (neck, ears, or finger). "
        "Ensure high reflection and realistic metal texture."
    ),
    "shoes": (
        "The product is footwear. Replace the model's shoes with this product. "
        "Ensure realistic ground contact and perspective."
    ),
    "bag": (
        "The product is a bag. Have the model hold the bag naturally or wear it on their shoulder. "
        "Ensure the scale is correct."
    ),
    "clothing": (
        "The product is clothing. Drape it naturally on the model. Match the pose and lighting. "
        "Ensure folds and fabric texture look realistic."
    ),
}


def face_safe(prompt: str, negative_prompt: str, face_lock: int) -> str:
    return (
        f"{prompt}, with a face that strongly resembles the person in the provided image. "
        f"Face lock strength at {face_lock}%. Negative prompt: {negative_prompt}."
    )


def inpaint(replacement: str) -> str:
    return (
        f'Use the second image as a mask. In the first image, replace the white area defined by the mask '
        f'with: "{replacement}". The result should be seamless and photorealistic.'
    )


def id_photo(background_color: str, add_attire: bool) -> str:
    attire = "Add professional business attire (like a suit or blouse) suitable for an ID photo. " if add_attire else ""
    return (
        "Convert this image into a standard, high-quality ID photo. "
        f"The background must be a solid, uniform color: {background_color}. "
        "The subject should be centered and facing forward. "
        f"{attire}Ensure the final image has a 3:4 aspect ratio."
    )


def travel_photo(location: str, style: str, time_of_day: str) -> str:
    return (
        f'Place the person from the provided image into this scene: "{location}". '
        f'The final image should have a "{style}" style, set during "{time_of_day}". '
        "The composition must be photorealistic, with accurate lighting, shadows, and perspective."
    )


def try_on(category: str = "clothing") -> str:
    category = (category or "clothing").lower()
    specific = _CATEGORY_INSTRUCTIONS.get(category, _CATEGORY_INSTRUCTIONS["clothing"])
    return "\n".join([
        "Virtual Try-On Task.",
        "Image 1: The Model.",
        f"Image 2: The Product ({category}).",
        "Goal: Generate a photorealistic image of the model wearing the product.",
        f"Instructions: {specific}",
        "Maintain the model's identity, pose, and the lighting of the original scene. High quality, 8k resolution.",
        TRY_ON_NEGATIVE_PROMPT,
    ])


def prompts_from_brief(brief: str) -> str:
    return (
        "Based on the following brief, generate 4 creative, detailed, and distinct text-to-image prompts. "
        f'Brief: "{brief}"'
    )


def lookbook_consultation(additional_info: str) -> str:
    return "\n".join([
        "You are an Expert Fashion Photography Consultant (15+ years experience in E-commerce & Luxury).",
        f'Analyze the provided product image and the additional context: "{additional_info}".',
        'Your goal is to provide a "Must-Have Shot List" to maximize conversion rates and showcase the '
        "product's best features (Material, Fit, Detail).",
        "Return a JSON object with:",
        "1. product_type: Specific type (e.g., Silk Dress, Leather Tote).",
        "2. material_analysis: Description of material properties (sheen, texture, weight).",
        "3. lighting_suggestion: Best lighting setup (e.g., Softbox for soft shadows, Hard light for texture).",
        "4. recommended_shots: An array of objects, each containing:",
        '- shot_name: Title of the shot (e.g., "Texture Macro", "Waist Tie Detail", "Dynamic Spin").',
        "- rationale: Why this shot sells the product.",
        '- technical_prompt: A specific instruction for the photographer/AI generator '
        '(e.g., "Macro lens, focus on stitching, f/8").',
        'Prioritize shots like "Texture Macro" for fabrics, "Hardware Detail" for bags, etc.',
    ])


# ----- lookbook -----

@dataclass(frozen=True)
class LookbookContext:
    """Background or model reference: free text, or an image sent alongside."""
    kind: Literal["prompt", "image"]
    value: str = ""


TEXTURE_MACRO = "Texture Macro"
BRAND_TAG = "Brand Tag / Lining"
DETAIL_CIRCLE = "Detail Circle Shot"
FUNCTIONAL_DETAIL = "Functional Detail"
VARIATION_COUNT = 4


def lookbook_shot_list(angles: Iterable[str] = (), *, texture_macro: bool = False, brand_detail: bool = False,
                       detail_circle: bool = False, functional_details: Iterable[str] = (),
                       variations: bool = False) -> List[str]:
    shots = [a for a in angles if a.strip()]
    if texture_macro:
        shots.append(TEXTURE_MACRO)
    if brand_detail:
        shots.append(BRAND_TAG)
    if detail_circle:
        shots.append(DETAIL_CIRCLE)
    shots.extend(f"{FUNCTIONAL_DETAIL}: {d.strip()}" for d in functional_details if d.strip())
    if variations:
        shots.extend(f"Variation {i}" for i in range(1, VARIATION_COUNT + 1))
    return shots


def _shot_instruction(shot_type: str) -> str:
    if "Detail Circle" in shot_type or "Magnified" in shot_type:
        return (
            "Create a high-quality product shot. IMPORTANT: Overlay a magnified circular inset (loupe style) "
            "in one corner that zooms in on the material texture or a specific detail."
        )
    if "Texture Macro" in shot_type:
        return (
            "MACRO PHOTOGRAPHY. Extreme close-up on the material/fabric texture. Focus on weaving, stitching, "
            "grain, or surface details. High sharpness, tactile feel. Do not show the full object."
        )
    if FUNCTIONAL_DETAIL in shot_type:
        _, _, detail = shot_type.partition(":")
        detail = detail.strip() or "detail"
        return (
            f'MACRO/CLOSE-UP SHOT. Focus specifically on this functional element: "{detail}". '
            f"Shallow depth of field to isolate the {detail}. Ensure high clarity on the hardware/stitching. "
            "Do not show the full model."
        )
    if "Brand Tag" in shot_type:
        return (
            "MACRO PHOTOGRAPHY. Extreme close-up shot of the Brand Tag, Label, or Internal Lining. "
            "Ensure the text/logo on the tag is sharp and legible. Shallow depth of field."
        )
    if "Variation" in shot_type:
        return (
            "Create a unique variation of the product lookbook shot. High fashion style. "
            "Change the angle slightly to add variety."
        )
    return (
        f"Generate a photorealistic fashion lookbook shot. Camera Angle/Type: {shot_type}. "
        "The model should be wearing/using the product naturally in the scene."
    )


def lookbook_asset(shot_type: str, background: LookbookContext, model: LookbookContext, *,
                   model_lock: int = 80, bg_lock: int = 50, guidance: Optional[str] = None,
                   product_name: str = "", product_features: str = "") -> str:
    context = ""
    if background.kind == "prompt":
        context += f"Background context: {background.value}. "
    else:
        context += f"Use the provided background image as context (lock strength {bg_lock}%). "
    if model.kind == "prompt":
        context += f"Model description: {model.value}. "
    else:
        context += f"Use the provided model image as reference (lock strength {model_lock}%). "

    product = ""
    if product_name:
        product += f"Product Name: {product_name}. "
    if product_features:
        product += f"Key Features/Highlights: {product_features}. "

    lines = [
        "Professional Fashion Lookbook Photography. 8k resolution, highly detailed.",
        f"Product: See first image. {product}".rstrip(),
        context.rstrip(),
        f"Task: {_shot_instruction(shot_type)}",
    ]
    if guidance:
        lines.append(f"EXPERT PHOTOGRAPHY RULES: {guidance}")
    lines += ["Ensure high quality, correct lighting, and realistic textures.", NEGATIVE_PROMPT]
    return "\n".join(lines)
