from __future__ import annotations

import re
from typing import List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

Occasion = Literal["Street", "Work", "Gym", "Date", "Travel"]
Fit = Literal["Slim", "Regular", "Oversized"]
Weather = Literal["Warm", "Cold", "Rain"]
Budget = Literal["$", "$$", "$$$"]
VariationName = Literal["Minimal", "Street", "Elevated"]
BodyZone = Literal["head", "torso", "legs", "feet", "accessories"]

VARIATION_NAMES: tuple[str, ...] = ("Minimal", "Street", "Elevated")
BODY_ZONES: tuple[str, ...] = ("head", "torso", "legs", "feet", "accessories")

# FileReader.readAsDataURL() output, optionally with extra parameters before ;base64
DATA_URL_RE = re.compile(r"^data:image/[a-zA-Z0-9+]+(;[^;]+)*;base64,[A-Za-z0-9+/=\s]+$")
IMAGE_URL_SCHEMES = {"http", "https", "data", "blob"}


def is_valid_image_url(value: str) -> bool:
    if not value:
        return True
    if value.startswith("data:image/"):
        return bool(DATA_URL_RE.match(value))
    parsed = urlparse(value)
    if parsed.scheme not in IMAGE_URL_SCHEMES:
        return False
    if parsed.scheme in ("http", "https"):
        return bool(parsed.netloc)
    return bool(parsed.netloc or parsed.path)


class UserItem(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    description: str = Field(min_length=1, max_length=500)
    image_url: Optional[str] = Field(default=None, alias="imageUrl")

    @field_validator("image_url")
    @classmethod
    def _check_image_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_image_url(v):
            raise ValueError(
                "Invalid image URL. Must be a valid URL (http/https) or data URL (data:image/...)"
            )
        return v or None


class OutfitPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    occasion: Occasion
    vibe: int = Field(ge=0, le=100, strict=True)  # 0 = minimal, 100 = bold
    fit: Fit
    weather: Weather
    budget: Budget


class OutfitItem(BaseModel):
    item_type: str
    description: str
    color: str
    material: Optional[str] = None
    style_tags: List[str]
    why_it_matches: str
    body_zone: BodyZone


class OutfitVariation(BaseModel):
    name: VariationName
    suggestion: str
    items: List[OutfitItem]
    color_palette: List[str]
    styling_tips: List[str]


class GenerationResult(BaseModel):
    variations: List[OutfitVariation] = Field(min_length=3, max_length=3)


class GenerateOutfitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_items: List[UserItem] = Field(alias="userItems", min_length=1, max_length=20)
    preferences: OutfitPreferences


class OutfitImage(BaseModel):
    id: str
    url: str
    thumbnail: str
    photographer: Optional[str] = None
    photographer_url: Optional[str] = Field(default=None, serialization_alias="photographerUrl")
    description: Optional[str] = None


class SearchOutfitImagesRequest(BaseModel):
    variation: OutfitVariation
    count: int = Field(default=3, ge=1, le=10, strict=True)
