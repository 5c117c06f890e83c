from pydantic import BaseModel
from typing import List, Optional

from stylist.llm.types import OutfitImage, OutfitVariation


class ApiErrorOut(BaseModel):
    error: str
    code: Optional[str] = None


class GenerateOutfitOut(BaseModel):
    variations: List[OutfitVariation]


class SearchOutfitImagesOut(BaseModel):
    images: List[OutfitImage]
