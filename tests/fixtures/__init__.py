from .outfit_fixtures import (
    outfit_item,
    variation,
    valid_generation,
    valid_generation_text,
    request_payload,
)

__all__ = [
    "outfit_item",
    "variation",
    "valid_generation",
    "valid_generation_text",
    "request_payload",
]
