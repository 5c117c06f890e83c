from stylist.llm.orchestrator import build_provider_order, generate_outfit
from stylist.llm.prompts import build_outfit_prompt
from stylist.llm.validate import parse_generation, validate_generation

__all__ = [
    "build_outfit_prompt",
    "build_provider_order",
    "generate_outfit",
    "parse_generation",
    "validate_generation",
]
