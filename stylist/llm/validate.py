from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError

from stylist.llm.errors import InvalidResponseError, SchemaValidationError
from stylist.llm.extract import extract_json
from stylist.llm.normalize import normalize_response
from stylist.llm.types import GenerationResult, UserItem

logger = logging.getLogger(__name__)


def _path(loc: Sequence[Any]) -> str:
    return ".".join(str(p) for p in loc) or "root"


def _issues(err: ValidationError, value: Any) -> List[str]:
    issues = []
    for e in err.errors():
        if tuple(e["loc"]) == ("variations",) and e["type"] in ("too_short", "too_long"):
            got = len(value.get("variations") or [])
            issues.append(f"variations: expected exactly 3 variations, got {got}")
            continue
        issues.append(f"{_path(e['loc'])}: {e['msg']}")
    return issues


def validate_generation(value: Any, *, require_distinct_names: bool = False) -> GenerationResult:
    """Gate between untrusted model output and the rest of the system.

    Raises SchemaValidationError with every violation joined by ``"; "``.
    """

    if not isinstance(value, dict):
        raise SchemaValidationError([f"root: expected an object, got {type(value).__name__}"])
    if not isinstance(value.get("variations"), list):
        raise SchemaValidationError(["variations: expected an array"])
    try:
        result = GenerationResult.model_validate(value)
    except ValidationError as e:
        raise SchemaValidationError(_issues(e, value)) from e

    if require_distinct_names:
        names = [v.name for v in result.variations]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise SchemaValidationError([f"variations.name: duplicate variation name {n}" for n in dupes])
    return result


def parse_generation(raw: str, *, source: str = "provider", require_distinct_names: bool = False) -> GenerationResult:
    text = extract_json(raw)
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, RecursionError) as e:
        logger.warning("llm:%s unparseable response (%s chars): %s", source, len(text), e)
        raise InvalidResponseError(f"Invalid JSON response from {source}") from e
    return validate_generation(normalize_response(data), require_distinct_names=require_distinct_names)


def missing_user_items(result: GenerationResult, user_items: Sequence[UserItem]) -> Dict[str, List[str]]:
    """Per variation name, ids of user items no generated item appears to reference."""

    missing: Dict[str, List[str]] = {}
    for variation in result.variations:
        descriptions = [i.description.lower() for i in variation.items]
        absent = []
        for user_item in user_items:
            needle = user_item.description.lower().strip()
            if not any(needle in d or (d and d in needle) for d in descriptions):
                absent.append(user_item.id)
        if absent:
            missing[variation.name] = absent
    return missing
