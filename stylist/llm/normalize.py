from __future__ import annotations

from typing import Any, Dict, List

from stylist.llm.types import BODY_ZONES

# Checked in order; the first group with a matching keyword wins.
ZONE_KEYWORDS: List[tuple[str, tuple[str, ...]]] = [
    ("feet", ("shoe", "sneaker", "boot")),
    ("torso", ("shirt", "top", "jacket")),
    ("legs", ("pant", "jean", "short")),
    ("head", ("hat", "cap")),
]


def infer_body_zone(item_type: Any, description: Any) -> str:
    text = " ".join(v for v in (item_type, description) if isinstance(v, str)).lower()
    for zone, keywords in ZONE_KEYWORDS:
        if any(k in text for k in keywords):
            return zone
    return "accessories"


def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _normalize_item(item: Any, style_name: str) -> Any:
    if not isinstance(item, dict):
        return item
    out: Dict[str, Any] = dict(item)

    zone = out.get("body_zone")
    zone = zone.strip().lower() if isinstance(zone, str) else ""
    if zone not in BODY_ZONES:
        zone = infer_body_zone(out.get("item_type"), out.get("description"))
    out["body_zone"] = zone

    why = out.get("why_it_matches")
    if not isinstance(why, str) or not why.strip():
        out["why_it_matches"] = f"Complements the {style_name} style."

    out["style_tags"] = _as_list(out.get("style_tags"))
    return out


def _normalize_variation(variation: Any) -> Any:
    if not isinstance(variation, dict):
        return variation
    out: Dict[str, Any] = dict(variation)
    name = out.get("name")
    style_name = name.strip().lower() if isinstance(name, str) and name.strip() else "outfit"

    items = out.get("items")
    if isinstance(items, list):
        out["items"] = [_normalize_item(i, style_name) for i in items]
    out["styling_tips"] = _as_list(out.get("styling_tips"))
    out["color_palette"] = _as_list(out.get("color_palette"))
    return out


def normalize_response(value: Any) -> Any:
    """Repair semantically invalid fields of parsed model output before validation.

    Works on the raw JSON tree rather than a typed model, since its job is to
    accept shapes the typed model would reject. Never raises; inputs that are
    neither objects nor arrays are returned as-is and the input is not mutated.
    """

    if isinstance(value, list):
        return [normalize_response(v) if isinstance(v, dict) else v for v in value]
    if not isinstance(value, dict):
        return value
    out = dict(value)
    variations = out.get("variations")
    if isinstance(variations, list):
        out["variations"] = [_normalize_variation(v) for v in variations]
    return out
