from __future__ import annotations

from typing import Sequence

from stylist.llm.types import OutfitPreferences, UserItem

SYSTEM_PROMPT = "You are a fashion styling assistant. Always return valid JSON."

OUTPUT_EXAMPLE = """{
  "variations": [
    {
      "name": "Minimal",
      "suggestion": "One or two sentences describing the overall look.",
      "items": [
        {
          "item_type": "shirt",
          "description": "Crisp white button-down shirt",
          "color": "white",
          "material": "cotton",
          "style_tags": ["classic", "tailored", "versatile"],
          "why_it_matches": "Balances the user's items with a clean, neutral base layer.",
          "body_zone": "torso"
        }
      ],
      "color_palette": ["#FFFFFF", "#000000", "#808080"],
      "styling_tips": ["Tuck in the shirt", "Add a slim belt"]
    },
    {"name": "Street", "suggestion": "...", "items": [...], "color_palette": [...], "styling_tips": [...]},
    {"name": "Elevated", "suggestion": "...", "items": [...], "color_palette": [...], "styling_tips": [...]}
  ]
}"""


def _format_items(user_items: Sequence[UserItem]) -> str:
    return "\n".join(
        f"{i}. {item.description}{' (image provided)' if item.image_url else ''}"
        for i, item in enumerate(user_items, start=1)
    )


def build_outfit_prompt(user_items: Sequence[UserItem], preferences: OutfitPreferences) -> str:
    if not user_items:
        raise ValueError("At least one item is required")

    return f"""You are an expert fashion stylist. A user wants outfit recommendations based on items they own or want to style.

USER'S ITEMS (these are LOCKED - must be included in all outfits):
{_format_items(user_items)}

PREFERENCES:
- Occasion: {preferences.occasion}
- Vibe: {preferences.vibe}/100 (0 = Minimal, 100 = Bold)
- Fit: {preferences.fit}
- Weather: {preferences.weather}
- Budget: {preferences.budget}

TASK:
Generate exactly 3 complete outfit variations that:
1. Include ALL user items as anchor pieces
2. Complete the outfit with complementary pieces
3. Match the occasion, vibe, fit, weather, and budget

The 3 variations MUST be named exactly "Minimal", "Street" and "Elevated" (case-sensitive), one of each.

Every item MUST include all of these fields:
- item_type (string)
- description (string)
- color (string)
- style_tags (array of strings)
- why_it_matches (a full sentence explaining how the piece works with the user's items, never empty)
- body_zone (exactly one of "head", "torso", "legs", "feet", "accessories", lowercase)
"material" (string) is optional.

Return a JSON object with this exact structure:
{OUTPUT_EXAMPLE}

IMPORTANT:
- Respond with ONLY the JSON object. No prose before or after it, no markdown, no code fences.
- Each variation must include ALL user items
- Add 3-7 additional items to complete each outfit
- Use hex codes for color_palette
- Ensure all 3 variations are distinct in style"""
