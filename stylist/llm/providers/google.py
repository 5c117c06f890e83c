from __future__ import annotations

from stylist.llm.prompts import SYSTEM_PROMPT
from stylist.llm.providers.base import HTTPOutfitProvider

GOOGLE_BASE_URL = "https://generativelanguage.googleapis.com/v1/models"


class GoogleProvider(HTTPOutfitProvider):
    name = "google"
    quota_codes = frozenset({"RESOURCE_EXHAUSTED"})

    async def _request(self, prompt: str) -> str:
        data = await self._post_json(
            f"{GOOGLE_BASE_URL}/{self.model}:generateContent",
            headers={"x-goog-api-key": self.api_key, "content-type": "application/json"},
            payload={
                "contents": [{"parts": [{"text": f"{SYSTEM_PROMPT}\n\n{prompt}"}]}],
                "generationConfig": {
                    "temperature": self.temperature,
                    "maxOutputTokens": self.max_tokens,
                },
            },
        )
        try:
            return data["candidates"][0]["content"]["parts"][0]["text"] or ""
        except (KeyError, IndexError, TypeError):
            return ""
