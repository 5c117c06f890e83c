from __future__ import annotations

from stylist.llm.prompts import SYSTEM_PROMPT
from stylist.llm.providers.base import HTTPOutfitProvider

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(HTTPOutfitProvider):
    name = "anthropic"
    quota_markers = ("quota", "billing", "credit balance")
    retry_statuses = frozenset({429, 503, 529})  # 529: overloaded
    retry_backoff_s = 2.0

    async def _request(self, prompt: str) -> str:
        data = await self._post_json(
            ANTHROPIC_URL,
            headers={
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            payload={
                "model": self.model,
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
                "system": SYSTEM_PROMPT,
                "messages": [{"role": "user", "content": prompt}],
            },
        )
        blocks = data.get("content") if isinstance(data, dict) else None
        if not isinstance(blocks, list):
            return ""
        return "".join(b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type", "text") == "text")
