from __future__ import annotations

from typing import Any

from stylist.llm.prompts import SYSTEM_PROMPT
from stylist.llm.providers.base import HTTPOutfitProvider, UpstreamHTTPError

HF_INFERENCE_URL = "https://api-inference.huggingface.co/models"


def generated_text(data: Any) -> str:
    """Pull the completion out of whichever envelope the endpoint answered with."""

    if isinstance(data, str):
        return data
    if isinstance(data, list):
        return generated_text(data[0]) if data else ""
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            if isinstance(message, dict):
                return message.get("content") or ""
        text = data.get("generated_text")
        if isinstance(text, str):
            return text
    return ""


class HuggingFaceProvider(HTTPOutfitProvider):
    name = "huggingface"
    quota_statuses = frozenset({402})
    quota_markers = ("quota", "billing", "monthly included credits")
    # free-tier models cold-start; 503 means "loading", give it time
    retry_backoff_s = 5.0
    max_retry_after_s = 60.0

    async def _request(self, prompt: str) -> str:
        try:
            data = await self._post_json(
                f"{HF_INFERENCE_URL}/{self.model}",
                headers={"Authorization": f"Bearer {self.api_key}", "content-type": "application/json"},
                payload={
                    "inputs": f"{SYSTEM_PROMPT}\n\n{prompt}",
                    "parameters": {
                        "max_new_tokens": self.max_tokens,
                        "temperature": self.temperature,
                        "return_full_text": False,
                    },
                    "options": {"wait_for_model": False},
                },
            )
        except UpstreamHTTPError as e:
            # {"error": "Model ... is currently loading", "estimated_time": 20.0}
            if e.status == 503 and e.retry_after is None and isinstance(e.body, dict):
                estimated = e.body.get("estimated_time")
                if isinstance(estimated, (int, float)):
                    e.retry_after = float(estimated)
            raise
        return generated_text(data)
