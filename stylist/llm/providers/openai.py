from __future__ import annotations

from typing import Any, Optional

import openai
from openai import AsyncOpenAI

from stylist.llm.errors import InvalidResponseError, ProviderError
from stylist.llm.prompts import SYSTEM_PROMPT
from stylist.llm.providers.base import HTTPOutfitProvider, UpstreamHTTPError, UpstreamTimeout, error_fields, parse_retry_after


class OpenAIProvider(HTTPOutfitProvider):
    name = "openai"
    base_url: Optional[str] = None
    quota_codes = frozenset({"insufficient_quota"})

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._client: Optional[AsyncOpenAI] = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            # retries are driven by HTTPOutfitProvider.complete, not the SDK
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                max_retries=0,
                timeout=self.timeout_ms / 1000.0,
                http_client=self.http_client,
            )
        return self._client

    async def _request(self, prompt: str) -> str:
        try:
            resp = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature,
            )
        except openai.APITimeoutError as e:
            raise UpstreamTimeout(str(e)) from e
        except openai.APIStatusError as e:
            message, code = error_fields(e.body)
            raise UpstreamHTTPError(
                e.status_code,
                message or e.message,
                code=code,
                retry_after=parse_retry_after(e.response.headers.get("retry-after")),
            ) from e
        except openai.APIConnectionError as e:
            raise ProviderError(self.name, f"network error: {e}") from e
        if not resp.choices:
            raise InvalidResponseError(f"No response from {self.name} - empty choices")
        return resp.choices[0].message.content or ""


class GroqProvider(OpenAIProvider):
    """Groq speaks the OpenAI chat-completions protocol."""

    name = "groq"
    base_url = "https://api.groq.com/openai/v1"
    quota_codes = frozenset({"insufficient_quota"})
