from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from stylist.client.messages import error_message
from stylist.llm.cancellation import CancellationToken
from stylist.llm.errors import RequestCancelled
from stylist.llm.types import GenerationResult, OutfitPreferences, OutfitVariation, UserItem

logger = logging.getLogger(__name__)

COOLDOWN_MS = 3000


def _retry_after(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("retry-after")
    try:
        return max(0, math.ceil(float(value))) if value else None
    except ValueError:
        return None


class GenerationController:
    """Caller-side guard around ``POST /generate-outfit``.

    One request at a time (extra calls while one is in flight are ignored),
    a cool-down between attempts, and cancellation on teardown. Outcome is
    exposed through ``variations`` / ``error`` / ``loading`` the way a UI
    would bind to them.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        cooldown_ms: int = COOLDOWN_MS,
        timeout_s: float = 120.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.cooldown_ms = cooldown_ms
        self.timeout_s = timeout_s
        self._http = http_client
        self._owns_http = http_client is None
        self._clock = clock
        self.variations: List[OutfitVariation] = []
        self.error: Optional[str] = None
        self.loading = False
        self.last_attempt_at: Optional[float] = None
        self._token: Optional[CancellationToken] = None

    @property
    def in_flight(self) -> bool:
        return self._token is not None

    def remaining_cooldown_ms(self) -> float:
        if self.last_attempt_at is None:
            return 0.0
        elapsed_ms = (self._clock() - self.last_attempt_at) * 1000
        return max(0.0, self.cooldown_ms - elapsed_ms)

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout_s)
        return self._http

    async def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        return await self._client().post(f"{self.base_url}/generate-outfit", json=payload, timeout=self.timeout_s)

    async def generate(
        self, user_items: Sequence[UserItem], preferences: OutfitPreferences
    ) -> Optional[GenerationResult]:
        if not user_items:
            self.error = "Please add at least one item"
            return None
        if self.in_flight:
            logger.debug("generate ignored: request already in flight")
            return None
        remaining_ms = self.remaining_cooldown_ms()
        if remaining_ms > 0:
            seconds = math.ceil(remaining_ms / 1000)
            self.error = f"Please wait {seconds} second{'' if seconds == 1 else 's'} before trying again."
            return None

        previous_attempt = self.last_attempt_at
        attempt_at = self._clock()
        self.last_attempt_at = attempt_at
        token = CancellationToken()
        self._token = token
        self.loading = True
        self.error = None
        payload = {
            "userItems": [i.model_dump(by_alias=True, exclude_none=True) for i in user_items],
            "preferences": preferences.model_dump(),
        }
        try:
            response = await token.guard(self._post(payload))
            try:
                body = response.json()
            except ValueError:
                body = None
            if response.status_code >= 400:
                self.error = error_message(
                    response.status_code, body if isinstance(body, dict) else None, _retry_after(response)
                )
                return None
            result = GenerationResult.model_validate(body)
            self.variations = result.variations
            return result
        except RequestCancelled:
            # an aborted attempt neither reports an error nor consumes the cool-down
            if self.last_attempt_at == attempt_at:
                self.last_attempt_at = previous_attempt
            logger.info("generate cancelled")
            return None
        except httpx.HTTPError as e:
            logger.warning("generate network error: %s", e)
            self.error = error_message(0, {"code": "NETWORK_ERROR"})
            return None
        except ValidationError as e:
            logger.warning("generate got malformed success payload: %s", e)
            self.error = error_message(200, {"code": "INVALID_RESPONSE"})
            return None
        finally:
            if self._token is token:
                self._token = None
                self.loading = False

    def cancel(self) -> None:
        if self._token is not None:
            self._token.cancel()

    def reset(self) -> None:
        """Navigation away: abort anything in flight and forget session state."""

        self.cancel()
        self.last_attempt_at = None
        self.variations = []
        self.error = None

    async def aclose(self) -> None:
        self.cancel()
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
