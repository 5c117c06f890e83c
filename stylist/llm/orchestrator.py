from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import httpx

from stylist.core.config import Settings, settings as default_settings
from stylist.llm.cancellation import CancellationToken
from stylist.llm.errors import NoProvidersConfigured, QuotaExceededError
from stylist.llm.prompts import build_outfit_prompt
from stylist.llm.providers import OutfitProvider, ProviderRegistry
from stylist.llm.types import GenerationResult, OutfitPreferences, UserItem
from stylist.llm.validate import missing_user_items

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "google"
# fallback priority after the preferred provider
PROVIDER_PRIORITY = ("google", "openai", "anthropic", "groq", "huggingface")
CREDENTIAL_VARS = {
    "google": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "groq": "GROQ_API_KEY",
    "huggingface": "HUGGINGFACE_API_KEY",
}


def _no_providers_message() -> str:
    names = [CREDENTIAL_VARS[p] for p in PROVIDER_PRIORITY]
    return f"No AI API key configured. Set {', '.join(names[:-1])}, or {names[-1]}"


def preferred_provider(cfg: Settings) -> str:
    name = (cfg.AI_PROVIDER or "").strip().lower()
    return name if name in PROVIDER_PRIORITY else DEFAULT_PROVIDER


def build_provider_order(cfg: Settings) -> List[str]:
    keys = cfg.provider_keys
    order: List[str] = []
    for name in (preferred_provider(cfg), *PROVIDER_PRIORITY):
        if name not in order and (keys.get(name) or "").strip():
            order.append(name)
    return order


def create_provider(name: str, cfg: Settings, *, http_client: Optional[httpx.AsyncClient] = None) -> OutfitProvider:
    factory = ProviderRegistry.get(name)
    return factory(
        (cfg.provider_keys[name] or "").strip(),
        getattr(cfg, f"{name.upper()}_MODEL"),
        http_client=http_client,
        timeout_ms=cfg.LLM_TIMEOUT_MS,
        max_attempts=cfg.LLM_MAX_ATTEMPTS,
        timeout_backoff_s=cfg.LLM_RETRY_BACKOFF_MS / 1000.0,
        temperature=cfg.LLM_TEMPERATURE,
        max_tokens=cfg.LLM_MAX_TOKENS,
        require_distinct_names=cfg.OUTFIT_REQUIRE_DISTINCT_NAMES,
    )


async def run_with_fallback(
    prompt: str, providers: Sequence[OutfitProvider], *, token: Optional[CancellationToken] = None
) -> GenerationResult:
    """Try providers strictly one after another; only quota errors move on to the next one."""

    if not providers:
        raise NoProvidersConfigured(_no_providers_message())
    last = len(providers) - 1
    for i, provider in enumerate(providers):
        try:
            return await provider.generate(prompt, token=token)
        except QuotaExceededError:
            if i == last:
                raise
            logger.warning("%s quota exceeded, trying next provider (%s)", provider.name, providers[i + 1].name)
    raise AssertionError("unreachable")


async def generate_outfit(
    user_items: Sequence[UserItem],
    preferences: OutfitPreferences,
    *,
    settings: Optional[Settings] = None,
    providers: Optional[Sequence[OutfitProvider]] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    token: Optional[CancellationToken] = None,
) -> GenerationResult:
    """Prompt, then try each eligible provider until one returns a valid result.

    ``providers`` bypasses the settings-driven order, mainly for callers that
    build their own clients.
    """

    cfg = settings or default_settings
    prompt = build_outfit_prompt(user_items, preferences)
    if providers is None:
        order = build_provider_order(cfg)
        if not order:
            raise NoProvidersConfigured(_no_providers_message())
        providers = [create_provider(name, cfg, http_client=http_client) for name in order]
    logger.info("outfit generation providers=%s items=%s", ",".join(p.name for p in providers), len(user_items))

    result = await run_with_fallback(prompt, providers, token=token)

    missing = missing_user_items(result, user_items)
    if missing:
        logger.warning("outfit generation dropped user items: %s", missing)
    return result
