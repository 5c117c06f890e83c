import json
import logging
from functools import partial
from typing import Any, Awaitable, Callable, Optional, Sequence

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from stylist.core.config import Settings, settings
from stylist.llm.errors import (
    ConfigurationError,
    InvalidResponseError,
    ProviderError,
    QuotaExceededError,
)
from stylist.llm.orchestrator import generate_outfit
from stylist.llm.types import (
    GenerateOutfitRequest,
    GenerationResult,
    OutfitPreferences,
    SearchOutfitImagesRequest,
    UserItem,
)
from stylist.schemas.outfits import ApiErrorOut, GenerateOutfitOut, SearchOutfitImagesOut
from stylist.services.image_search import MAX_QUERY_LEN, ImageSearchService, item_terms
from stylist.services.rate_limit import RateLimitStore, client_ip

logger = logging.getLogger(__name__)

router = APIRouter(tags=["outfits"])

QUOTA_RETRY_AFTER_S = 60
UPSTREAM_RATE_LIMIT_RETRY_AFTER_S = 30

Generator = Callable[[Sequence[UserItem], OutfitPreferences], Awaitable[GenerationResult]]

_rate_limiter = RateLimitStore(sweep_interval_s=settings.RATE_LIMIT_SWEEP_S)


def get_settings() -> Settings:
    return settings


def get_rate_limiter() -> RateLimitStore:
    return _rate_limiter


def get_generator(cfg: Settings = Depends(get_settings)) -> Generator:
    return partial(generate_outfit, settings=cfg)


def get_image_search() -> ImageSearchService:
    return ImageSearchService()


def _error(status: int, error: str, code: Optional[str] = None, retry_after: Optional[int] = None) -> JSONResponse:
    headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
    return JSONResponse(ApiErrorOut(error=error, code=code).model_dump(exclude_none=True), status_code=status, headers=headers)


async def _read_body(request: Request, model: type[BaseModel]) -> Any:
    """Parsed model, or a 400 response naming the first offending field."""

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, "Invalid JSON in request body", "VALIDATION_ERROR")
    try:
        return model.model_validate(body)
    except ValidationError as e:
        first = e.errors()[0]
        path = ".".join(str(p) for p in first["loc"])
        message = f"{path}: {first['msg']}" if path else first["msg"]
        return _error(400, message, "VALIDATION_ERROR")


def _generation_error(exc: Exception) -> JSONResponse:
    if isinstance(exc, ConfigurationError):
        logger.error("outfit generation misconfigured: %s", exc)
        return _error(500, str(exc), exc.code)
    if isinstance(exc, QuotaExceededError):
        logger.warning("outfit generation quota exceeded: %s", exc)
        return _error(503, "AI service quota exceeded", exc.code, retry_after=QUOTA_RETRY_AFTER_S)
    if isinstance(exc, ProviderError):
        logger.warning("outfit generation upstream failure: %s", exc)
        retry_after = UPSTREAM_RATE_LIMIT_RETRY_AFTER_S if exc.status == 429 else None
        return _error(503, "AI service is temporarily unavailable", exc.code, retry_after=retry_after)
    if isinstance(exc, InvalidResponseError):
        logger.warning("outfit generation invalid response: %s", exc)
        return _error(500, "AI service returned an invalid response", exc.code)
    logger.exception("Generate outfit API error", exc_info=exc)
    return _error(500, "Failed to generate outfit")


@router.post(
    "/generate-outfit",
    response_model=GenerateOutfitOut,
    responses={400: {"model": ApiErrorOut}, 429: {"model": ApiErrorOut}, 500: {"model": ApiErrorOut}, 503: {"model": ApiErrorOut}},
)
async def generate_outfit_route(
    request: Request,
    cfg: Settings = Depends(get_settings),
    limiter: RateLimitStore = Depends(get_rate_limiter),
    generate: Generator = Depends(get_generator),
):
    limit = limiter.hit(
        f"generate:{client_ip(request)}", cfg.RATE_LIMIT_GENERATE_MAX, cfg.RATE_LIMIT_GENERATE_WINDOW_S
    )
    if not limit.allowed:
        return _error(429, "Too many requests. Please try again later.", "RATE_LIMITED", retry_after=limit.retry_after)

    payload = await _read_body(request, GenerateOutfitRequest)
    if isinstance(payload, JSONResponse):
        return payload

    try:
        result = await generate(payload.user_items, payload.preferences)
    except Exception as e:
        return _generation_error(e)
    return GenerateOutfitOut(variations=result.variations)


@router.post(
    "/search-outfit-images",
    response_model=SearchOutfitImagesOut,
    responses={400: {"model": ApiErrorOut}, 429: {"model": ApiErrorOut}},
)
async def search_outfit_images_route(
    request: Request,
    cfg: Settings = Depends(get_settings),
    limiter: RateLimitStore = Depends(get_rate_limiter),
    service: ImageSearchService = Depends(get_image_search),
):
    limit = limiter.hit(f"images:{client_ip(request)}", cfg.RATE_LIMIT_IMAGES_MAX, cfg.RATE_LIMIT_IMAGES_WINDOW_S)
    if not limit.allowed:
        return _error(429, "Too many requests. Please try again later.", "RATE_LIMITED", retry_after=limit.retry_after)

    payload = await _read_body(request, SearchOutfitImagesRequest)
    if isinstance(payload, JSONResponse):
        return payload
    if len(item_terms(payload.variation)) > MAX_QUERY_LEN:
        return _error(400, "Search query too long", "QUERY_TOO_LONG")

    images = await service.search(payload.variation, payload.count)
    return SearchOutfitImagesOut(images=images)
