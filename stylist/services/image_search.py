from __future__ import annotations

import logging
import time
from typing import List, Optional, Protocol
from urllib.parse import quote

import httpx

from stylist.core.config import Settings, settings as default_settings
from stylist.llm.types import OutfitImage, OutfitVariation

logger = logging.getLogger(__name__)

PEXELS_URL = "https://api.pexels.com/v1/search"
UNSPLASH_URL = "https://api.unsplash.com/search/photos"
SOURCE_STOPWORDS = {"style", "outfit", "fashion", "wear", "wearing"}
MAX_QUERY_LEN = 500


class ImageSearchProvider(Protocol):
    name: str

    async def search(self, query: str, count: int) -> List[OutfitImage]:
        ...


def item_terms(variation: OutfitVariation) -> str:
    return " ".join(item.description for item in variation.items)


def build_search_query(variation: OutfitVariation) -> str:
    return f"{variation.name} style {item_terms(variation)} outfit fashion".strip()


class _HTTPImageProvider:
    name = "base"

    def __init__(self, api_key: str, *, http_client: Optional[httpx.AsyncClient] = None, timeout_ms: int = 10000):
        self.api_key = api_key
        self.http_client = http_client
        self.timeout_ms = timeout_ms

    async def _get(self, url: str, params: dict, headers: dict) -> dict:
        timeout = self.timeout_ms / 1000.0
        if self.http_client is not None:
            resp = await self.http_client.get(url, params=params, headers=headers, timeout=timeout)
        else:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.get(url, params=params, headers=headers)
        resp.raise_for_status()
        return resp.json()


class PexelsImageProvider(_HTTPImageProvider):
    name = "pexels"

    async def search(self, query: str, count: int) -> List[OutfitImage]:
        data = await self._get(
            PEXELS_URL,
            {"query": query, "per_page": count, "orientation": "portrait"},
            {"Authorization": self.api_key},
        )
        return [
            OutfitImage(
                id=str(p["id"]),
                url=p["src"]["large"],
                thumbnail=p["src"]["medium"],
                photographer=p.get("photographer"),
                photographer_url=p.get("photographer_url"),
                description=p.get("alt") or None,
            )
            for p in data.get("photos", [])
        ]


class UnsplashImageProvider(_HTTPImageProvider):
    name = "unsplash"

    async def search(self, query: str, count: int) -> List[OutfitImage]:
        data = await self._get(
            UNSPLASH_URL,
            {"query": query, "per_page": count, "orientation": "portrait"},
            {"Authorization": f"Client-ID {self.api_key}"},
        )
        return [
            OutfitImage(
                id=str(p["id"]),
                url=p["urls"]["regular"],
                thumbnail=p["urls"]["thumb"],
                photographer=(p.get("user") or {}).get("name"),
                photographer_url=((p.get("user") or {}).get("links") or {}).get("html"),
                description=p.get("description") or p.get("alt_description"),
            )
            for p in data.get("results", [])
        ]


def source_fallback(query: str, count: int) -> List[OutfitImage]:
    """Keyless Unsplash Source URLs built from the first few meaningful terms."""

    terms = [t for t in query.lower().split() if t not in SOURCE_STOPWORDS][:3]
    search_terms = ",".join(terms) or "fashion outfit"
    q = quote(search_terms)
    stamp = int(time.time() * 1000)
    return [
        OutfitImage(
            id=f"unsplash-source-{i}-{stamp}",
            url=f"https://source.unsplash.com/600x800/?{q},fashion&sig={i}",
            thumbnail=f"https://source.unsplash.com/300x400/?{q},fashion&sig={i}",
            description=f"Outfit inspiration: {search_terms}",
        )
        for i in range(count)
    ]


class ImageSearchService:
    def __init__(
        self,
        providers: Optional[List[ImageSearchProvider]] = None,
        *,
        cfg: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if providers is None:
            cfg = cfg or default_settings
            providers = []
            if cfg.PEXELS_API_KEY:
                providers.append(
                    PexelsImageProvider(cfg.PEXELS_API_KEY, http_client=http_client, timeout_ms=cfg.IMAGE_SEARCH_TIMEOUT_MS)
                )
            if cfg.UNSPLASH_ACCESS_KEY:
                providers.append(
                    UnsplashImageProvider(
                        cfg.UNSPLASH_ACCESS_KEY, http_client=http_client, timeout_ms=cfg.IMAGE_SEARCH_TIMEOUT_MS
                    )
                )
        self.providers = providers

    async def search(self, variation: OutfitVariation, count: int = 3) -> List[OutfitImage]:
        query = build_search_query(variation)
        for provider in self.providers:
            try:
                return await provider.search(query, count)
            except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
                logger.warning("image search %s failed, falling back: %s", provider.name, e)
        return source_fallback(query, count)
