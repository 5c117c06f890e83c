import httpx

from stylist.core.config import Settings
from stylist.llm.types import OutfitVariation
from stylist.services.image_search import ImageSearchService, build_search_query, source_fallback
from tests.fixtures.outfit_fixtures import variation

PEXELS_PHOTO = {
    "id": 101,
    "alt": "Man in leather jacket",
    "photographer": "Ana",
    "photographer_url": "https://www.pexels.com/@ana",
    "src": {"large": "https://images.pexels.com/101-large.jpg", "medium": "https://images.pexels.com/101-medium.jpg"},
}
UNSPLASH_PHOTO = {
    "id": "u1",
    "description": None,
    "alt_description": "street outfit",
    "urls": {"regular": "https://images.unsplash.com/u1", "thumb": "https://images.unsplash.com/u1-thumb"},
    "user": {"name": "Ben", "links": {"html": "https://unsplash.com/@ben"}},
}


def street():
    return OutfitVariation.model_validate(variation("Street"))


def service(handler, **keys):
    cfg = Settings(_env_file=None, **keys)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ImageSearchService(cfg=cfg, http_client=client)


def test_search_query_mentions_style_and_items():
    assert build_search_query(street()) == (
        "Street style black leather jacket white leather sneakers outfit fashion"
    )


async def test_pexels_is_tried_first():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"photos": [PEXELS_PHOTO]})

    images = await service(handler, PEXELS_API_KEY="p", UNSPLASH_ACCESS_KEY="u").search(street(), 1)
    assert [i.id for i in images] == ["101"]
    assert images[0].thumbnail.endswith("101-medium.jpg")
    assert images[0].photographer_url == "https://www.pexels.com/@ana"
    assert len(seen) == 1
    assert seen[0].headers["authorization"] == "p"
    assert seen[0].url.params["per_page"] == "1"


async def test_unsplash_used_when_pexels_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "api.pexels.com":
            return httpx.Response(500, json={"error": "boom"})
        assert request.headers["authorization"] == "Client-ID u"
        return httpx.Response(200, json={"results": [UNSPLASH_PHOTO]})

    images = await service(handler, PEXELS_API_KEY="p", UNSPLASH_ACCESS_KEY="u").search(street(), 3)
    assert len(images) == 1
    assert images[0].photographer == "Ben"
    assert images[0].description == "street outfit"


async def test_source_fallback_when_every_provider_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable")

    images = await service(handler, UNSPLASH_ACCESS_KEY="u").search(street(), 2)
    assert len(images) == 2
    assert images[0].description == "Outfit inspiration: street,black,leather"


async def test_no_keys_goes_straight_to_source_urls():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    images = await service(handler).search(street(), 3)
    assert len(images) == 3
    assert len({i.url for i in images}) == 3


def test_source_fallback_defaults_when_only_stopwords():
    images = source_fallback("style outfit fashion", 1)
    assert images[0].description == "Outfit inspiration: fashion outfit"
    assert images[0].url.startswith("https://source.unsplash.com/600x800/?")
