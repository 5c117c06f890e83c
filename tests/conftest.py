import pytest

from stylist.main import app
from stylist.routers import outfits as outfits_router
from stylist.services.rate_limit import RateLimitStore

PROVIDER_ENV = (
    "AI_PROVIDER",
    "GOOGLE_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "GROQ_API_KEY",
    "HUGGINGFACE_API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in PROVIDER_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def fresh_rate_limiter():
    store = RateLimitStore()
    app.dependency_overrides[outfits_router.get_rate_limiter] = lambda: store
    yield store
    app.dependency_overrides.clear()
