import asyncio
import json

import httpx
import pytest

from stylist.llm.cancellation import CancellationToken
from stylist.llm.errors import (
    InvalidResponseError,
    ProviderError,
    ProviderUnavailableError,
    QuotaExceededError,
    RequestCancelled,
)
from stylist.llm.providers import (
    AnthropicProvider,
    GoogleProvider,
    GroqProvider,
    HuggingFaceProvider,
    OpenAIProvider,
)
from stylist.llm.providers import base
from stylist.llm.providers.huggingface import generated_text
from tests.fixtures.outfit_fixtures import valid_generation_text


@pytest.fixture
def sleeps(monkeypatch):
    """Record backoff delays instead of waiting them out."""

    delays = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(base.asyncio, "sleep", fake_sleep)
    return delays


def scripted(*responses):
    """MockTransport client answering with ``responses`` in order (the last one repeats)."""

    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        step = responses[min(len(calls), len(responses)) - 1]
        if isinstance(step, Exception):
            raise step
        return httpx.Response(step.status_code, headers=step.headers, content=step.content)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler)), calls


def google_ok(text=None):
    text = valid_generation_text() if text is None else text
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def google_error(status, message, code=None, headers=None):
    return httpx.Response(
        status, json={"error": {"code": status, "message": message, "status": code}}, headers=headers
    )


async def test_google_success_with_fenced_output():
    client, calls = scripted(google_ok("Sure!\n```json\n" + valid_generation_text() + "\n```"))
    provider = GoogleProvider("g-key", "gemini-pro", http_client=client)
    result = await provider.generate("prompt")
    assert [v.name for v in result.variations] == ["Minimal", "Street", "Elevated"]
    assert len(calls) == 1
    assert calls[0].headers["x-goog-api-key"] == "g-key"
    assert calls[0].url.path.endswith("/gemini-pro:generateContent")


async def test_503_is_retried_until_success(sleeps):
    client, calls = scripted(google_error(503, "overloaded", "UNAVAILABLE"), google_ok())
    result = await GoogleProvider("k", "gemini-pro", http_client=client).generate("prompt")
    assert len(result.variations) == 3
    assert len(calls) == 2
    assert sleeps == [1.0]


async def test_429_exhausts_the_attempt_budget(sleeps):
    client, calls = scripted(google_error(429, "Too many requests", "UNAVAILABLE"))
    with pytest.raises(ProviderUnavailableError) as exc:
        await GoogleProvider("k", "gemini-pro", http_client=client).generate("prompt")
    assert exc.value.status == 429
    assert not exc.value.is_quota_error
    assert len(calls) == 3
    assert sleeps == [1.0, 2.0]


async def test_retry_after_header_stretches_the_backoff(sleeps):
    client, calls = scripted(google_error(429, "slow down", headers={"Retry-After": "7"}), google_ok())
    await GoogleProvider("k", "gemini-pro", http_client=client).generate("prompt")
    assert sleeps == [7.0]


async def test_resource_exhausted_is_a_quota_error_without_retry(sleeps):
    client, calls = scripted(google_error(429, "Resource has been exhausted", "RESOURCE_EXHAUSTED"))
    with pytest.raises(QuotaExceededError) as exc:
        await GoogleProvider("k", "gemini-pro", http_client=client).generate("prompt")
    assert exc.value.is_quota_error
    assert exc.value.provider == "google"
    assert len(calls) == 1
    assert sleeps == []


async def test_quota_wording_in_message_is_a_quota_error():
    client, calls = scripted(google_error(403, "You exceeded your current quota"))
    with pytest.raises(QuotaExceededError):
        await GoogleProvider("k", "gemini-pro", http_client=client).generate("prompt")
    assert len(calls) == 1


async def test_client_error_is_not_retried():
    client, calls = scripted(google_error(400, "API key not valid", "INVALID_ARGUMENT"))
    with pytest.raises(ProviderError) as exc:
        await GoogleProvider("k", "gemini-pro", http_client=client).generate("prompt")
    assert type(exc.value) is ProviderError
    assert exc.value.status == 400
    assert len(calls) == 1


async def test_timeouts_retry_with_linear_backoff(sleeps):
    client, calls = scripted(httpx.ReadTimeout("read timed out"), google_ok())
    result = await GoogleProvider("k", "gemini-pro", http_client=client).generate("prompt")
    assert len(result.variations) == 3
    assert len(calls) == 2
    assert sleeps == [1.0]


async def test_repeated_timeouts_end_as_unavailable(sleeps):
    client, calls = scripted(httpx.ReadTimeout("read timed out"))
    with pytest.raises(ProviderUnavailableError) as exc:
        await GoogleProvider("k", "gemini-pro", http_client=client, timeout_backoff_s=0.5).generate("prompt")
    assert exc.value.status is None
    assert len(calls) == 3
    assert sleeps == [0.5, 1.0]


async def test_unparseable_output_is_not_retried():
    client, calls = scripted(google_ok("I cannot help with that request."))
    with pytest.raises(InvalidResponseError):
        await GoogleProvider("k", "gemini-pro", http_client=client).generate("prompt")
    assert len(calls) == 1


async def test_empty_output_is_invalid():
    client, _ = scripted(google_ok(""))
    with pytest.raises(InvalidResponseError):
        await GoogleProvider("k", "gemini-pro", http_client=client).generate("prompt")


async def test_already_cancelled_token_skips_the_call():
    client, calls = scripted(google_ok())
    token = CancellationToken()
    token.cancel()
    with pytest.raises(RequestCancelled):
        await GoogleProvider("k", "gemini-pro", http_client=client).generate("prompt", token=token)
    assert calls == []


async def test_cancel_aborts_a_call_in_flight():
    entered = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        entered.set()
        await asyncio.Event().wait()
        return google_ok()

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    token = CancellationToken()
    task = asyncio.create_task(GoogleProvider("k", "gemini-pro", http_client=client).generate("prompt", token=token))
    await entered.wait()
    token.cancel()
    with pytest.raises(RequestCancelled):
        await task


async def test_anthropic_request_shape_and_529_retry(sleeps):
    ok = httpx.Response(200, json={"content": [{"type": "text", "text": valid_generation_text()}]})
    overloaded = httpx.Response(529, json={"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}})
    client, calls = scripted(overloaded, ok)
    result = await AnthropicProvider("a-key", "claude-3-5-sonnet-20241022", http_client=client).generate("prompt")
    assert len(result.variations) == 3
    assert sleeps == [2.0]
    request = calls[-1]
    assert request.headers["x-api-key"] == "a-key"
    assert request.headers["anthropic-version"] == "2023-06-01"
    body = json.loads(request.content)
    assert body["messages"] == [{"role": "user", "content": "prompt"}]
    assert body["system"]


async def test_anthropic_credit_balance_is_quota():
    low = httpx.Response(
        400,
        json={"type": "error", "error": {"type": "invalid_request_error", "message": "Your credit balance is too low"}},
    )
    client, calls = scripted(low)
    with pytest.raises(QuotaExceededError):
        await AnthropicProvider("a-key", "claude", http_client=client).generate("prompt")
    assert len(calls) == 1


@pytest.mark.parametrize(
    "data, expected",
    [
        ("raw text", "raw text"),
        ([{"generated_text": "from list"}], "from list"),
        ({"generated_text": "from dict"}, "from dict"),
        ({"choices": [{"message": {"content": "chat style"}}]}, "chat style"),
        ([], ""),
        ({}, ""),
        (None, ""),
    ],
)
def test_huggingface_envelopes(data, expected):
    assert generated_text(data) == expected


async def test_huggingface_loading_model_waits_estimated_time(sleeps):
    loading = httpx.Response(503, json={"error": "Model is currently loading", "estimated_time": 20.0})
    ok = httpx.Response(200, json=[{"generated_text": valid_generation_text()}])
    client, calls = scripted(loading, ok)
    provider = HuggingFaceProvider("hf-key", "mistralai/Mistral-7B-Instruct-v0.3", http_client=client)
    result = await provider.generate("prompt")
    assert len(result.variations) == 3
    assert sleeps == [20.0]
    assert calls[0].headers["authorization"] == "Bearer hf-key"


async def test_huggingface_payment_required_is_quota():
    client, calls = scripted(httpx.Response(402, json={"error": "You have exceeded your monthly included credits"}))
    with pytest.raises(QuotaExceededError):
        await HuggingFaceProvider("hf-key", "m", http_client=client).generate("prompt")
    assert len(calls) == 1


def chat_completion(content):
    return httpx.Response(
        200,
        json={
            "id": "chatcmpl-1",
            "object": "chat.completion",
            "created": 0,
            "model": "gpt-4o-mini",
            "choices": [
                {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
            ],
        },
    )


async def test_openai_success():
    client, calls = scripted(chat_completion(valid_generation_text()))
    result = await OpenAIProvider("o-key", "gpt-4o-mini", http_client=client).generate("prompt")
    assert len(result.variations) == 3
    assert calls[0].url.host == "api.openai.com"
    assert calls[0].headers["authorization"] == "Bearer o-key"
    assert json.loads(calls[0].content)["response_format"] == {"type": "json_object"}


async def test_openai_insufficient_quota():
    quota = httpx.Response(
        429,
        json={"error": {"message": "You exceeded your current plan", "type": "insufficient_quota", "code": "insufficient_quota"}},
    )
    client, calls = scripted(quota)
    with pytest.raises(QuotaExceededError):
        await OpenAIProvider("o-key", "gpt-4o-mini", http_client=client).generate("prompt")
    assert len(calls) == 1


async def test_openai_rate_limit_retries(sleeps):
    limited = httpx.Response(
        429, json={"error": {"message": "Rate limit reached", "type": "requests", "code": "rate_limit_exceeded"}}
    )
    client, calls = scripted(limited, chat_completion(valid_generation_text()))
    result = await OpenAIProvider("o-key", "gpt-4o-mini", http_client=client).generate("prompt")
    assert len(result.variations) == 3
    assert len(calls) == 2
    assert sleeps == [1.0]


async def test_groq_uses_its_own_endpoint():
    client, calls = scripted(chat_completion(valid_generation_text()))
    await GroqProvider("gq-key", "llama-3.1-70b-versatile", http_client=client).generate("prompt")
    assert calls[0].url.host == "api.groq.com"
    assert calls[0].url.path == "/openai/v1/chat/completions"
