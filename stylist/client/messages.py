from __future__ import annotations

from typing import Any, Mapping, Optional

DEFAULT_MESSAGE = "Failed to generate outfit"


def _wait_hint(retry_after: Optional[int], fallback: str) -> str:
    if retry_after is None or retry_after <= 0:
        return fallback
    unit = "second" if retry_after == 1 else "seconds"
    return f"in {retry_after} {unit}"


def error_message(status: int, body: Optional[Mapping[str, Any]] = None, retry_after: Optional[int] = None) -> str:
    """User-facing text for a failed generation call."""

    body = body or {}
    code = body.get("code")
    server_error = body.get("error") if isinstance(body.get("error"), str) else None

    if code == "VALIDATION_ERROR":
        return f"Invalid input: {server_error}" if server_error else "Invalid input. Please check your items."
    if code == "CONFIG_ERROR":
        return "AI service is not properly configured. Please contact support."
    if code == "NO_PROVIDERS":
        return "No AI provider is configured for outfit generation. Please contact support."
    if code == "QUOTA_EXCEEDED":
        return f"AI service quota exceeded. Please try again {_wait_hint(retry_after, 'later')}."
    if code == "RATE_LIMITED":
        return f"Too many requests. Please try again {_wait_hint(retry_after, 'shortly')}."
    if code == "UPSTREAM_UNAVAILABLE":
        return f"The AI service is temporarily unavailable. Please try again {_wait_hint(retry_after, 'later')}."
    if code == "INVALID_RESPONSE":
        return "The AI returned an unexpected response. Please try again."
    if code == "NETWORK_ERROR":
        return "Network error. Please check your connection and try again."

    if status == 400:
        return "Invalid request. Please check your input."
    if status == 401:
        return "Authentication failed. Please sign in again."
    if status == 403:
        return "You don't have permission to do that."
    if status == 404:
        return "The outfit service could not be found."
    if status >= 500:
        return "Server error. Please try again later."
    return server_error or DEFAULT_MESSAGE
