from __future__ import annotations

from typing import Optional


class GenerationError(Exception):
    """Base class for every failure of the outfit generation pipeline."""

    code = "GENERATION_FAILED"


class ConfigurationError(GenerationError):
    code = "CONFIG_ERROR"


class NoProvidersConfigured(ConfigurationError):
    code = "NO_PROVIDERS"


class ProviderError(GenerationError):
    """Terminal failure reported by an upstream provider."""

    code = "UPSTREAM_UNAVAILABLE"
    is_quota_error = False

    def __init__(self, provider: str, message: str, *, status: Optional[int] = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status = status


class QuotaExceededError(ProviderError):
    """Quota or billing ceiling reached; the orchestrator may fail over."""

    code = "QUOTA_EXCEEDED"
    is_quota_error = True


class ProviderUnavailableError(ProviderError):
    """Retry budget exhausted on transient failures (timeout, 429, 503)."""


class InvalidResponseError(GenerationError):
    """Provider output could not be extracted, parsed or validated."""

    code = "INVALID_RESPONSE"


class SchemaValidationError(InvalidResponseError):
    def __init__(self, issues: list[str]):
        super().__init__("; ".join(issues))
        self.issues = issues


class RequestCancelled(GenerationError):
    code = "CANCELLED"
