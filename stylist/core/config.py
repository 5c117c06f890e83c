from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List, Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    APP_NAME: str = "Outfit Builder API"
    APP_ENV: str = "dev"
    API_PREFIX: str = ""
    CORS_ORIGINS: str = "*"
    # AI providers: only providers with a non-empty key are eligible
    AI_PROVIDER: str = "google"
    GOOGLE_API_KEY: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None
    ANTHROPIC_API_KEY: Optional[str] = None
    GROQ_API_KEY: Optional[str] = None
    HUGGINGFACE_API_KEY: Optional[str] = None
    GOOGLE_MODEL: str = "gemini-pro"
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-20241022"
    GROQ_MODEL: str = "llama-3.1-70b-versatile"
    HUGGINGFACE_MODEL: str = "mistralai/Mistral-7B-Instruct-v0.3"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 4096
    LLM_TIMEOUT_MS: int = 30000
    LLM_MAX_ATTEMPTS: int = 3
    LLM_RETRY_BACKOFF_MS: int = 1000
    OUTFIT_REQUIRE_DISTINCT_NAMES: bool = False
    # Rate limiting (fixed window per client address)
    RATE_LIMIT_GENERATE_MAX: int = 3
    RATE_LIMIT_GENERATE_WINDOW_S: int = 60
    RATE_LIMIT_IMAGES_MAX: int = 20
    RATE_LIMIT_IMAGES_WINDOW_S: int = 60
    RATE_LIMIT_SWEEP_S: int = 300
    # Image search
    UNSPLASH_ACCESS_KEY: Optional[str] = None
    PEXELS_API_KEY: Optional[str] = None
    IMAGE_SEARCH_TIMEOUT_MS: int = 10000

    @property
    def cors_origin_list(self) -> List[str]:
        val = self.CORS_ORIGINS
        if not val: return []
        if val == "*": return ["*"]
        return [v.strip() for v in val.split(",")]

    @property
    def provider_keys(self) -> Dict[str, Optional[str]]:
        return {
            "google": self.GOOGLE_API_KEY,
            "openai": self.OPENAI_API_KEY,
            "anthropic": self.ANTHROPIC_API_KEY,
            "groq": self.GROQ_API_KEY,
            "huggingface": self.HUGGINGFACE_API_KEY,
        }


settings = Settings()
