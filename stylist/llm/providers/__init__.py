from stylist.llm.providers.base import HTTPOutfitProvider, OutfitProvider, ProviderRegistry
from stylist.llm.providers.anthropic import AnthropicProvider
from stylist.llm.providers.google import GoogleProvider
from stylist.llm.providers.huggingface import HuggingFaceProvider
from stylist.llm.providers.openai import GroqProvider, OpenAIProvider

ProviderRegistry.register("google", GoogleProvider)
ProviderRegistry.register("openai", OpenAIProvider)
ProviderRegistry.register("anthropic", AnthropicProvider)
ProviderRegistry.register("groq", GroqProvider)
ProviderRegistry.register("huggingface", HuggingFaceProvider)

__all__ = [
    "OutfitProvider",
    "HTTPOutfitProvider",
    "ProviderRegistry",
    "GoogleProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "GroqProvider",
    "HuggingFaceProvider",
]
