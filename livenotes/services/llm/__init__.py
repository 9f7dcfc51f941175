from livenotes.services.llm.base import LLMProvider, LLMProviderError
from livenotes.services.llm.ollama_provider import OllamaProvider
from livenotes.services.llm.openai_provider import OpenAIProvider

__all__ = [
    "LLMProvider",
    "LLMProviderError",
    "OllamaProvider",
    "OpenAIProvider",
]
