import logging

from livenotes.services.llm import (
    LLMProvider,
    LLMProviderError,
    OllamaProvider,
    OpenAIProvider,
)
from livenotes.services.settings import load_config


class SummarizationService:
    """Summaries and answers through the user's selected model.

    Reads model selection from config.json on every call, so edits to the
    file take effect without restarting the session:
    - models.selected_model: format "provider:model_id" (e.g., "openai:gpt-4o")
    - providers.<provider>: contains api_key and base_url for each provider
    """

    def __init__(self, config_path: str) -> None:
        self._config_path = config_path
        self._logger = logging.getLogger("livenotes.summarization")

    def _read_config(self) -> dict:
        return load_config(self._config_path)

    def get_selected_model(self) -> tuple[str, str]:
        """Get the user's selected model from config.

        Returns:
            Tuple of (provider_name, model_id)

        Raises:
            LLMProviderError if no model is selected
        """
        config = self._read_config()
        selected = config.get("models", {}).get("selected_model", "")

        if not selected:
            raise LLMProviderError("No AI model selected. Set models.selected_model in config.json.")

        if ":" not in selected:
            raise LLMProviderError(
                f"Invalid model format '{selected}'. Expected 'provider:model_id'."
            )

        provider, model_id = selected.split(":", 1)
        return provider.lower(), model_id

    def get_provider_config(self, provider_name: str) -> dict:
        """Get provider configuration (api_key, base_url) from config."""
        config = self._read_config()
        return config.get("providers", {}).get(provider_name, {})

    def _get_provider(self) -> LLMProvider:
        provider_name, model_id = self.get_selected_model()

        provider_config = self.get_provider_config(provider_name)
        api_key = provider_config.get("api_key", "")
        base_url = provider_config.get("base_url", "")

        if provider_name == "ollama":
            return OllamaProvider(base_url=base_url or "http://127.0.0.1:11434", model=model_id)

        if provider_name == "openai":
            if not api_key:
                raise LLMProviderError("Missing OpenAI API key (providers.openai.api_key).")
            return OpenAIProvider(api_key=api_key, model=model_id, base_url=base_url or None)

        if provider_name == "lmstudio":
            return OpenAIProvider(
                api_key="lmstudio",
                model=model_id,
                base_url=base_url or "http://127.0.0.1:1234",
            )

        raise LLMProviderError(f"Unknown provider: {provider_name}")

    def extract_topics_and_summarize(self, text: str) -> str:
        if not text.strip():
            raise LLMProviderError("Transcript is empty")
        provider = self._get_provider()
        self._logger.info(
            "Summarization using provider=%s chars=%d", provider.__class__.__name__, len(text)
        )
        return provider.extract_topics_and_summarize(text)

    def generate_answer(self, question_context: str) -> str:
        if not question_context.strip():
            raise LLMProviderError("Question is empty")
        provider = self._get_provider()
        self._logger.info("Answer using provider=%s", provider.__class__.__name__)
        return provider.generate_answer(question_context)
