from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from livenotes.services.errors import CollaboratorError


class LLMProviderError(CollaboratorError):
    pass


class LLMProvider(ABC):
    @abstractmethod
    def extract_topics_and_summarize(self, text: str) -> str:
        raise NotImplementedError

    @abstractmethod
    def generate_answer(self, question_context: str) -> str:
        raise NotImplementedError


class BaseLLMProvider(LLMProvider):
    """Base implementation with shared prompts and response handling.

    Subclasses only need to implement _call_api() for their specific API client.
    """

    PROMPTS = {
        "summarize": (
            "You are taking show notes for a live podcast. Extract the topics "
            "discussed in the transcript excerpt below and summarize them as short "
            "Markdown bullet points, one topic per bullet. Return the notes only.\n\n"
            "Transcript:\n{transcript}"
        ),
        "summarize_system": (
            "You write terse, factual show notes. Never invent details that are not in the transcript."
        ),
        "answer": (
            "A podcast host just asked you a question on air. Answer it based on the "
            "context below in two or three spoken sentences. Return plain text suitable "
            "for text-to-speech, with no Markdown.\n\n"
            "Context:\n{question}"
        ),
        "answer_system": (
            "You are a friendly, knowledgeable podcast co-host."
        ),
    }

    def __init__(self, logger_name: str = "livenotes.llm") -> None:
        self._logger = logging.getLogger(logger_name)

    @abstractmethod
    def _call_api(
        self,
        prompt: str,
        temperature: float = 0.2,
        timeout: int = 120,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Make an API call and return the raw response text.

        Args:
            prompt: The user prompt to send
            temperature: Sampling temperature (0.0-1.0)
            timeout: Request timeout in seconds
            system_prompt: Optional system prompt
            max_tokens: Optional cap on the response length

        Returns:
            The response text content
        """
        raise NotImplementedError

    def extract_topics_and_summarize(self, text: str) -> str:
        prompt = self.PROMPTS["summarize"].format(transcript=text)
        content = self._call_api(
            prompt,
            temperature=0.2,
            timeout=60,
            system_prompt=self.PROMPTS["summarize_system"],
            max_tokens=300,
        )
        summary = content.strip()
        if not summary:
            raise LLMProviderError("Empty summary response")
        return summary

    def generate_answer(self, question_context: str) -> str:
        prompt = self.PROMPTS["answer"].format(question=question_context)
        content = self._call_api(
            prompt,
            temperature=0.5,
            timeout=60,
            system_prompt=self.PROMPTS["answer_system"],
            max_tokens=200,
        )
        answer = content.strip().strip('"')
        if not answer:
            raise LLMProviderError("Empty answer response")
        return answer
