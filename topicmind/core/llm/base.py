"""
Abstract base class for LLM providers.
Handles text completion with an optional system prompt and per-call model.
"""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class LLMResponse(BaseModel):
    """Completion result."""

    content: str
    usage: TokenUsage | None = None


def extract_json(content: str) -> str:
    """
    Extract JSON from content that might have markdown formatting.

    Args:
        content: Raw content that may contain JSON

    Returns:
        Cleaned JSON string
    """
    content = content.strip()

    if "```json" in content:
        content = content.split("```json")[1].split("```")[0].strip()
    elif "```" in content:
        content = content.split("```")[1].split("```")[0].strip()

    return content


class LLMProvider(ABC):
    """
    Abstract base for LLM text generation providers.

    Responsibilities:
    - Text completion with optional system prompt
    - Per-call model override (each node carries its own model)
    - Surfacing transport failures as LLMError
    """

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        model: str | None = None,
        max_tokens: int = 2000,
        temperature: float = 0.0,
        **kwargs,
    ) -> LLMResponse:
        """
        Generate completion from prompt.

        Args:
            prompt: The input prompt
            system_prompt: Optional system instructions
            model: Optional model override; provider default when None
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0.0 = deterministic, 1.0 = creative)
            **kwargs: Provider-specific parameters

        Returns:
            LLMResponse with content and optional token usage

        Raises:
            ValidationError: If the prompt is empty
            LLMError: If the provider call fails
        """
        pass

    @abstractmethod
    async def close(self):
        """
        Close any open connections.
        """
