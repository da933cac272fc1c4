"""
Ollama LLM provider using native ollama-python SDK.
"""

import ollama

from topicmind.core.llm.base import LLMProvider, LLMResponse, TokenUsage
from topicmind.utils.exceptions import LLMError, ProviderMalformedError, ValidationError
from topicmind.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaLLM(LLMProvider):
    """
    Ollama LLM provider for text generation.

    Uses native ollama-python SDK for chat completions.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "llama3.1:8b",
        timeout: float = 120.0,
    ):
        """
        Initialize Ollama LLM provider.

        Args:
            host: Ollama server URL
            model: Default model name (e.g., "llama3.1", "mistral")
            timeout: Request timeout in seconds
        """
        self.host = host
        self.model = model
        self.timeout = timeout

        self.client = ollama.AsyncClient(host=host, timeout=timeout)

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
        Generate completion using Ollama.

        Raises:
            ValidationError: If prompt is empty
            LLMError: If the Ollama call fails
            ProviderMalformedError: If the response carries no content
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt cannot be empty")

        options = {
            "temperature": temperature,
            "num_predict": max_tokens,
            **kwargs.get("options", {}),
        }

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        model_name = model or self.model

        try:
            response = await self.client.chat(
                model=model_name,
                messages=messages,
                options=options,
                **{k: v for k, v in kwargs.items() if k != "options"},
            )
        except Exception as e:
            logger.bind(model=model_name, host=self.host, error=str(e)).error(
                f"Ollama API error: {e}",
            )
            raise LLMError(f"Ollama API error: {e}") from e

        content = (response.get("message") or {}).get("content")
        if not content:
            raise ProviderMalformedError(
                "Ollama returned empty content", context={"model": model_name}
            )

        prompt_tokens = response.get("prompt_eval_count") or 0
        completion_tokens = response.get("eval_count") or 0

        return LLMResponse(
            content=content,
            usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
        )

    async def close(self):
        """Close client (Ollama SDK handles cleanup internally)."""
        pass
