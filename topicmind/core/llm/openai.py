"""
OpenAI LLM provider using official SDK.
"""

from openai import AsyncOpenAI

from topicmind.core.llm.base import LLMProvider, LLMResponse, TokenUsage
from topicmind.utils.exceptions import LLMError, ProviderMalformedError, ValidationError
from topicmind.utils.logger import get_logger

logger = get_logger(__name__)


class OpenAILLM(LLMProvider):
    """
    OpenAI LLM provider for text generation.

    Uses the chat completions API.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        organization: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        """
        Initialize OpenAI LLM provider.

        Args:
            api_key: OpenAI API key
            model: Default model name (e.g., "gpt-4o", "gpt-4o-mini")
            organization: Optional organization ID
            base_url: Optional custom base URL
            timeout: Request timeout in seconds
        """
        self.model = model

        self.client = AsyncOpenAI(
            api_key=api_key, organization=organization, base_url=base_url, timeout=timeout
        )

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
        Generate completion using OpenAI.

        Raises:
            ValidationError: If prompt is empty
            LLMError: If OpenAI API call fails
            ProviderMalformedError: If the response carries no content
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt cannot be empty")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        params = {
            "model": model or self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
            **kwargs,
        }

        try:
            response = await self.client.chat.completions.create(**params)
        except Exception as e:
            logger.bind(model=params["model"], error=str(e), error_type=type(e).__name__).error(
                f"OpenAI API error: {e}"
            )
            raise LLMError(f"OpenAI API error: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ProviderMalformedError(
                "OpenAI returned empty content", context={"model": params["model"]}
            )

        usage = None
        if getattr(response, "usage", None) is not None:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return LLMResponse(content=content, usage=usage)

    async def close(self):
        """Close OpenAI client."""
        await self.client.close()
