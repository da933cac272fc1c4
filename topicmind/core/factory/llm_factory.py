"""
Factory for creating the completion provider used for adjudication, summaries and replies.
"""

from topicmind.config import LLMConfig
from topicmind.core.llm.base import LLMProvider
from topicmind.core.llm.ollama import OllamaLLM
from topicmind.core.llm.openai import OpenAILLM
from topicmind.utils.exceptions import ConfigurationError

# LLMConfig.base_url defaults to a local Ollama server
OLLAMA_DEFAULT_URL = LLMConfig.model_fields["base_url"].default


def _build_ollama(config: LLMConfig) -> LLMProvider:
    return OllamaLLM(host=config.base_url, model=config.model, timeout=config.timeout)


def _build_openai(config: LLMConfig) -> LLMProvider:
    if not config.api_key:
        raise ConfigurationError(
            "OpenAI API key is required", context={"provider": config.provider}
        )
    # An OpenAI backend left on the Ollama default URL talks to api.openai.com
    base_url = None if config.base_url == OLLAMA_DEFAULT_URL else config.base_url
    return OpenAILLM(
        api_key=config.api_key, model=config.model, base_url=base_url, timeout=config.timeout
    )


PROVIDERS = {
    "ollama": _build_ollama,
    "openai": _build_openai,
}


class LLMFactory:
    """Factory for creating LLM providers from configuration."""

    @staticmethod
    def create(config: LLMConfig) -> LLMProvider:
        """
        Create LLM provider from configuration.

        Raises:
            ConfigurationError: If provider is not supported or misconfigured
        """
        name = config.provider.strip().lower()
        builder = PROVIDERS.get(name)
        if builder is None:
            raise ConfigurationError(
                f"Unsupported LLM provider: {config.provider}",
                context={"supported": sorted(PROVIDERS)},
            )
        return builder(config)
