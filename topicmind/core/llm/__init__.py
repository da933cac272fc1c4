"""
LLM provider abstraction layer for text generation.

Supported providers:
- Ollama (native SDK)
- OpenAI (official SDK)
"""
from topicmind.core.llm.base import LLMProvider, LLMResponse, TokenUsage, extract_json
from topicmind.core.llm.ollama import OllamaLLM
from topicmind.core.llm.openai import OpenAILLM

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "TokenUsage",
    "extract_json",
    "OllamaLLM",
    "OpenAILLM",
]
