"""
Embedder abstraction layer for text embeddings.

Supported providers:
- Ollama (native SDK)
- OpenAI (official SDK)
"""
from topicmind.core.embeddings.base import Embedder, normalize_vector
from topicmind.core.embeddings.ollama import OllamaEmbedder
from topicmind.core.embeddings.openai import OpenAIEmbedder

__all__ = [
    "Embedder",
    "normalize_vector",
    "OllamaEmbedder",
    "OpenAIEmbedder",
]
