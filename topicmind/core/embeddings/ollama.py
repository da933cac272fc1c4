"""
Ollama embedder using native ollama-python SDK.
"""

import asyncio

import ollama

from topicmind.core.embeddings.base import Embedder, normalize_vector
from topicmind.utils.exceptions import EmbeddingError, ValidationError
from topicmind.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaEmbedder(Embedder):
    """
    Ollama embedder for fact deduplication (nomic-embed-text, mxbai-embed-large, ...).

    The server embeds one prompt per request, so batches fan out concurrently.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 120.0,
    ):
        """
        Initialize Ollama embedder.

        Args:
            host: Ollama server URL
            model: Embedding model name
            timeout: Request timeout in seconds
        """
        self.host = host
        self.model = model
        self.timeout = timeout
        self._dimension: int | None = None

        self.client = ollama.AsyncClient(host=host, timeout=timeout)

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Raises:
            ValidationError: If text is empty
            EmbeddingError: If the server call fails or returns no vector
        """
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty")

        try:
            response = await self.client.embeddings(model=self.model, prompt=text, **kwargs)
        except Exception as e:
            logger.bind(model=self.model, host=self.host, error=str(e)).error(
                f"Ollama embedding error: {e}",
            )
            raise EmbeddingError(f"Ollama embedding error: {e}") from e

        vector = response.get("embedding") if response else None
        if not vector:
            raise EmbeddingError(
                "Ollama returned no embedding", context={"model": self.model, "host": self.host}
            )
        return normalize_vector(vector)

    async def batch_embed(
        self, texts: list[str], batch_size: int = 32, **kwargs
    ) -> list[list[float]]:
        """Embed texts concurrently, at most batch_size requests in flight."""
        vectors: list[list[float]] = []
        for start in range(0, len(texts), batch_size):
            chunk = texts[start : start + batch_size]
            vectors.extend(await asyncio.gather(*(self.embed(t, **kwargs) for t in chunk)))
        return vectors

    async def get_dimension(self) -> int:
        """Probe once and cache."""
        if self._dimension is None:
            self._dimension = len(await self.embed("test"))
        return self._dimension

    async def close(self):
        """Ollama SDK handles cleanup internally."""
        pass
