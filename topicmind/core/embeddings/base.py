"""
Abstract base class for embedding providers.
Handles text to vector embeddings for fact similarity.
"""

from abc import ABC, abstractmethod

import numpy as np


def normalize_vector(vector: list[float]) -> list[float]:
    """
    Scale a vector to unit length.

    Zero vectors are returned unchanged.
    """
    arr = np.asarray(vector, dtype=float)
    norm = np.linalg.norm(arr)
    if norm == 0:
        return arr.tolist()
    return (arr / norm).tolist()


class Embedder(ABC):
    """
    Abstract base for embedding providers.

    Responsibilities:
    - Generate unit-length vector embeddings for text
    - Batch processing for efficiency
    - Consistent vector dimensions
    """

    @abstractmethod
    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate a normalized embedding vector for text.

        Args:
            text: Text to embed
            **kwargs: Provider-specific parameters

        Returns:
            List of floats representing the embedding vector

        Raises:
            ValidationError: If text is invalid
            EmbeddingError: If embedding generation fails
        """
        pass

    async def batch_embed(
        self, texts: list[str], batch_size: int = 32, **kwargs
    ) -> list[list[float]]:
        """
        Generate embeddings for multiple texts.

        Default implementation processes sequentially.
        Override for provider-specific batch optimization.

        Args:
            texts: List of texts to embed
            batch_size: Number of texts per batch
            **kwargs: Provider-specific parameters

        Returns:
            List of embedding vectors (same order as input texts)
        """
        embeddings = []
        for text in texts:
            embedding = await self.embed(text, **kwargs)
            embeddings.append(embedding)
        return embeddings

    async def get_dimension(self) -> int:
        """
        Get the dimension of embeddings produced by this provider.

        Default implementation embeds a test string.
        """
        test_embedding = await self.embed("test")
        return len(test_embedding)

    @abstractmethod
    async def close(self):
        """
        Close any open connections.
        """
        pass
