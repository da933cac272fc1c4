"""
OpenAI embedder using official SDK.
"""

from openai import AsyncOpenAI

from topicmind.core.embeddings.base import Embedder, normalize_vector
from topicmind.utils.exceptions import EmbeddingError, ValidationError
from topicmind.utils.logger import get_logger

logger = get_logger(__name__)

# Known output sizes; anything else is probed with a test embedding
MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

# Inputs accepted per embeddings request
MAX_INPUTS_PER_REQUEST = 2048


class OpenAIEmbedder(Embedder):
    """
    OpenAI embedder for fact deduplication.

    One request embeds a whole batch; vectors come back unit-length.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        organization: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        """
        Initialize OpenAI embedder.

        Args:
            api_key: OpenAI API key
            model: Embedding model name
            organization: Optional organization ID
            base_url: Optional OpenAI-compatible endpoint
            timeout: Request timeout in seconds
        """
        self.model = model
        self.client = AsyncOpenAI(
            api_key=api_key, organization=organization, base_url=base_url, timeout=timeout
        )

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Raises:
            ValidationError: If text is empty
            EmbeddingError: If the API call fails
        """
        if not text or not text.strip():
            raise ValidationError("Text cannot be empty")

        vectors = await self._request([text], **kwargs)
        return vectors[0]

    async def batch_embed(
        self, texts: list[str], batch_size: int = MAX_INPUTS_PER_REQUEST, **kwargs
    ) -> list[list[float]]:
        """
        Embed texts in as few requests as possible, preserving order.

        Raises:
            ValidationError: If texts is empty
            EmbeddingError: If any request fails
        """
        if not texts:
            raise ValidationError("Texts list cannot be empty")

        size = min(batch_size, MAX_INPUTS_PER_REQUEST)
        vectors: list[list[float]] = []
        for start in range(0, len(texts), size):
            vectors.extend(await self._request(texts[start : start + size], **kwargs))
        return vectors

    async def get_dimension(self) -> int:
        if self.model in MODEL_DIMENSIONS:
            return MODEL_DIMENSIONS[self.model]
        return await super().get_dimension()

    async def close(self):
        await self.client.close()

    async def _request(self, inputs: list[str], **kwargs) -> list[list[float]]:
        try:
            response = await self.client.embeddings.create(
                model=self.model, input=inputs, **kwargs
            )
        except Exception as e:
            logger.bind(model=self.model, num_texts=len(inputs), error=str(e)).error(
                f"OpenAI embedding error: {e}",
            )
            raise EmbeddingError(f"OpenAI embedding error: {e}") from e

        if not response.data or len(response.data) != len(inputs):
            raise EmbeddingError(
                "OpenAI returned an incomplete embedding response",
                context={"expected": len(inputs), "received": len(response.data or [])},
            )

        return [normalize_vector(item.embedding) for item in response.data]
