"""
Token counting utilities for memory budgeting.

Uses a character-ratio estimate by default, with tiktoken for exact
OpenAI-compatible counts when configured.
"""

import math

import tiktoken

from topicmind.config import TokenizerConfig


class Tokenizer:
    """
    Token counter used to decide when working memory must be compressed.

    Usage:
        tokenizer = Tokenizer()
        count = tokenizer.count_tokens("Hello world")
        over = tokenizer.exceeds("Long text...", budget=4000)
    """

    def __init__(self, config: TokenizerConfig | None = None):
        """
        Initialize tokenizer with configuration.

        Args:
            config: Optional tokenizer configuration. Uses defaults if not provided.
        """
        self.config = config or TokenizerConfig()
        self._encoder: tiktoken.Encoding | None = None

    @property
    def encoder(self) -> tiktoken.Encoding:
        """Lazy-load tiktoken encoder."""
        if self._encoder is None:
            self._encoder = tiktoken.get_encoding(self.config.model)
        return self._encoder

    def count_tokens(self, text: str) -> int:
        """
        Count tokens with the configured strategy.

        Args:
            text: Text to count tokens for

        Returns:
            Token count (estimate unless provider is "tiktoken")
        """
        if not text:
            return 0

        if self.config.provider == "tiktoken":
            return len(self.encoder.encode(text))

        return self.estimate_tokens(text)

    def estimate_tokens(self, text: str) -> int:
        """
        Fast approximate token count using character ratio.

        Rounds up, so any non-empty text counts as at least one token.
        """
        if not text:
            return 0
        return math.ceil(len(text) / self.config.chars_per_token)

    def exceeds(self, text: str, budget: int) -> bool:
        """True when the token count of text is strictly greater than budget."""
        return self.count_tokens(text) > budget
