"""
Tokenizer module for working memory budgeting.

Character-ratio estimate by default; exact counts via tiktoken on request.
"""

from topicmind.config import TokenizerConfig
from topicmind.core.tokenizer.tokenizer import Tokenizer

__all__ = ["Tokenizer", "TokenizerConfig"]
