"""
TopicMind - Topic-scoped conversation memory with adjudicated message intake.
"""

__version__ = "0.1.0"
