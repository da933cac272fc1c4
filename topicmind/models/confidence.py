"""Confidence events applied to key facts."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class ConfidenceEventType(str, Enum):
    """Kinds of evidence that move a fact's confidence."""

    USER_CONFIRMED = "USER_CONFIRMED"
    MENTIONED_AGAIN = "MENTIONED_AGAIN"
    CONTRADICTED = "CONTRADICTED"
    TIME_DECAY = "TIME_DECAY"
    IMPLICIT_VALIDATION = "IMPLICIT_VALIDATION"


class ConfidenceEvent(BaseModel):
    """A single confidence-changing event."""

    type: ConfidenceEventType
    evidence: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)
