"""Data models for the retrospective board."""

from .feedback_item import FeedbackItem
from .results import (
    DeleteResult,
    AdoptResult,
    DetachResult,
)

__all__ = [
    "FeedbackItem",
    "DeleteResult",
    "AdoptResult",
    "DetachResult",
]
