"""Results of relationship-changing operations."""

from dataclasses import dataclass, field
from typing import Optional

from .feedback_item import FeedbackItem


@dataclass
class DeleteResult:
    """Items updated while deleting a feedback item."""
    updated_parent: Optional[FeedbackItem] = None
    updated_children: list[FeedbackItem] = field(default_factory=list)


@dataclass
class AdoptResult:
    """Items updated while adding a feedback item as a child of another."""
    updated_parent: FeedbackItem
    updated_child: FeedbackItem
    updated_old_parent: Optional[FeedbackItem] = None
    updated_grandchildren: list[FeedbackItem] = field(default_factory=list)


@dataclass
class DetachResult:
    """Items updated while moving a feedback item to a column as a main item."""
    updated_item: FeedbackItem
    updated_old_parent: Optional[FeedbackItem] = None
    updated_children: list[FeedbackItem] = field(default_factory=list)
