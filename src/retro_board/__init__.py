"""Feedback item storage and grouping for retrospective boards."""

from .item_data_service import FeedbackItemRepository
from .data_service import ExtensionDataService
from .work_item_service import WorkItemService
from .identity import StaticIdentityResolver, UserIdentity

__all__ = [
    "FeedbackItemRepository",
    "ExtensionDataService",
    "WorkItemService",
    "StaticIdentityResolver",
    "UserIdentity",
]
