"""Feedback item document model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..identity import UserIdentity


# Document keys owned by the model; anything else is carried in `extra`.
_KNOWN_KEYS = {
    "id",
    "boardId",
    "columnId",
    "title",
    "createdBy",
    "createdDate",
    "upvotes",
    "userIdRef",
    "parentFeedbackItemId",
    "childFeedbackItemIds",
    "associatedActionItemIds",
}


def _parse_date(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return None


@dataclass
class FeedbackItem:
    """
    A feedback item (sticky note) on a retrospective board.

    Relationship lists distinguish "absent" (None, the item was never grouped
    or linked) from "present but empty" ([]). Callers mutating them go through
    ensure_child_ids() / ensure_action_item_ids() first.
    """

    id: str
    board_id: str
    column_id: str
    title: str
    created_date: Optional[datetime] = None
    # Stored createdDate text, written back unchanged while created_date is untouched
    created_date_raw: Optional[str] = field(default=None, repr=False, compare=False)
    created_by: Optional[UserIdentity] = None
    user_id_ref: Optional[str] = None
    upvotes: int = 0
    parent_feedback_item_id: Optional[str] = None
    child_feedback_item_ids: Optional[list[str]] = None
    associated_action_item_ids: Optional[list[int]] = None
    extra: dict = field(default_factory=dict)

    @property
    def has_parent(self) -> bool:
        return bool(self.parent_feedback_item_id)

    @property
    def has_children(self) -> bool:
        return bool(self.child_feedback_item_ids)

    def ensure_child_ids(self) -> list[str]:
        """Materialize the child list and return it."""
        if self.child_feedback_item_ids is None:
            self.child_feedback_item_ids = []
        return self.child_feedback_item_ids

    def ensure_action_item_ids(self) -> list[int]:
        """Materialize the associated work item list and return it."""
        if self.associated_action_item_ids is None:
            self.associated_action_item_ids = []
        return self.associated_action_item_ids

    def add_child_id(self, child_id: str) -> None:
        children = self.ensure_child_ids()
        if child_id not in children:
            children.append(child_id)

    def remove_child_id(self, child_id: str) -> None:
        self.child_feedback_item_ids = [
            existing for existing in self.ensure_child_ids() if existing != child_id
        ]

    def to_document(self) -> dict:
        """Serialize to the camelCase document stored in the board collection."""
        doc = dict(self.extra)
        doc.update({
            "id": self.id,
            "boardId": self.board_id,
            "columnId": self.column_id,
            "title": self.title,
            "createdBy": self.created_by.to_document() if self.created_by else None,
            "upvotes": self.upvotes,
            "userIdRef": self.user_id_ref,
            "parentFeedbackItemId": self.parent_feedback_item_id,
        })
        if self.created_date is not None:
            if self.created_date_raw and _parse_date(self.created_date_raw) == self.created_date:
                doc["createdDate"] = self.created_date_raw
            else:
                doc["createdDate"] = self.created_date.isoformat()
        if self.child_feedback_item_ids is not None:
            doc["childFeedbackItemIds"] = list(self.child_feedback_item_ids)
        if self.associated_action_item_ids is not None:
            doc["associatedActionItemIds"] = list(self.associated_action_item_ids)
        return doc

    @classmethod
    def from_document(cls, doc: dict) -> "FeedbackItem":
        """Build an item from a stored document."""
        children = doc.get("childFeedbackItemIds")
        action_items = doc.get("associatedActionItemIds")
        raw_date = doc.get("createdDate")
        return cls(
            id=doc["id"],
            board_id=doc.get("boardId", ""),
            column_id=doc.get("columnId", ""),
            title=doc.get("title", ""),
            created_date=_parse_date(raw_date),
            created_date_raw=raw_date if isinstance(raw_date, str) else None,
            created_by=UserIdentity.from_document(doc.get("createdBy")),
            user_id_ref=doc.get("userIdRef"),
            upvotes=int(doc.get("upvotes") or 0),
            parent_feedback_item_id=doc.get("parentFeedbackItemId"),
            child_feedback_item_ids=list(children) if children is not None else None,
            associated_action_item_ids=[int(i) for i in action_items] if action_items is not None else None,
            extra={k: v for k, v in doc.items() if k not in _KNOWN_KEYS},
        )
