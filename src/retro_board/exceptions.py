"""Errors raised by the board data layer."""

from typing import Optional


class DataServiceError(RuntimeError):
    """An error reported by the extension data store."""

    type_key: Optional[str] = None

    def __init__(self, message: str, type_key: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        if type_key is not None:
            self.type_key = type_key
        self.status_code = status_code


class NotFoundError(DataServiceError):
    """Base class for missing entities."""


class DocumentNotFoundError(NotFoundError):
    """The requested document does not exist in its collection."""

    type_key = "DocumentDoesNotExistException"


class CollectionNotFoundError(NotFoundError):
    """The collection has never been initialized (no document was ever written)."""

    type_key = "DocumentCollectionDoesNotExistException"


class FeedbackItemNotFoundError(NotFoundError):
    """A feedback item could not be read from its board."""

    def __init__(self, board_id: str, feedback_item_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"Feedback item with id: {feedback_item_id} not found on board {board_id}."
        )
        self.board_id = board_id
        self.feedback_item_id = feedback_item_id


class WorkItemServiceError(RuntimeError):
    """The work item tracker could not be queried."""


ERRORS_BY_TYPE_KEY = {
    DocumentNotFoundError.type_key: DocumentNotFoundError,
    CollectionNotFoundError.type_key: CollectionNotFoundError,
}
