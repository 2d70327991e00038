"""Feedback item repository - CRUD and grouping over the board document store."""

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Optional

from .data_service import DocumentStoreProtocol
from .exceptions import (
    CollectionNotFoundError,
    DataServiceError,
    FeedbackItemNotFoundError,
    NotFoundError,
)
from .identity import IdentityResolverProtocol
from .models import AdoptResult, DeleteResult, DetachResult, FeedbackItem
from .observability import (
    SeverityLevel,
    TelemetryExceptions,
    TelemetryObserver,
    TelemetrySinkProtocol,
    logger,
)
from .work_item_service import WorkItem, WorkItemServiceProtocol


class FeedbackItemRepository:
    """
    Reads and writes feedback items of a board, one document per item.

    Grouping is two levels deep at most: a group head has children and no
    parent, a child has a parent and no children. Relationship operations keep
    the parent's child list and each child's parent id in agreement and move
    every member of a group to the group head's column.

    Multi-document updates are plain read-modify-write sequences with no
    locking; concurrent writers on the same board can lose updates.
    """

    def __init__(
        self,
        store: DocumentStoreProtocol,
        identity_resolver: IdentityResolverProtocol,
        work_item_service: WorkItemServiceProtocol,
        telemetry: Optional[TelemetrySinkProtocol] = None,
    ):
        self.store = store
        self.identity_resolver = identity_resolver
        self.work_item_service = work_item_service
        self.telemetry = TelemetryObserver(telemetry)

    # ==================== Documents ====================

    async def _update_feedback_item(self, board_id: str, item: FeedbackItem) -> FeedbackItem:
        """Persist an item and return the stored version."""
        document = await self.store.update_document(board_id, item.to_document())
        return FeedbackItem.from_document(document)

    async def _update_all(self, board_id: str, items: list[FeedbackItem]) -> list[FeedbackItem]:
        return list(await asyncio.gather(
            *(self._update_feedback_item(board_id, item) for item in items)
        ))

    async def _find_feedback_item(self, board_id: str, feedback_item_id: str) -> Optional[FeedbackItem]:
        """Read an item, returning None when it does not exist."""
        try:
            return await self.get_feedback_item(board_id, feedback_item_id)
        except NotFoundError:
            return None

    async def _find_all(self, board_id: str, feedback_item_ids: list[str]) -> list[FeedbackItem]:
        """Read several items concurrently, skipping the ones that no longer exist."""
        results = await asyncio.gather(
            *(self._find_feedback_item(board_id, item_id) for item_id in feedback_item_ids)
        )
        found = []
        for item_id, item in zip(feedback_item_ids, results):
            if item is None:
                logger.warning(f"Skipping missing feedback item. Board: {board_id}, Item: {item_id}")
                continue
            found.append(item)
        return found

    # ==================== Items ====================

    async def create_item_for_board(
        self,
        board_id: str,
        title: str,
        column_id: str,
        is_anonymous: bool = True,
    ) -> FeedbackItem:
        """Create an item with the given title in a column of the board."""
        user_identity = self.identity_resolver.get_user_identity()

        item = FeedbackItem(
            id=str(uuid.uuid4()),
            board_id=board_id,
            column_id=column_id,
            title=title,
            created_by=None if is_anonymous else user_identity,
            created_date=datetime.now(timezone.utc),
            upvotes=0,
            user_id_ref=user_identity.id,
        )

        document = await self.store.create_document(board_id, item.to_document())
        logger.info(f"Created feedback item {item.id} on board {board_id}")
        return FeedbackItem.from_document(document)

    async def get_feedback_item(self, board_id: str, feedback_item_id: str) -> FeedbackItem:
        """
        Get a feedback item.

        Raises FeedbackItemNotFoundError when the item (or the whole board
        collection) does not exist.
        """
        try:
            document = await self.store.read_document(board_id, feedback_item_id)
        except NotFoundError as e:
            raise FeedbackItemNotFoundError(board_id, feedback_item_id) from e

        try:
            return FeedbackItem.from_document(document)
        except (KeyError, TypeError, ValueError) as e:
            raise DataServiceError(
                f"Malformed feedback item document {feedback_item_id} on board {board_id}: {e}",
                type_key="MalformedDocument",
            ) from e

    async def get_feedback_items_for_board(self, board_id: str) -> list[FeedbackItem]:
        """Get all feedback items of the board; a board without items yields []."""
        try:
            documents = await self.store.read_documents(board_id, include_deleted=False, poly_read=True)
        except CollectionNotFoundError as e:
            self.telemetry.trace(TelemetryExceptions.ITEMS_NOT_FOUND_FOR_BOARD, e, SeverityLevel.WARNING)
            return []

        return [FeedbackItem.from_document(doc) for doc in documents]

    async def get_feedback_items_by_ids(
        self,
        board_id: str,
        feedback_item_ids: list[str],
    ) -> list[FeedbackItem]:
        """Get the board's items matching the ids, in board listing order."""
        wanted = set(feedback_item_ids)
        items = await self.get_feedback_items_for_board(board_id)
        return [item for item in items if item.id in wanted]

    async def delete_feedback_item(self, board_id: str, feedback_item_id: str) -> DeleteResult:
        """
        Delete the feedback item and repair its group.

        A child is removed from its parent's child list. A group head's
        children become standalone items. Raises FeedbackItemNotFoundError
        when the item does not exist.
        """
        result = DeleteResult()
        item = await self.get_feedback_item(board_id, feedback_item_id)

        if item.has_parent:
            parent = await self._find_feedback_item(board_id, item.parent_feedback_item_id)
            if parent is None:
                logger.warning(
                    f"Deleted item has a non-existent parent. "
                    f"Board: {board_id}, Parent Item: {item.parent_feedback_item_id}, Item: {feedback_item_id}"
                )
            else:
                parent.remove_child_id(feedback_item_id)
                result.updated_parent = await self._update_feedback_item(board_id, parent)

        elif item.has_children:
            children = await self._find_all(board_id, item.child_feedback_item_ids)
            for child in children:
                child.parent_feedback_item_id = None
            result.updated_children = await self._update_all(board_id, children)

        await self.store.delete_document(board_id, feedback_item_id)
        logger.info(f"Deleted feedback item {feedback_item_id} on board {board_id}")
        return result

    async def increment_upvote(self, board_id: str, feedback_item_id: str) -> Optional[FeedbackItem]:
        """Increment the upvote count of the item; None when it does not exist."""
        item = await self._find_feedback_item(board_id, feedback_item_id)
        if item is None:
            logger.info(
                f"Cannot increment upvote for a non-existent feedback item. "
                f"Board: {board_id}, Item: {feedback_item_id}"
            )
            return None

        item.upvotes += 1
        return await self._update_feedback_item(board_id, item)

    async def update_title(self, board_id: str, feedback_item_id: str, title: str) -> Optional[FeedbackItem]:
        """Update the title of the item; None when it does not exist."""
        item = await self._find_feedback_item(board_id, feedback_item_id)
        if item is None:
            logger.info(
                f"Cannot update title for a non-existent feedback item. "
                f"Board: {board_id}, Item: {feedback_item_id}"
            )
            return None

        item.title = title
        return await self._update_feedback_item(board_id, item)

    # ==================== Grouping ====================

    async def add_feedback_item_as_child(
        self,
        board_id: str,
        parent_feedback_item_id: str,
        child_feedback_item_id: str,
    ) -> Optional[AdoptResult]:
        """
        Add a feedback item as a child of another feedback item.

        Also ensures that:
        1. the child is removed from its old parent, if it had one;
        2. the child's own children become children of the new parent
           (groups never nest);
        3. the child and those former grandchildren take the parent's column.

        Returns None without writing anything when either item is missing or
        the parent is itself a child in another group.
        """
        if parent_feedback_item_id == child_feedback_item_id:
            logger.info(f"Cannot add a feedback item as its own child. Board: {board_id}, Item: {child_feedback_item_id}")
            return None

        parent, child = await asyncio.gather(
            self._find_feedback_item(board_id, parent_feedback_item_id),
            self._find_feedback_item(board_id, child_feedback_item_id),
        )

        if parent is None or child is None:
            logger.info(
                f"Cannot add child for a non-existent feedback item. Board: {board_id}, "
                f"Parent Item: {parent_feedback_item_id}, Child Item: {child_feedback_item_id}"
            )
            return None

        # The parent must not be a child of another group
        if parent.has_parent:
            logger.info(
                f"Cannot add child if parent is already a child in another group. "
                f"Board: {board_id}, Parent Item: {parent_feedback_item_id}"
            )
            return None

        parent.add_child_id(child_feedback_item_id)

        updated_old_parent = None
        old_parent_id = child.parent_feedback_item_id
        if old_parent_id and old_parent_id != parent_feedback_item_id:
            old_parent = await self._find_feedback_item(board_id, old_parent_id)
            if old_parent is None:
                logger.warning(
                    f"Child has a non-existent parent. Board: {board_id}, "
                    f"Parent Item: {old_parent_id}, Child Item: {child_feedback_item_id}"
                )
            else:
                old_parent.remove_child_id(child_feedback_item_id)
                updated_old_parent = await self._update_feedback_item(board_id, old_parent)

        grandchildren = []
        if child.has_children:
            grandchildren = await self._find_all(board_id, child.child_feedback_item_ids)
        for grandchild in grandchildren:
            grandchild.parent_feedback_item_id = parent.id
            grandchild.column_id = parent.column_id
            parent.add_child_id(grandchild.id)

        child.child_feedback_item_ids = []
        child.parent_feedback_item_id = parent.id
        child.column_id = parent.column_id

        updated_parent = await self._update_feedback_item(board_id, parent)
        updated_child = await self._update_feedback_item(board_id, child)
        updated_grandchildren = await self._update_all(board_id, grandchildren)

        logger.info(
            f"Grouped feedback item {child_feedback_item_id} under {parent_feedback_item_id} "
            f"on board {board_id} ({len(updated_grandchildren)} re-homed)"
        )
        return AdoptResult(
            updated_parent=updated_parent,
            updated_child=updated_child,
            updated_old_parent=updated_old_parent,
            updated_grandchildren=updated_grandchildren,
        )

    async def add_feedback_item_as_main_item_to_column(
        self,
        board_id: str,
        feedback_item_id: str,
        new_column_id: str,
    ) -> Optional[DetachResult]:
        """
        Add the feedback item as a main item of the given column.

        The item leaves its parent's group, if any. When it moves to a
        different column its own children move with it and stay grouped
        under it.
        """
        item = await self._find_feedback_item(board_id, feedback_item_id)
        if item is None:
            logger.info(f"Cannot move a non-existent feedback item. Board: {board_id}, Item: {feedback_item_id}")
            return None

        updated_old_parent = None
        if item.has_parent:
            parent = await self._find_feedback_item(board_id, item.parent_feedback_item_id)
            if parent is None:
                logger.info(
                    f"The given feedback item has a non-existent parent. Board: {board_id}, "
                    f"Parent Item: {item.parent_feedback_item_id}, Child Item: {feedback_item_id}"
                )
                return None

            parent.remove_child_id(feedback_item_id)
            updated_old_parent = await self._update_feedback_item(board_id, parent)

        updated_children = []
        if item.column_id != new_column_id and item.has_children:
            children = await self._find_all(board_id, item.child_feedback_item_ids)
            for child in children:
                child.column_id = new_column_id
            updated_children = await self._update_all(board_id, children)

        item.parent_feedback_item_id = None
        item.column_id = new_column_id
        updated_item = await self._update_feedback_item(board_id, item)

        return DetachResult(
            updated_item=updated_item,
            updated_old_parent=updated_old_parent,
            updated_children=updated_children,
        )

    # ==================== Associated work items ====================

    async def _read_for_association(self, board_id: str, feedback_item_id: str) -> Optional[FeedbackItem]:
        try:
            return await self.get_feedback_item(board_id, feedback_item_id)
        except DataServiceError as e:
            self.telemetry.exception(e)
            logger.info(f"Failed to read feedback item with id: {feedback_item_id}.")
            return None

    async def add_associated_action_item(
        self,
        board_id: str,
        feedback_item_id: str,
        associated_work_item_id: int,
    ) -> Optional[FeedbackItem]:
        """Link a work item to the feedback item; linking twice is a no-op."""
        item = await self._read_for_association(board_id, feedback_item_id)
        if item is None:
            return None

        action_item_ids = item.ensure_action_item_ids()
        if associated_work_item_id in action_item_ids:
            return item

        action_item_ids.append(associated_work_item_id)
        return await self._update_feedback_item(board_id, item)

    async def remove_associated_action_item(
        self,
        board_id: str,
        feedback_item_id: str,
        associated_work_item_id: int,
    ) -> Optional[FeedbackItem]:
        """Unlink a work item from the feedback item; unlinking an absent id is a no-op."""
        item = await self._read_for_association(board_id, feedback_item_id)
        if item is None or not item.associated_action_item_ids:
            return item

        if associated_work_item_id not in item.associated_action_item_ids:
            return item

        item.associated_action_item_ids = [
            work_item_id for work_item_id in item.associated_action_item_ids
            if work_item_id != associated_work_item_id
        ]
        return await self._update_feedback_item(board_id, item)

    async def get_associated_action_item_ids(self, board_id: str, feedback_item_id: str) -> list[int]:
        """
        Get the ids of all work items linked to the feedback item.

        Unlike the linking operations this raises FeedbackItemNotFoundError
        when the item cannot be read.
        """
        try:
            item = await self.get_feedback_item(board_id, feedback_item_id)
        except DataServiceError as e:
            self.telemetry.exception(e)
            raise FeedbackItemNotFoundError(
                board_id,
                feedback_item_id,
                f"Failed to read feedback item with id: {feedback_item_id}.",
            ) from e

        return list(item.associated_action_item_ids or [])

    async def remove_associated_item_if_not_exists_in_tracker(
        self,
        board_id: str,
        feedback_item_id: str,
        associated_work_item_id: int,
    ) -> Optional[FeedbackItem]:
        """
        Unlink the work item when the tracker no longer knows it.

        The tracker does not notify about deleted work items, so links are
        checked on demand. A tracker failure counts as a deleted work item.
        """
        work_items: list[WorkItem] = []
        try:
            work_items = await self.work_item_service.get_work_items_by_ids([associated_work_item_id])
        except Exception as e:
            self.telemetry.exception(e)
            logger.warning(f"Could not look up work item {associated_work_item_id}: {e}")
            return await self.remove_associated_action_item(board_id, feedback_item_id, associated_work_item_id)

        if not work_items:
            logger.info(f"Work item {associated_work_item_id} no longer exists, removing link from {feedback_item_id}")
            return await self.remove_associated_action_item(board_id, feedback_item_id, associated_work_item_id)

        return await self._find_feedback_item(board_id, feedback_item_id)
