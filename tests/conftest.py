"""Test configuration and shared fixtures."""

import pytest
from pathlib import Path

from retro_board.data_service import MockDataService
from retro_board.identity import StaticIdentityResolver, UserIdentity
from retro_board.item_data_service import FeedbackItemRepository
from retro_board.observability import RecordingTelemetry
from retro_board.work_item_service import MockWorkItemService, WorkItem

BOARD_ID = "board-1"


def make_document(item_id: str, column_id: str = "col1", **overrides) -> dict:
    """Build a stored feedback item document."""
    doc = {
        "id": item_id,
        "boardId": BOARD_ID,
        "columnId": column_id,
        "title": f"Title of {item_id}",
        "createdBy": None,
        "createdDate": "2024-03-01T10:00:00+00:00",
        "upvotes": 0,
        "userIdRef": "U_TEST1",
        "parentFeedbackItemId": None,
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def fixtures_path():
    """Path to fixture files."""
    return Path(__file__).parent.parent / "fixtures"


@pytest.fixture
def mock_fixture_path(fixtures_path):
    """Path to mock board data."""
    return str(fixtures_path / "board_mock.json")


@pytest.fixture
def store():
    """Empty in-memory document store."""
    return MockDataService()


@pytest.fixture
def work_items():
    """Work item tracker knowing a single work item."""
    service = MockWorkItemService()
    service.add(WorkItem(id=101, fields={"System.Title": "Fix the build"}))
    return service


@pytest.fixture
def telemetry():
    return RecordingTelemetry()


@pytest.fixture
def identity():
    return UserIdentity(id="U_TEST1", display_name="Test User 1", unique_name="test1@example.com")


@pytest.fixture
def repository(store, work_items, telemetry, identity):
    """Repository wired to mock collaborators."""
    return FeedbackItemRepository(
        store=store,
        identity_resolver=StaticIdentityResolver(identity),
        work_item_service=work_items,
        telemetry=telemetry,
    )


@pytest.fixture
def group_board(store):
    """Board with group head P (children C1, C2) and a standalone item S."""
    store.seed(BOARD_ID, [
        make_document("P", childFeedbackItemIds=["C1", "C2"]),
        make_document("C1", parentFeedbackItemId="P"),
        make_document("C2", parentFeedbackItemId="P"),
        make_document("S", column_id="col2"),
    ])
    return store
