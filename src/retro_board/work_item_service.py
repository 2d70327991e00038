"""Work item tracker client supporting both real and mock backends."""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

import httpx

from .config import BoardConfig
from .exceptions import WorkItemServiceError
from .observability import logger


@dataclass
class WorkItem:
    """A work item as returned by the tracker."""

    id: int
    rev: int = 0
    fields: dict = field(default_factory=dict)
    url: str = ""

    @property
    def title(self) -> str:
        return self.fields.get("System.Title", "")

    @classmethod
    def from_dict(cls, data: dict) -> "WorkItem":
        return cls(
            id=int(data["id"]),
            rev=int(data.get("rev", 0)),
            fields=data.get("fields", {}),
            url=data.get("url", ""),
        )


class WorkItemServiceProtocol(Protocol):
    """Protocol for work item lookups."""

    async def get_work_items_by_ids(self, ids: list[int]) -> list[WorkItem]:
        """Fetch work items; ids that do not exist are omitted."""
        ...


class MockWorkItemService:
    """Mock tracker that serves work items from fixture data."""

    def __init__(self, fixture_path: Optional[str] = None):
        self.fixture_path = Path(fixture_path) if fixture_path else None
        self.work_items: dict[int, WorkItem] = {}
        self.unavailable = False
        self.requests: list[list[int]] = []
        self._load_fixtures()

    def _load_fixtures(self):
        """Load work items from the fixture file."""
        if self.fixture_path and self.fixture_path.exists():
            with open(self.fixture_path, "r") as f:
                data = json.load(f)
            for item in data.get("workItems", []):
                self.add(WorkItem.from_dict(item))

    def add(self, work_item: WorkItem):
        self.work_items[work_item.id] = work_item

    def remove(self, work_item_id: int):
        self.work_items.pop(work_item_id, None)

    async def get_work_items_by_ids(self, ids: list[int]) -> list[WorkItem]:
        self.requests.append(list(ids))
        if self.unavailable:
            raise WorkItemServiceError("Work item tracker is unavailable.")
        return [self.work_items[i] for i in ids if i in self.work_items]


class RealWorkItemService:
    """Work item lookups against the Azure DevOps work item tracking REST API."""

    def __init__(self, config: BoardConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client or httpx.AsyncClient(
            timeout=config.request_timeout_seconds,
            auth=("", config.personal_access_token or ""),
        )

    async def get_work_items_by_ids(self, ids: list[int]) -> list[WorkItem]:
        if not ids:
            return []

        url = f"{self.config.organization_url.rstrip('/')}/_apis/wit/workitems"
        params = {
            "ids": ",".join(str(i) for i in ids),
            "errorPolicy": "omit",
            "api-version": self.config.work_item_api_version,
        }
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as e:
            raise WorkItemServiceError(f"Error fetching work items {ids}: {e}") from e

        if response.status_code >= 400:
            raise WorkItemServiceError(
                f"Error fetching work items {ids}: {response.status_code} {response.text}"
            )

        # errorPolicy=omit returns null in place of missing items
        values = response.json().get("value", [])
        work_items = [WorkItem.from_dict(v) for v in values if v]
        logger.debug(f"Fetched {len(work_items)} of {len(ids)} work items")
        return work_items

    async def close(self):
        await self._client.aclose()


class WorkItemService:
    """
    Unified work item tracker interface.

    Abstracts real vs mock service selection:
    - Pass mock_data_path for testing with fixtures
    - Otherwise uses the real work item tracking API
    """

    def __init__(
        self,
        mock_data_path: Optional[str] = None,
        config: Optional[BoardConfig] = None,
        mock: bool = False,
    ):
        if mock_data_path or mock:
            self._service = MockWorkItemService(mock_data_path)
        else:
            self._service = RealWorkItemService(config or BoardConfig.from_env())

    @property
    def is_mock(self) -> bool:
        """Check if using the mock service."""
        return isinstance(self._service, MockWorkItemService)

    async def get_work_items_by_ids(self, ids: list[int]) -> list[WorkItem]:
        """Fetch work items by id."""
        return await self._service.get_work_items_by_ids(ids)

    async def close(self):
        if hasattr(self._service, "close"):
            await self._service.close()
