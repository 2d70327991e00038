"""Extension data store client supporting both real and mock backends."""

import copy
import json
from pathlib import Path
from typing import Any, Optional, Protocol

import httpx

from .config import BoardConfig
from .exceptions import (
    ERRORS_BY_TYPE_KEY,
    CollectionNotFoundError,
    DataServiceError,
    DocumentNotFoundError,
)
from .observability import logger


class DocumentStoreProtocol(Protocol):
    """Protocol for per-collection document storage."""

    async def create_document(self, collection: str, document: dict) -> dict:
        """Create a document in a collection."""
        ...

    async def read_document(self, collection: str, document_id: str) -> dict:
        """Read a single document. Raises DocumentNotFoundError when absent."""
        ...

    async def read_documents(
        self,
        collection: str,
        include_deleted: bool = False,
        poly_read: bool = False,
    ) -> list[dict]:
        """Read every document of a collection. Raises CollectionNotFoundError when never initialized."""
        ...

    async def update_document(self, collection: str, document: dict) -> dict:
        """Replace a document."""
        ...

    async def delete_document(self, collection: str, document_id: str) -> None:
        """Delete a document."""
        ...


class MockDataService:
    """
    In-memory document store for testing and offline runs.

    Optionally seeded from a fixture file shaped like
    {"collections": {"<board id>": [<document>, ...]}}. Documents are copied
    on the way in and out so callers never share state with the store.
    """

    def __init__(self, fixture_path: Optional[str] = None):
        self.fixture_path = Path(fixture_path) if fixture_path else None
        self._collections: dict[str, dict[str, dict]] = {}
        self._deleted: dict[str, dict[str, dict]] = {}
        self.writes: list[dict] = []
        self._load_fixtures()

    def _load_fixtures(self):
        """Load seed documents from the fixture file."""
        if self.fixture_path and self.fixture_path.exists():
            with open(self.fixture_path, "r") as f:
                data = json.load(f)
            for collection, documents in data.get("collections", {}).items():
                self._collections[collection] = {doc["id"]: doc for doc in documents}

    def seed(self, collection: str, documents: list[dict]):
        """Put documents into a collection without recording writes."""
        docs = self._collections.setdefault(collection, {})
        for doc in documents:
            docs[doc["id"]] = copy.deepcopy(doc)

    def _record(self, operation: str, collection: str, document_id: str):
        self.writes.append({
            "operation": operation,
            "collection": collection,
            "id": document_id,
        })

    def _get_collection(self, collection: str) -> dict[str, dict]:
        if collection not in self._collections:
            raise CollectionNotFoundError(
                f"The collection {collection} does not exist."
            )
        return self._collections[collection]

    async def create_document(self, collection: str, document: dict) -> dict:
        docs = self._collections.setdefault(collection, {})
        if document["id"] in docs:
            raise DataServiceError(
                f"Document {document['id']} already exists in {collection}.",
                type_key="DocumentExistsException",
                status_code=409,
            )
        docs[document["id"]] = copy.deepcopy(document)
        self._record("create", collection, document["id"])
        return copy.deepcopy(document)

    async def read_document(self, collection: str, document_id: str) -> dict:
        docs = self._collections.get(collection, {})
        if document_id not in docs:
            raise DocumentNotFoundError(
                f"The document {document_id} does not exist in {collection}."
            )
        return copy.deepcopy(docs[document_id])

    async def read_documents(
        self,
        collection: str,
        include_deleted: bool = False,
        poly_read: bool = False,
    ) -> list[dict]:
        documents = list(self._get_collection(collection).values())
        if include_deleted:
            documents.extend(self._deleted.get(collection, {}).values())
        return copy.deepcopy(documents)

    async def update_document(self, collection: str, document: dict) -> dict:
        docs = self._collections.setdefault(collection, {})
        docs[document["id"]] = copy.deepcopy(document)
        self._record("update", collection, document["id"])
        return copy.deepcopy(document)

    async def delete_document(self, collection: str, document_id: str) -> None:
        docs = self._collections.get(collection, {})
        if document_id not in docs:
            raise DocumentNotFoundError(
                f"The document {document_id} does not exist in {collection}."
            )
        self._deleted.setdefault(collection, {})[document_id] = docs.pop(document_id)
        self._record("delete", collection, document_id)

    def peek(self, collection: str, document_id: str) -> Optional[dict]:
        """Return the stored document without copying (mock only)."""
        return self._collections.get(collection, {}).get(document_id)


class RealDataService:
    """
    Extension data store backed by the Azure DevOps ExtensionManagement REST API.

    Updates are sent with an etag of -1 so the last writer wins.
    """

    def __init__(self, config: BoardConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client or httpx.AsyncClient(
            timeout=config.request_timeout_seconds,
            auth=("", config.personal_access_token or ""),
        )

    def _documents_url(self, collection: str, document_id: Optional[str] = None) -> str:
        c = self.config
        url = (
            f"{c.extension_data_url}/_apis/ExtensionManagement/InstalledExtensions/"
            f"{c.extension_publisher}/{c.extension_id}/Data/Scopes/"
            f"{c.data_scope_type}/{c.data_scope_value}/Collections/{collection}/Documents"
        )
        if document_id:
            url += f"/{document_id}"
        return url

    def _params(self) -> dict[str, str]:
        return {"api-version": self.config.extension_data_api_version}

    def _raise_for_error(self, response: httpx.Response):
        """Translate an error response into a DataServiceError subclass."""
        if response.status_code < 400:
            return

        type_key = None
        message = response.text
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            type_key = payload.get("typeKey")
            message = payload.get("message", message)

        error_cls = ERRORS_BY_TYPE_KEY.get(type_key)
        if error_cls is not None:
            raise error_cls(message, status_code=response.status_code)
        if response.status_code == 404:
            raise DocumentNotFoundError(message, status_code=404)
        raise DataServiceError(message, type_key=type_key, status_code=response.status_code)

    async def _request(self, method: str, url: str, document: Optional[dict] = None) -> Any:
        logger.debug(f"{method} {url}")
        try:
            response = await self._client.request(method, url, params=self._params(), json=document)
        except httpx.HTTPError as e:
            raise DataServiceError(f"Error calling extension data service: {e}") from e
        self._raise_for_error(response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise DataServiceError(
                f"Extension data service returned a non-JSON body: {e}",
                status_code=response.status_code,
            ) from e

    async def create_document(self, collection: str, document: dict) -> dict:
        return await self._request("POST", self._documents_url(collection), document)

    async def read_document(self, collection: str, document_id: str) -> dict:
        return await self._request("GET", self._documents_url(collection, document_id))

    async def read_documents(
        self,
        collection: str,
        include_deleted: bool = False,
        poly_read: bool = False,
    ) -> list[dict]:
        # The REST surface has no soft-delete or poly-read switches; the
        # arguments are accepted for parity with the other stores.
        result = await self._request("GET", self._documents_url(collection))
        if isinstance(result, dict):
            return result.get("value", [])
        return result or []

    async def update_document(self, collection: str, document: dict) -> dict:
        body = dict(document)
        body["__etag"] = -1
        return await self._request("PUT", self._documents_url(collection), body)

    async def delete_document(self, collection: str, document_id: str) -> None:
        await self._request("DELETE", self._documents_url(collection, document_id))

    async def close(self):
        await self._client.aclose()


class ExtensionDataService:
    """
    Unified document store interface.

    Abstracts real vs mock store selection:
    - Pass mock_data_path for testing with fixtures
    - Otherwise uses the real extension data REST API
    """

    def __init__(
        self,
        mock_data_path: Optional[str] = None,
        config: Optional[BoardConfig] = None,
        mock: bool = False,
    ):
        if mock_data_path or mock:
            self._store = MockDataService(mock_data_path)
        else:
            self._store = RealDataService(config or BoardConfig.from_env())

    @property
    def is_mock(self) -> bool:
        """Check if using the mock store."""
        return isinstance(self._store, MockDataService)

    async def create_document(self, collection: str, document: dict) -> dict:
        return await self._store.create_document(collection, document)

    async def read_document(self, collection: str, document_id: str) -> dict:
        return await self._store.read_document(collection, document_id)

    async def read_documents(
        self,
        collection: str,
        include_deleted: bool = False,
        poly_read: bool = False,
    ) -> list[dict]:
        return await self._store.read_documents(collection, include_deleted, poly_read)

    async def update_document(self, collection: str, document: dict) -> dict:
        return await self._store.update_document(collection, document)

    async def delete_document(self, collection: str, document_id: str) -> None:
        await self._store.delete_document(collection, document_id)

    # Mock-specific accessors for testing
    @property
    def writes(self) -> list[dict]:
        """Get recorded writes (mock only)."""
        if hasattr(self._store, "writes"):
            return self._store.writes
        return []

    async def close(self):
        if hasattr(self._store, "close"):
            await self._store.close()
