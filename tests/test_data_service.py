"""Tests for the extension data store clients."""

import json

import httpx
import pytest

from retro_board.config import BoardConfig
from retro_board.data_service import ExtensionDataService, MockDataService, RealDataService
from retro_board.exceptions import (
    CollectionNotFoundError,
    DataServiceError,
    DocumentNotFoundError,
)


@pytest.fixture
def config():
    """Test configuration."""
    return BoardConfig(
        organization_url="https://dev.azure.com/example",
        personal_access_token="pat",
        extension_publisher="contoso",
        extension_id="retrospectives",
        request_timeout_seconds=5,
    )


def make_real_store(config, handler) -> RealDataService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RealDataService(config, client=client)


class TestMockDataService:
    """Tests for the in-memory store."""

    def test_fixture_initialization(self, mock_fixture_path):
        """Test the facade picks the mock store when given fixtures."""
        store = ExtensionDataService(mock_data_path=mock_fixture_path)

        assert store.is_mock

    @pytest.mark.asyncio
    async def test_fixture_documents_are_readable(self, mock_fixture_path):
        store = ExtensionDataService(mock_data_path=mock_fixture_path)

        docs = await store.read_documents("board-sprint-42")

        assert {d["id"] for d in docs} == {"item-went-well", "item-ci-fast", "item-flaky-tests"}

    @pytest.mark.asyncio
    async def test_missing_collection_raises(self):
        store = MockDataService()

        with pytest.raises(CollectionNotFoundError) as exc_info:
            await store.read_documents("nothing-here")
        assert exc_info.value.type_key == "DocumentCollectionDoesNotExistException"

    @pytest.mark.asyncio
    async def test_missing_document_raises(self):
        store = MockDataService()
        await store.create_document("b", {"id": "1"})

        with pytest.raises(DocumentNotFoundError):
            await store.read_document("b", "2")

    @pytest.mark.asyncio
    async def test_reads_return_copies(self):
        """Test mutating a read document does not change the stored one."""
        store = MockDataService()
        await store.create_document("b", {"id": "1", "childFeedbackItemIds": []})

        doc = await store.read_document("b", "1")
        doc["childFeedbackItemIds"].append("x")

        assert store.peek("b", "1")["childFeedbackItemIds"] == []

    @pytest.mark.asyncio
    async def test_duplicate_create_rejected(self):
        store = MockDataService()
        await store.create_document("b", {"id": "1"})

        with pytest.raises(DataServiceError):
            await store.create_document("b", {"id": "1"})

    @pytest.mark.asyncio
    async def test_deleted_documents_only_listed_on_request(self):
        store = MockDataService()
        await store.create_document("b", {"id": "1"})
        await store.create_document("b", {"id": "2"})
        await store.delete_document("b", "1")

        assert [d["id"] for d in await store.read_documents("b")] == ["2"]
        assert {d["id"] for d in await store.read_documents("b", include_deleted=True)} == {"1", "2"}

    @pytest.mark.asyncio
    async def test_writes_are_recorded(self):
        store = MockDataService()
        await store.create_document("b", {"id": "1"})
        await store.update_document("b", {"id": "1", "title": "t"})
        await store.delete_document("b", "1")

        assert [w["operation"] for w in store.writes] == ["create", "update", "delete"]


class TestRealDataService:
    """Tests for the REST store against a mocked transport."""

    @pytest.mark.asyncio
    async def test_read_document_url(self, config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["method"] = request.method
            return httpx.Response(200, json={"id": "item-1", "title": "t"})

        store = make_real_store(config, handler)
        doc = await store.read_document("board-1", "item-1")

        assert doc["id"] == "item-1"
        assert seen["method"] == "GET"
        assert seen["url"].startswith(
            "https://extmgmt.dev.azure.com/example/_apis/ExtensionManagement/InstalledExtensions/"
            "contoso/retrospectives/Data/Scopes/Default/Current/Collections/board-1/Documents/item-1"
        )
        assert "api-version=7.1-preview.1" in seen["url"]

    @pytest.mark.asyncio
    async def test_read_documents_unwraps_value(self, config):
        def handler(request):
            return httpx.Response(200, json={"count": 2, "value": [{"id": "a"}, {"id": "b"}]})

        store = make_real_store(config, handler)

        assert [d["id"] for d in await store.read_documents("board-1")] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_missing_collection_maps_type_key(self, config):
        def handler(request):
            return httpx.Response(404, json={
                "message": "The collection does not exist.",
                "typeKey": "DocumentCollectionDoesNotExistException",
            })

        store = make_real_store(config, handler)

        with pytest.raises(CollectionNotFoundError):
            await store.read_documents("board-1")

    @pytest.mark.asyncio
    async def test_missing_document_maps_type_key(self, config):
        def handler(request):
            return httpx.Response(404, json={"message": "nope", "typeKey": "DocumentDoesNotExistException"})

        store = make_real_store(config, handler)

        with pytest.raises(DocumentNotFoundError):
            await store.read_document("board-1", "x")

    @pytest.mark.asyncio
    async def test_server_error_propagates(self, config):
        def handler(request):
            return httpx.Response(500, text="server exploded")

        store = make_real_store(config, handler)

        with pytest.raises(DataServiceError) as exc_info:
            await store.update_document("board-1", {"id": "x"})
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self, config):
        def handler(request):
            raise httpx.ConnectError("no route", request=request)

        store = make_real_store(config, handler)

        with pytest.raises(DataServiceError):
            await store.read_document("board-1", "x")

    @pytest.mark.asyncio
    async def test_non_json_body_wrapped(self, config):
        def handler(request):
            return httpx.Response(200, text="<html>sign in</html>")

        store = make_real_store(config, handler)

        with pytest.raises(DataServiceError) as exc_info:
            await store.read_document("board-1", "x")
        assert exc_info.value.status_code == 200

    @pytest.mark.asyncio
    async def test_non_object_error_body(self, config):
        def handler(request):
            return httpx.Response(500, json=["oops"])

        store = make_real_store(config, handler)

        with pytest.raises(DataServiceError) as exc_info:
            await store.read_document("board-1", "x")
        assert exc_info.value.status_code == 500
        assert exc_info.value.type_key is None

    @pytest.mark.asyncio
    async def test_update_overwrites_etag(self, config):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=seen["body"])

        store = make_real_store(config, handler)
        await store.update_document("board-1", {"id": "x", "__etag": 4})

        assert seen["method"] == "PUT"
        assert seen["body"]["__etag"] == -1

    @pytest.mark.asyncio
    async def test_delete_with_empty_body(self, config):
        def handler(request):
            assert request.method == "DELETE"
            return httpx.Response(204)

        store = make_real_store(config, handler)

        assert await store.delete_document("board-1", "x") is None
