"""Tests for the Documind DMS client: response parsing and request shapes."""

import httpx
import pytest

from shared.clients.dms.documind.DMSClientDocumind import DMSClientDocumind
from shared.models.errors import ApiRequestError


@pytest.fixture
def client(helper_config) -> DMSClientDocumind:
    return DMSClientDocumind(helper_config=helper_config)


class TestParsers:
    """Test parsing of backend payloads"""

    def test_sign_response_requires_url_and_key(self, client):
        """Test a sign response without storage key is rejected"""
        with pytest.raises(ValueError):
            client._parse_endpoint_upload_sign({"signedUrl": "https://storage.test/object/x"})

    def test_sign_response_snake_case(self, client):
        """Test snake_case keys are accepted"""
        destination = client._parse_endpoint_upload_sign({"signed_url": "https://s/x", "storage_key": "k"})
        assert destination.storage_key == "k"

    def test_folder_formats(self, client):
        """Test segment arrays, path objects and slash strings"""
        folders = client._parse_endpoint_folders(
            [["Finance"], {"path": ["Finance", "2025"]}, "HR/Contracts", {"path": ""}]
        )
        assert folders == [["Finance"], ["Finance", "2025"], ["HR", "Contracts"]]

    def test_document_snake_and_camel_case(self, client):
        """Test both key styles map to the same fields"""
        camel = client._parse_endpoint_document(
            {"id": 7, "title": "A", "versionGroupId": "g", "versionNumber": 2, "isCurrentVersion": False}
        )
        snake = client._parse_endpoint_document(
            {"id": "7", "name": "A", "version_group_id": "g", "version_number": 2, "is_current_version": False}
        )
        assert camel.id == snake.id == "7"
        assert camel.title == snake.title == "A"
        assert camel.version_group_id == snake.version_group_id == "g"
        assert camel.version_number == snake.version_number == 2
        assert camel.is_current_version is snake.is_current_version is False

    def test_document_timestamps(self, client):
        """Test ISO strings with Z and epoch milliseconds are both timezone-aware"""
        doc = client._parse_endpoint_document(
            {"id": "1", "uploadedAt": "2025-03-01T10:00:00Z", "deletedAt": 1740823200000}
        )
        assert doc.uploaded_at.tzinfo is not None
        assert doc.is_deleted is True

    def test_audit_records(self, client):
        """Test actor fallback, path joining and millisecond timestamps"""
        events = client._parse_endpoint_audit([
            {"id": 1, "ts": "2025-03-01T10:00:00Z", "type": "move", "actor_email": "anna@example.com", "path": ["Finance", "2025"]},
            {"id": 2, "ts": "2025-03-01T11:00:00Z", "type": "edit", "actor_user_id": "user-3"},
            {"id": 3, "ts": "2025-03-01T12:00:00Z", "type": "create"},
        ])

        assert [e.actor for e in events] == ["anna@example.com", "user-3", "system"]
        assert events[0].path == "Finance/2025"
        assert events[0].timestamp_ms == 1740823200000

    def test_unknown_audit_types_are_skipped(self, client):
        """Test records with types outside the known set are dropped"""
        events = client._parse_endpoint_audit({"events": [
            {"id": 1, "ts": "2025-03-01T10:00:00Z", "type": "export"},
            {"id": 2, "ts": "2025-03-01T10:00:00Z", "type": "versionSet"},
        ]})

        assert [e.type for e in events] == ["versionSet"]


class TestRequests:
    """Test request shapes sent to the backend"""

    @pytest.mark.asyncio
    async def test_bearer_auth_and_org_scoped_path(self, client):
        """Test requests carry the API key and the org id in the path"""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[["Finance"]])

        await client.boot(transport=httpx.MockTransport(handler))
        try:
            folders = await client.do_fetch_folders("org-9")
        finally:
            await client.close()

        assert folders == [["Finance"]]
        assert seen[0].url.path == "/orgs/org-9/folders"
        assert seen[0].headers["Authorization"] == "Bearer dms-secret"

    @pytest.mark.asyncio
    async def test_error_status_raises(self, client):
        """Test non-2xx answers raise ApiRequestError with the status"""
        await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(409, json={})))
        try:
            with pytest.raises(ApiRequestError) as exc_info:
                await client.do_link("org-9", "A", "B", "related")
        finally:
            await client.close()

        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_finalize_without_record(self, client):
        """Test an empty finalize answer yields None"""
        await client.boot(transport=httpx.MockTransport(lambda request: httpx.Response(204)))
        try:
            result = await client.do_finalize_upload("org-9", "doc-1", "key", 10, "application/pdf")
        finally:
            await client.close()

        assert result is None

    @pytest.mark.asyncio
    async def test_request_before_boot(self, client):
        """Test requests on an unbooted client raise RuntimeError"""
        with pytest.raises(RuntimeError):
            await client.do_fetch_documents("org-9")
