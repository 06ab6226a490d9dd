"""
Shared fixtures: environment, config, a fake backend behind httpx.MockTransport,
and booted clients and services wired against it.
"""

import logging
import os
import tempfile

import httpx
import pytest
import pytest_asyncio

# server.api_server configures file logging at import time
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="doclifecycle-tests-"))

from services.audit.AuditCorrelator import AuditCorrelator
from services.extraction.ExtractionInterface import ExtractionInterface
from services.relations.RelationshipGraph import RelationshipGraph
from services.upload.UploadOrchestrator import UploadOrchestrator
from services.versions.VersionChainManager import VersionChainManager
from shared.clients.dms.DMSClientInterface import DMSClientInterface
from shared.clients.dms.DMSClientManager import DMSClientManager
from shared.clients.storage.UploadTransport import UploadTransport
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.context import OrgContext
from shared.models.upload import ExtractedMetadata, UploadFile
from tests.fixtures.fake_backend import DMS_BASE_URL, FakeBackend

ORG_ID = "org-1"
API_KEY = "test-api-key"


class FakeExtraction(ExtractionInterface):
    """Returns canned OCR text and metadata; records its calls into the backend call log."""

    def __init__(self, calls: list[str]) -> None:
        self.calls = calls
        self.ocr_text = "Invoice 2025-001 total 120.00 EUR"
        self.metadata = ExtractedMetadata(
            title="Invoice 2025-001",
            category="Finance",
            keywords=["invoice", "2025"],
            summary="Invoice for consulting services.",
        )
        self.fail_ocr = False
        self.fail_metadata = False

    async def do_ocr(self, file: UploadFile) -> str:
        self.calls.append("extract ocr")
        if self.fail_ocr:
            raise RuntimeError("OCR engine unavailable")
        return self.ocr_text

    async def do_extract_metadata(self, file: UploadFile, declared_type: str) -> ExtractedMetadata:
        self.calls.append(f"extract metadata {declared_type}")
        if self.fail_metadata:
            raise ValueError("model returned garbage")
        return self.metadata


@pytest.fixture(autouse=True)
def env(monkeypatch):
    """Baseline configuration for every test."""
    monkeypatch.setenv("DMS_ENGINE", "documind")
    monkeypatch.setenv("DMS_DOCUMIND_BASE_URL", DMS_BASE_URL)
    monkeypatch.setenv("DMS_DOCUMIND_API_KEY", "dms-secret")
    monkeypatch.setenv("LLM_ENGINE", "ollama")
    monkeypatch.setenv("LLM_OLLAMA_BASE_URL", "http://llm.test")
    monkeypatch.setenv("LLM_CHAT_MODEL", "llama3.2")
    monkeypatch.setenv("APP_API_KEY", API_KEY)
    monkeypatch.setenv("TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("UPLOAD_CHUNK_SIZE", "1024")
    monkeypatch.delenv("UPLOAD_MAX_ATTEMPTS", raising=False)
    monkeypatch.delenv("UPLOAD_MAX_FILE_SIZE_MB", raising=False)
    monkeypatch.delenv("AUDIT_PAGE_SIZE", raising=False)
    monkeypatch.delenv("LLM_VISION_MODEL", raising=False)
    monkeypatch.delenv("LLM_TEMPERATURE", raising=False)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("doclifecycle.tests")))


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def mock_transport(backend: FakeBackend) -> httpx.MockTransport:
    return httpx.MockTransport(backend.handler)


@pytest.fixture
def org() -> OrgContext:
    return OrgContext(org_id=ORG_ID, actor_email="anna@example.com", actor_role="contentManager")


@pytest.fixture
def admin_org() -> OrgContext:
    return OrgContext(org_id=ORG_ID, actor_email="root@example.com", actor_role="orgAdmin")


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested by the upload transport between attempts."""
    return []


@pytest_asyncio.fixture
async def dms_client(helper_config, mock_transport):
    client: DMSClientInterface = DMSClientManager(helper_config=helper_config).get_client()
    await client.boot(transport=mock_transport)
    yield client
    await client.close()


@pytest_asyncio.fixture
async def upload_transport(helper_config, mock_transport, sleeps):
    async def record_sleep(delay: float) -> None:
        sleeps.append(delay)

    transport = UploadTransport(helper_config=helper_config, sleep=record_sleep)
    await transport.boot(transport=mock_transport)
    yield transport
    await transport.close()


@pytest.fixture
def extraction(backend: FakeBackend) -> FakeExtraction:
    return FakeExtraction(backend.calls)


@pytest.fixture
def orchestrator(helper_config, dms_client, upload_transport, extraction) -> UploadOrchestrator:
    return UploadOrchestrator(
        helper_config=helper_config,
        dms_client=dms_client,
        transport=upload_transport,
        extraction=extraction,
    )


@pytest.fixture
def version_manager(helper_config, dms_client) -> VersionChainManager:
    return VersionChainManager(helper_config=helper_config, dms_client=dms_client)


@pytest.fixture
def relationship_graph(helper_config, dms_client) -> RelationshipGraph:
    return RelationshipGraph(helper_config=helper_config, dms_client=dms_client)


@pytest.fixture
def audit_correlator(helper_config, dms_client) -> AuditCorrelator:
    return AuditCorrelator(helper_config=helper_config, dms_client=dms_client)
