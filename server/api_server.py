"""FastAPI application entry point for the document lifecycle bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.clients.dms.DMSClientInterface import DMSClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.clients.dms.DMSClientManager import DMSClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.storage.UploadTransport import UploadTransport
from shared.models.errors import (
    DuplicateLinkError,
    FileTooLargeError,
    LifecycleError,
    NotFoundError,
    PlacementRequiredError,
    SelfLinkError,
    UploadCancelledError,
    UploadValidationError,
    VersionConflictError,
)
from services.extraction.LLMExtractionService import LLMExtractionService
from services.upload.UploadOrchestrator import UploadOrchestrator
from services.versions.VersionChainManager import VersionChainManager
from services.relations.RelationshipGraph import RelationshipGraph
from services.audit.AuditCorrelator import AuditCorrelator
from server.routers.UploadRouter import router as upload_router
from server.routers.DocumentRouter import router as document_router
from server.routers.AuditRouter import router as audit_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")

# first match wins, so subclasses go before their bases
ERROR_STATUS_CODES: list[tuple[type[LifecycleError], int]] = [
    (NotFoundError, 404),
    (DuplicateLinkError, 409),
    (VersionConflictError, 409),
    (UploadCancelledError, 409),
    (FileTooLargeError, 413),
    (SelfLinkError, 400),
    (PlacementRequiredError, 400),
    (UploadValidationError, 400),
]


def get_error_status_code(exc: LifecycleError) -> int:
    """HTTP status for a lifecycle failure; backend-side failures map to 502."""
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 502


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    dms_client = DMSClientManager(helper_config=app.state.helper_config).get_client()
    llm_client = LLMClientManager(helper_config=app.state.helper_config).get_client()
    transport = UploadTransport(helper_config=app.state.helper_config)

    logging.info("Booting all clients...")
    for client in [dms_client, llm_client, transport]:
        await client.boot()
    logging.info("All clients booted successfully.")

    wire_services(app, dms_client, llm_client, transport)
    await check_connections(dms_client, llm_client)

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in [dms_client, llm_client, transport]:
        await client.close()
    logging.info("All clients closed.")


def wire_services(
    app: FastAPI,
    dms_client: DMSClientInterface,
    llm_client: LLMClientInterface,
    transport: UploadTransport,
) -> None:
    """Create the lifecycle services on app.state from booted clients."""
    helper_config = app.state.helper_config
    app.state.upload_orchestrator = UploadOrchestrator(
        helper_config=helper_config,
        dms_client=dms_client,
        transport=transport,
        extraction=LLMExtractionService(helper_config=helper_config, llm_client=llm_client),
    )
    app.state.version_manager = VersionChainManager(helper_config=helper_config, dms_client=dms_client)
    app.state.relationship_graph = RelationshipGraph(helper_config=helper_config, dms_client=dms_client)
    app.state.audit_correlator = AuditCorrelator(helper_config=helper_config, dms_client=dms_client)


app = FastAPI(
    title="doc_lifecycle_bridge",
    description=(
        "Document lifecycle engine in front of a multi-tenant document backend: "
        "signed uploads with extraction, version chains, document links and a correlated audit feed."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(upload_router)
app.include_router(document_router)
app.include_router(audit_router)


@app.exception_handler(LifecycleError)
async def lifecycle_error_handler(request: Request, exc: LifecycleError) -> JSONResponse:
    status_code = get_error_status_code(exc)
    if status_code >= 500:
        logging.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"error": type(exc).__name__, "detail": str(exc)})


async def check_connections(dms_client: DMSClientInterface, llm_client: LLMClientInterface) -> None:
    """Check connectivity to the backends on startup.

    Both failures are non-fatal: the server stays up and the affected
    operations fail with a 502 until the backend is reachable.
    """
    for client in [dms_client, llm_client]:
        try:
            result: httpx.Response = await client.do_healthcheck()
        except httpx.HTTPError as exc:
            logging.warning("Client '%s' is not reachable: %s", client.__class__.__name__, exc)
            continue
        if not result.is_success:
            logging.warning(
                "Client '%s' is not reachable (status %d).",
                client.__class__.__name__,
                result.status_code,
            )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting doc_lifecycle_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", os.getcwd()),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
