"""Upload orchestration service.

Moves one local file into durable storage and commits it as a document:
sign → transfer → extract (OCR + metadata in parallel) → validate placement
→ materialize folders → create record → finalize. A document is only handed
back once finalize succeeded; every failure leaves the session in the
`error` state and is raised as a LifecycleError subclass.
"""

import asyncio
from contextlib import asynccontextmanager
from functools import partial

import httpx

from services.extraction.ExtractionInterface import ExtractionInterface
from shared.clients.dms.DMSClientInterface import DMSClientInterface
from shared.clients.dms.models.Document import DocumentDetails
from shared.clients.dms.models.Upload import SignedDestination
from shared.clients.storage.UploadTransport import UploadTransport
from shared.helper.HelperConfig import HelperConfig
from shared.models.context import OrgContext
from shared.models.errors import (
    ApiRequestError,
    ExtractionError,
    FileTooLargeError,
    FinalizeError,
    FolderCreationError,
    LifecycleError,
    PlacementRequiredError,
    RecordCreationError,
    SigningError,
    UploadCancelledError,
    UploadValidationError,
)
from shared.models.upload import (
    ExtractedMetadata,
    ProgressCallback,
    UploadRequest,
    UploadSession,
    UploadState,
)

TRANSFER_PROGRESS_CAP = 90  # headroom left visible for post-processing
DEFAULT_CATEGORY = "General"


def normalize_folder_path(folder_path: list[str]) -> list[str]:
    """Drop empty segments and surrounding whitespace, e.g. ["Finance ", "", "2025"] -> ["Finance", "2025"]."""
    return [segment.strip() for segment in folder_path if segment and segment.strip()]


def build_document_body(request: UploadRequest, metadata: ExtractedMetadata) -> dict:
    """Build the create-record payload from the request placement and the extracted fields."""
    file = request.file
    return {
        "title": metadata.title or file.filename,
        "filename": file.filename,
        "type": request.resolved_type(),
        "subject": metadata.subject or "",
        "description": metadata.description or metadata.summary or "",
        "category": metadata.category or DEFAULT_CATEGORY,
        "tags": metadata.tags,
        "keywords": metadata.keywords,
        "sender": metadata.sender or "",
        "receiver": metadata.receiver or "",
        "document_date": metadata.document_date or "",
        "folderPath": normalize_folder_path(request.folder_path),
        "departmentId": request.department_id,
    }


class UploadOrchestrator:
    """Runs upload sessions; at most one session per organization at a time."""

    def __init__(
        self,
        helper_config: HelperConfig,
        dms_client: DMSClientInterface,
        transport: UploadTransport,
        extraction: ExtractionInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._dms = dms_client
        self._transport = transport
        self._extraction = extraction
        self.max_file_size_bytes = int(helper_config.get_number_val("UPLOAD_MAX_FILE_SIZE_MB", default=50) * 1024 * 1024)
        self._org_locks: dict[str, asyncio.Lock] = {}
        self._org_lock_users: dict[str, int] = {}

    ##########################################
    ################ SESSIONS ################
    ##########################################

    def new_session(self, request: UploadRequest, on_progress: ProgressCallback | None = None) -> UploadSession:
        session = UploadSession(request=request)
        if on_progress:
            session.subscribe(on_progress)
        return session

    @asynccontextmanager
    async def _org_slot(self, org_id: str):
        """Hold the org lock; the lock is dropped again once no upload of the org runs or waits."""
        # folder creation is check-then-act, so uploads of one org must not interleave
        lock = self._org_locks.setdefault(org_id, asyncio.Lock())
        self._org_lock_users[org_id] = self._org_lock_users.get(org_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._org_lock_users[org_id] -= 1
            if not self._org_lock_users[org_id]:
                del self._org_lock_users[org_id]
                del self._org_locks[org_id]

    async def do_upload(
        self,
        context: OrgContext,
        request: UploadRequest,
        on_progress: ProgressCallback | None = None,
    ) -> UploadSession:
        """Create a session for the request and run it to completion.

        Returns:
            UploadSession: The session in state `success` with its committed document.

        Raises:
            LifecycleError: Any orchestration failure; the session is left in state `error`.
        """
        session = self.new_session(request, on_progress)
        await self.do_run(context, session)
        return session

    async def do_resubmit(self, context: OrgContext, session: UploadSession) -> DocumentDetails:
        """Restart a failed session from signing with the same file."""
        if session.state not in (UploadState.ERROR, UploadState.IDLE):
            raise UploadValidationError(f"Cannot resubmit a session in state '{session.state.value}'.")
        session.reset()
        session.attempts += 1
        return await self.do_run(context, session)

    async def do_run(self, context: OrgContext, session: UploadSession) -> DocumentDetails:
        """Run all steps of one upload session.

        Args:
            context (OrgContext): Organization scope and acting user.
            session (UploadSession): The session to run; mutated in place.

        Returns:
            DocumentDetails: The committed document.

        Raises:
            LifecycleError: The failure of the first step that failed.
        """
        async with self._org_slot(context.org_id):
            try:
                document = await self._run_steps(context, session)
            except LifecycleError as exc:
                session.state = UploadState.ERROR
                session.error = str(exc)
                self.logging.error(
                    "Upload of %s to org %s failed: %s", session.request.file.filename, context.org_id, exc
                )
                raise
            except asyncio.CancelledError:
                session.cancel()
                raise
        session.document = document
        session.state = UploadState.SUCCESS
        self.logging.info(
            "Upload of %s committed as document %s", session.request.file.filename, document.id, color="green"
        )
        return document

    ##########################################
    ################# STEPS ##################
    ##########################################

    async def _run_steps(self, context: OrgContext, session: UploadSession) -> DocumentDetails:
        request = session.request
        self._validate_file(session)

        session.state = UploadState.UPLOADING
        session.report_progress(0)

        destination = await self._sign(context, session)
        await self._transfer(destination, session)

        session.report_progress(100)
        session.state = UploadState.PROCESSING

        ocr_text, metadata = await self._derive_metadata(session)
        self._validate_placement(context, request)
        if session.cancelled:
            raise UploadCancelledError(f"Upload of {request.file.filename} was cancelled before commit.")

        await self._materialize_folders(context, normalize_folder_path(request.folder_path))

        # once the record is issued the commit must run to the end, even if the caller goes away
        commit = asyncio.ensure_future(self._commit(context, session, destination, ocr_text, metadata))
        try:
            return await asyncio.shield(commit)
        except asyncio.CancelledError:
            commit.add_done_callback(partial(self._settle_detached_commit, context, session))
            raise

    def _settle_detached_commit(self, context: OrgContext, session: UploadSession, commit: asyncio.Future) -> None:
        """Record the outcome of a commit whose caller was cancelled."""
        filename = session.request.file.filename
        if commit.cancelled():
            session.state = UploadState.ERROR
            session.error = f"Commit of {filename} was cancelled."
            self.logging.error("Commit of %s to org %s was cancelled", filename, context.org_id)
            return

        exc = commit.exception()
        if exc is not None:
            session.state = UploadState.ERROR
            session.error = str(exc)
            self.logging.error("Detached commit of %s to org %s failed: %s", filename, context.org_id, exc)
            return

        session.document = commit.result()
        session.state = UploadState.SUCCESS
        self.logging.info(
            "Detached commit of %s finished as document %s", filename, session.document.id, color="green"
        )

    def _validate_file(self, session: UploadSession) -> None:
        file = session.request.file
        if not file.filename:
            raise UploadValidationError("The file has no name.")
        if file.size_bytes == 0:
            raise UploadValidationError(f"The file {file.filename} is empty.")
        if file.size_bytes > self.max_file_size_bytes:
            raise FileTooLargeError(
                "Files must be smaller than %dMB. %s is %.1fMB."
                % (self.max_file_size_bytes // (1024 * 1024), file.filename, file.size_bytes / 1024 / 1024),
                size_bytes=file.size_bytes,
                limit_bytes=self.max_file_size_bytes,
            )

    async def _sign(self, context: OrgContext, session: UploadSession) -> SignedDestination:
        file = session.request.file
        try:
            destination = await self._dms.do_sign_upload(context.org_id, file.filename, file.content_type)
        except (ApiRequestError, httpx.HTTPError, ValueError) as exc:
            raise SigningError(f"Failed to obtain signed upload URL for {file.filename}: {exc}") from exc
        session.signed_url = destination.signed_url
        session.storage_key = destination.storage_key
        return destination

    async def _transfer(self, destination: SignedDestination, session: UploadSession) -> None:
        await self._transport.do_transfer(
            destination,
            session.request.file,
            on_progress=lambda percent: session.report_progress(min(percent, TRANSFER_PROGRESS_CAP)),
        )

    async def _derive_metadata(self, session: UploadSession) -> tuple[str, ExtractedMetadata]:
        request = session.request
        try:
            ocr_text, metadata = await asyncio.gather(
                self._extraction.do_ocr(request.file),
                self._extraction.do_extract_metadata(request.file, request.resolved_type()),
            )
        except Exception as exc:
            raise ExtractionError(f"Metadata extraction failed for {request.file.filename}: {exc}") from exc
        return ocr_text, metadata

    def _validate_placement(self, context: OrgContext, request: UploadRequest) -> None:
        if context.is_elevated and not normalize_folder_path(request.folder_path) and not request.department_id:
            raise PlacementRequiredError("Please select a department before uploading documents.")

    async def _materialize_folders(self, context: OrgContext, folder_path: list[str]) -> None:
        """Ensure every prefix of folder_path exists, shortest first."""
        if not folder_path:
            return
        try:
            existing = {tuple(folder) for folder in await self._dms.do_fetch_folders(context.org_id)}
        except (ApiRequestError, httpx.HTTPError) as exc:
            raise FolderCreationError(f"Could not list folders: {exc}", path=[]) from exc

        for depth in range(1, len(folder_path) + 1):
            prefix = folder_path[:depth]
            if tuple(prefix) in existing:
                self.logging.debug("Folder /%s already exists, skipping creation", "/".join(prefix))
                continue
            try:
                await self._dms.do_create_folder(context.org_id, parent_path=prefix[:-1], name=prefix[-1])
            except (ApiRequestError, httpx.HTTPError) as exc:
                raise FolderCreationError(
                    f"Could not create folder structure at /{'/'.join(prefix)}: {exc}", path=prefix
                ) from exc
            existing.add(tuple(prefix))
            self.logging.info("Created folder /%s in org %s", "/".join(prefix), context.org_id)

    async def _commit(
        self,
        context: OrgContext,
        session: UploadSession,
        destination: SignedDestination,
        ocr_text: str,
        metadata: ExtractedMetadata,
    ) -> DocumentDetails:
        request = session.request
        file = request.file
        body = build_document_body(request, metadata)

        try:
            if request.version_of:
                created = await self._dms.do_create_version(context.org_id, request.version_of, body)
            else:
                created = await self._dms.do_create_document(context.org_id, body)
        except (ApiRequestError, httpx.HTTPError, ValueError) as exc:
            raise RecordCreationError(f"Document creation failed for {file.filename}: {exc}") from exc
        if not created.id:
            raise RecordCreationError(f"Document creation failed for {file.filename}: no id returned.")

        try:
            finalized = await self._dms.do_finalize_upload(
                context.org_id,
                document_id=created.id,
                storage_key=destination.storage_key,
                file_size_bytes=file.size_bytes,
                mime_type=file.content_type,
                content_hash=file.content_hash,
            )
        except (ApiRequestError, httpx.HTTPError, ValueError) as exc:
            raise FinalizeError(
                f"Document {created.id} was created but could not be finalized: {exc}", document_id=created.id
            ) from exc

        try:
            await self._dms.do_store_extraction(
                context.org_id, created.id, ocr_text, metadata.model_dump(by_alias=True)
            )
        except (ApiRequestError, httpx.HTTPError) as exc:
            self.logging.warning("Failed to save extraction data for document %s: %s", created.id, exc)

        document = finalized or created
        return document.model_copy(update={
            "content": ocr_text,
            "keywords": document.keywords or metadata.keywords,
            "summary": document.summary or metadata.summary,
            "folder_path": document.folder_path or body["folderPath"],
        })
