"""Direct byte transfer to a signed storage destination.

Signed URLs are absolute and point at the storage service, not at the DMS
backend, so this transport owns its own HTTP client instead of going through
ClientInterface.do_request().
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable

import httpx

from shared.clients.dms.models.Upload import SignedDestination
from shared.helper.HelperConfig import HelperConfig
from shared.models.errors import TransportError
from shared.models.upload import ProgressCallback, UploadFile

SleepFunc = Callable[[float], Awaitable[None]]


class UploadTransport:
    """PUTs a file to a signed destination with progress reporting and bounded retry."""

    def __init__(self, helper_config: HelperConfig, sleep: SleepFunc = asyncio.sleep) -> None:
        self.logging = helper_config.get_logger()
        self.timeout = helper_config.get_number_val("STORAGE_TIMEOUT", default=30.0)
        self.max_attempts = max(1, int(helper_config.get_number_val("UPLOAD_MAX_ATTEMPTS", default=3)))
        self.backoff_base_ms = helper_config.get_number_val("UPLOAD_BACKOFF_BASE_MS", default=1000)
        self.backoff_cap_ms = helper_config.get_number_val("UPLOAD_BACKOFF_CAP_MS", default=5000)
        self.chunk_size = int(helper_config.get_number_val("UPLOAD_CHUNK_SIZE", default=256 * 1024))
        self._sleep = sleep
        self._client: httpx.AsyncClient | None = None

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    ##########################################
    ################ HELPERS #################
    ##########################################

    def get_backoff_seconds(self, attempt: int) -> float:
        """Delay before the attempt following `attempt` (1-based): base * 2^(attempt-1), capped."""
        return min(self.backoff_base_ms * (2 ** (attempt - 1)), self.backoff_cap_ms) / 1000

    async def _iter_chunks(self, file: UploadFile, on_chunk: Callable[[int], None]) -> AsyncIterator[bytes]:
        total = file.size_bytes
        sent = 0
        for start in range(0, total, self.chunk_size):
            chunk = file.content[start:start + self.chunk_size]
            yield chunk
            sent += len(chunk)
            on_chunk(sent)

    ##########################################
    ############### TRANSFER #################
    ##########################################

    async def do_transfer(
        self,
        destination: SignedDestination,
        file: UploadFile,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        """Transfer the file bytes to the signed destination.

        Progress is reported as integer percentages that never decrease, even
        when a failed attempt is retried from the first byte.

        Args:
            destination (SignedDestination): The pre-authorized write target.
            file (UploadFile): The file to transfer.
            on_progress (ProgressCallback | None): Receives percentages 0..100.

        Raises:
            RuntimeError: If the transport is not booted.
            TransportError: If every attempt of the retry budget failed. Carries the last failure.
        """
        if self._client is None:
            raise RuntimeError("Upload transport not initialised. Call boot() before transferring.")

        high_water = 0

        def report(sent: int) -> None:
            nonlocal high_water
            if on_progress is None:
                return
            percent = round(sent / file.size_bytes * 100) if file.size_bytes else 100
            if percent > high_water:
                high_water = percent
                on_progress(percent)

        headers = {
            "Content-Type": file.content_type,
            "Content-Length": str(file.size_bytes),
            "x-upsert": "false",
        }

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self._client.put(
                    destination.signed_url,
                    content=self._iter_chunks(file, report),
                    headers=headers,
                )
                if response.is_success:
                    report(file.size_bytes)
                    self.logging.debug(
                        "Transferred %s (%d bytes) on attempt %d", file.filename, file.size_bytes, attempt
                    )
                    return
                error = TransportError(
                    f"Upload failed with status: {response.status_code} {response.reason_phrase}",
                    attempts=attempt,
                    status_code=response.status_code,
                )
            except httpx.HTTPError as exc:
                error = TransportError(f"Upload failed: {exc}", attempts=attempt)

            if attempt == self.max_attempts:
                self.logging.error(
                    "Transfer of %s failed after %d attempts: %s", file.filename, attempt, error
                )
                raise error

            delay = self.get_backoff_seconds(attempt)
            self.logging.warning(
                "Transfer attempt %d/%d for %s failed (%s), retrying in %.1fs",
                attempt, self.max_attempts, file.filename, error, delay,
            )
            await self._sleep(delay)
