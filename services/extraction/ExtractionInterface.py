from abc import ABC, abstractmethod

from shared.models.upload import ExtractedMetadata, UploadFile


class ExtractionInterface(ABC):
    """Black-box metadata capabilities consumed by the upload orchestrator."""

    @abstractmethod
    async def do_ocr(self, file: UploadFile) -> str:
        """Transcribe the text content of a file.

        Args:
            file (UploadFile): The uploaded file.

        Returns:
            str: The extracted text.
        """
        pass

    @abstractmethod
    async def do_extract_metadata(self, file: UploadFile, declared_type: str) -> ExtractedMetadata:
        """Extract structured fields (title, sender, category, ...) from a file.

        Args:
            file (UploadFile): The uploaded file.
            declared_type (str): The document type chosen for the upload (e.g. "PDF", "Image").

        Returns:
            ExtractedMetadata: The extracted fields.
        """
        pass
