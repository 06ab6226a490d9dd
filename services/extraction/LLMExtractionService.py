"""LLM-backed OCR and metadata extraction.

Text files are read directly and images are handed to the configured vision
model as base64. Other binaries (PDF, office files) carry no transcription;
their metadata is inferred from the file name alone. Structured fields are
requested as a JSON object and validated against ExtractedMetadata.
"""

import base64
import json

from pydantic import ValidationError

from services.extraction.ExtractionInterface import ExtractionInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.upload import IMAGE_EXTENSIONS, ExtractedMetadata, UploadFile

MAX_PROMPT_CHARS = 12000  # document text forwarded to the metadata prompt
NO_TEXT_PLACEHOLDER = "(no text available, infer the fields from the file name)"

OCR_PROMPT = (
    "Transcribe all text of this document exactly as it appears. "
    "Return only the transcribed text without commentary."
)

METADATA_PROMPT = (
    "You extract metadata from business documents. The declared document type is '{declared_type}'.\n"
    "Return a JSON object with the keys: title, subject, sender, receiver, category, "
    "tags (list of strings), keywords (list of strings), summary, description, documentDate (ISO date or empty).\n"
    "Use empty strings or empty lists when a value is unknown.\n\n"
    "Document file name: {filename}\n"
    "Document text:\n{text}"
)


class LLMExtractionService(ExtractionInterface):
    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface) -> None:
        self.logging = helper_config.get_logger()
        self._llm = llm_client

    ##########################################
    ################ HELPERS #################
    ##########################################

    def _is_text(self, file: UploadFile) -> bool:
        return file.content_type.startswith("text/") or file.extension in ("txt", "md", "csv")

    def _is_image(self, file: UploadFile) -> bool:
        return file.content_type.startswith("image/") or file.extension in IMAGE_EXTENSIONS

    def _encode(self, file: UploadFile) -> str:
        return base64.b64encode(file.content).decode("ascii")

    ##########################################
    ############### EXTRACTION ###############
    ##########################################

    async def do_ocr(self, file: UploadFile) -> str:
        if self._is_text(file):
            return file.content.decode("utf-8", errors="replace")
        if not self._is_image(file):
            self.logging.warning(
                "No transcription for %s (%s), only text files and images are read", file.filename, file.content_type
            )
            return ""

        message = self._llm.build_user_message(OCR_PROMPT, images_b64=[self._encode(file)])
        text = await self._llm.do_chat([message], vision=True)
        self.logging.debug("OCR of %s produced %d characters", file.filename, len(text))
        return text

    async def do_extract_metadata(self, file: UploadFile, declared_type: str) -> ExtractedMetadata:
        """Ask the LLM for structured fields and validate the reply.

        Raises:
            ValueError: If the reply is not a JSON object matching ExtractedMetadata.
        """
        if self._is_image(file):
            message = self._llm.build_user_message(
                METADATA_PROMPT.format(declared_type=declared_type, filename=file.filename, text="(see attached image)"),
                images_b64=[self._encode(file)],
            )
            reply = await self._llm.do_chat([message], json_mode=True, vision=True)
        else:
            if self._is_text(file):
                text = file.content.decode("utf-8", errors="replace")[:MAX_PROMPT_CHARS]
            else:
                text = NO_TEXT_PLACEHOLDER
            message = self._llm.build_user_message(
                METADATA_PROMPT.format(declared_type=declared_type, filename=file.filename, text=text)
            )
            reply = await self._llm.do_chat([message], json_mode=True)

        try:
            data = json.loads(reply)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Metadata extraction returned invalid JSON for {file.filename}: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError(f"Metadata extraction returned {type(data).__name__} instead of an object for {file.filename}.")

        # models tend to answer "" for unknown values
        cleaned = {key: value for key, value in data.items() if value not in ("", None)}
        try:
            return ExtractedMetadata.model_validate(cleaned)
        except ValidationError as exc:
            raise ValueError(f"Metadata extraction returned unexpected fields for {file.filename}: {exc}") from exc
