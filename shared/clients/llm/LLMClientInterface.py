from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    """Chat client used for OCR transcription and structured metadata extraction.

    Models are configured per client type rather than per engine:
    LLM_CHAT_MODEL (required), LLM_VISION_MODEL (falls back to the chat model)
    and LLM_TEMPERATURE (default 0, extraction should be repeatable).
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

        prefix = self.get_client_type().upper()
        self.chat_model = helper_config.get_string_val(f"{prefix}_CHAT_MODEL", default=None)
        self.vision_model = helper_config.get_string_val(f"{prefix}_VISION_MODEL", default=self.chat_model)
        self.temperature = helper_config.get_number_val(f"{prefix}_TEMPERATURE", default=0.0)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        return "llm"

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        pass

    ################ PAYLOAD BUILDER ##################
    @abstractmethod
    def build_user_message(self, text: str, images_b64: list[str] | None = None) -> dict:
        """Build a backend-specific user message, optionally carrying base64 images."""
        pass

    @abstractmethod
    def get_chat_payload(self, messages: list[dict], json_mode: bool = False, vision: bool = False) -> dict:
        """Build the backend-specific request body for a chat request.

        Args:
            messages (list[dict]): Messages as built by build_user_message().
            json_mode (bool): Ask the backend to constrain the reply to a JSON object.
            vision (bool): Use the vision model instead of the chat model.

        Returns:
            dict: JSON-serialisable request body.
        """
        pass

    ##########################################
    ################# OTHER ##################
    ##########################################

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        """
        Raises:
            ValueError: If the response does not contain a reply.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, messages: list[dict], json_mode: bool = False, vision: bool = False) -> str:
        """Send a chat request and return the assistant reply text.

        Raises:
            ApiRequestError: If the backend answers with a non-2xx status.
            ValueError: If the response does not contain a valid reply.
        """
        response_data = await self.do_request_json(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=self.get_chat_payload(messages, json_mode=json_mode, vision=vision),
        )
        return self.extract_chat_response(response_data)
