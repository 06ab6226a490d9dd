from shared.clients.ClientLoader import load_client
from shared.helper.HelperConfig import HelperConfig
from shared.clients.llm.LLMClientInterface import LLMClientInterface


class LLMClientManager:
    """Instantiates the LLM client used for OCR and metadata extraction (LLM_ENGINE, default "ollama")."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        engine = helper_config.get_string_val("LLM_ENGINE", default="ollama")
        self.client: LLMClientInterface = load_client("llm", engine, helper_config)

    def get_client(self) -> LLMClientInterface:
        """Return the instantiated LLM client."""
        return self.client
