from shared.clients.ClientLoader import load_client
from shared.helper.HelperConfig import HelperConfig
from shared.clients.dms.DMSClientInterface import DMSClientInterface


class DMSClientManager:
    """Instantiates the backend client for the configured DMS engine (DMS_ENGINE, default "documind")."""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        engine = helper_config.get_string_val("DMS_ENGINE", default="documind")
        self.client: DMSClientInterface = load_client("dms", engine, helper_config)

    def get_client(self) -> DMSClientInterface:
        """Return the instantiated DMS client."""
        return self.client
