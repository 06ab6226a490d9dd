from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


def load_client(client_type: str, engine: str, helper_config: HelperConfig) -> ClientInterface:
    """
    Instantiates the client implementation for a client type and engine by convention.

    The class "{Type}Client{Engine}" is imported from
    shared.clients.{type}.{engine}.{Type}Client{Engine}, e.g. "documind" for
    "dms" resolves to shared.clients.dms.documind.DMSClientDocumind.

    Args:
        client_type (str): "dms" or "llm".
        engine (str): Engine name, case-insensitive.
        helper_config (HelperConfig): Passed to the client constructor.

    Returns:
        ClientInterface: The instantiated client.

    Raises:
        ValueError: If no implementation exists for the engine.
    """
    engine = engine.strip().lower()
    if not engine:
        raise ValueError(f"No {client_type.upper()} engine specified in configuration.")
    class_name = f"{client_type.upper()}Client{engine.capitalize()}"
    try:
        module = __import__(
            f"shared.clients.{client_type.lower()}.{engine}.{class_name}",
            fromlist=[class_name],
        )
        client_class = getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ValueError("Unsupported %s engine '%s'. Error: %s" % (client_type.upper(), engine, e))
    client = client_class(helper_config=helper_config)
    helper_config.get_logger().debug("Instantiated %s client for engine: %s", client_type.upper(), engine)
    return client
