from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter a client reads from the environment.

    Attributes:
        env_key (str): The raw key, prefixed by the client type and engine (e.g. "BASE_URL" -> "DMS_DOCUMIND_BASE_URL").
        val_type (str): The expected value type. Supported types are "string", "number", "bool" and "list".
        default (str | int | float | bool | list | None): Fallback if the variable is not set. None marks the key as required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None
