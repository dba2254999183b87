from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    Declares one environment setting an HTTP client needs before it can boot.

    Attributes:
        env_key (str): The raw key, prefixed by the client with "<TYPE>_<ENGINE>_" (e.g. "BASE_URL" → "LLM_OLLAMA_BASE_URL").
        val_type (str): The expected value type: "string", "number" or "bool".
        default (str | int | float | bool | None): Value used when the variable is unset. None marks the setting as required.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | None = None
