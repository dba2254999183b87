from typing import Generic, TypeVar

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig

C = TypeVar("C", bound=ClientInterface)


class EngineClientManager(Generic[C]):
    """
    Instantiates the one client of a capability selected by ``<TYPE>_ENGINE``.

    The engine "openai" of type "llm" resolves to
    ``shared.clients.llm.openai.LLMClientOpenai.LLMClientOpenai``.
    """

    client_type: str = ""
    class_prefix: str = ""
    default_engine: str = ""

    def __init__(self, helper_config: HelperConfig):
        self.helper_config = helper_config
        self.logging = helper_config.get_logger()
        self.client: C = self._initialize_client()

    def _get_engine_from_env(self) -> str:
        """
        Reads the engine from ENV configuration.

        Returns:
            str: Capitalised engine name (e.g. "Ollama").

        Raises:
            ValueError: If the engine setting is empty.
        """
        env_key = f"{self.client_type.upper()}_ENGINE"
        engine = self.helper_config.get_string_val(env_key, default=self.default_engine)
        if not engine or not engine.strip():
            raise ValueError(f"No {self.client_type.upper()} engine specified in configuration ({env_key}).")
        return engine.strip().lower().capitalize()

    def _initialize_client(self) -> C:
        engine = self._get_engine_from_env()
        class_name = f"{self.class_prefix}{engine}"
        try:
            module = __import__(
                f"shared.clients.{self.client_type}.{engine.lower()}.{class_name}",
                fromlist=[class_name],
            )
            client_class = getattr(module, class_name)
        except (ImportError, AttributeError) as e:
            raise ValueError(f"Unsupported {self.client_type.upper()} engine '{engine}'. Error: {e}")
        self.logging.debug("Instantiated %s client for engine: %s", self.client_type.upper(), engine)
        return client_class(helper_config=self.helper_config)

    def get_client(self) -> C:
        return self.client
