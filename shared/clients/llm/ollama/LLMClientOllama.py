from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

DEFAULT_BASE_URL = "http://localhost:11434"


class LLMClientOllama(LLMClientInterface):
    """Local models served by Ollama's /api/chat."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=DEFAULT_BASE_URL)
        # only set when Ollama sits behind an authenticating proxy
        self._api_key = self.get_config_val("API_KEY", default="")

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_default_chat_model(self) -> str:
        return "llama3.2"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=DEFAULT_BASE_URL),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
        ]

    def _get_auth_header(self) -> dict:
        return {"Authorization": f"Bearer {self._api_key}"} if self._api_key else {}

    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/api/version"

    def _get_endpoint_chat(self) -> str:
        return "/api/chat"

    def get_chat_payload(self, messages: list[dict]) -> dict:
        return {
            "model": self.chat_model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": self.temperature},
        }

    def extract_chat_response(self, response_data: dict) -> str:
        content = (response_data.get("message") or {}).get("content")
        if content is None:
            raise ValueError("Ollama returned no message, got keys %s" % sorted(response_data))
        return content
