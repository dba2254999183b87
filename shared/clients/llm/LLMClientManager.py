from shared.clients.ClientManager import EngineClientManager
from shared.clients.llm.LLMClientInterface import LLMClientInterface


class LLMClientManager(EngineClientManager[LLMClientInterface]):
    """Chat model client selected by LLM_ENGINE ("openai" or "ollama")."""

    client_type = "llm"
    class_prefix = "LLMClient"
    default_engine = "openai"
