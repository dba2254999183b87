from shared.clients.ClientManager import EngineClientManager
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface


class EmbedClientManager(EngineClientManager[EmbedClientInterface]):
    """Embedding client selected by EMBED_ENGINE ("openai" or "ollama")."""

    client_type = "embed"
    class_prefix = "EmbedClient"
    default_engine = "openai"
