from shared.clients.ClientManager import EngineClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface


class RAGClientManager(EngineClientManager[RAGClientInterface]):
    """Vector store client selected by RAG_ENGINE (default "qdrant")."""

    client_type = "rag"
    class_prefix = "RAGClient"
    default_engine = "qdrant"
