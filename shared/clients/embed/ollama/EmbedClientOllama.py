from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

DEFAULT_BASE_URL = "http://localhost:11434"


class EmbedClientOllama(EmbedClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=DEFAULT_BASE_URL)
        self._api_key = self.get_config_val("API_KEY", default="")

    def _get_engine_name(self) -> str:
        return "Ollama"

    def _get_default_embed_model(self) -> str:
        return "nomic-embed-text"

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

    def get_endpoint_embedding(self) -> str:
        return "/api/embed"

    def get_embed_payload(self, texts: list[str]) -> dict:
        return {"model": self.embed_model, "input": texts}

    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        embeddings = response_data.get("embeddings") or []
        if not embeddings or not all(embeddings):
            raise ValueError("Ollama returned no embeddings, got keys %s" % sorted(response_data))
        return embeddings

    async def do_resolve_vector_size(self) -> int:
        # /api/show reports the dimension as "<architecture>.embedding_length"
        response = await self.do_request(
            method="POST",
            endpoint="/api/show",
            json={"model": self.embed_model},
            raise_on_error=True,
        )
        for key, value in (response.json().get("model_info") or {}).items():
            if key.endswith(".embedding_length"):
                return int(value)
        self.logging.warning("No embedding_length for %s in /api/show, probing", self.embed_model)
        return len(await self.do_generate_embedding("dimension"))
