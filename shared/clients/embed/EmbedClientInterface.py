from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class EmbedClientInterface(ClientInterface):
    """
    Text embedding capability. Questions and chunks go through the same model,
    so EMBED_MODEL must not change once the vector collection holds data.
    EMBED_DISTANCE is the similarity the collection is created with.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.embed_model = helper_config.get_string_val("EMBED_MODEL", default=self._get_default_embed_model())
        self.embed_distance = helper_config.get_string_val("EMBED_DISTANCE", default="Cosine")

    def _get_client_type(self) -> str:
        return "embed"

    @abstractmethod
    def _get_default_embed_model(self) -> str:
        pass

    @abstractmethod
    def get_endpoint_embedding(self) -> str:
        pass

    ##########################################
    ################ WIRE ####################
    ##########################################

    @abstractmethod
    def get_embed_payload(self, texts: list[str]) -> dict:
        pass

    @abstractmethod
    def extract_embeddings_from_response(self, response_data: dict) -> list[list[float]]:
        """
        Return one vector per input text, in input order.

        Raises:
            ValueError: If the body holds no usable vectors.
        """
        pass

    @abstractmethod
    async def do_resolve_vector_size(self) -> int:
        """Dimension of the vectors the configured model produces."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_fetch_embedding_vector_size(self) -> tuple[int, str]:
        """
        Returns:
            tuple[int, str]: Vector dimension and distance name, as the vector
                collection needs them on creation.
        """
        return await self.do_resolve_vector_size(), self.embed_distance

    async def do_embed(self, texts: list[str]) -> list[list[float]]:
        """
        Embed a batch of texts in one request.

        Raises:
            ClientResponseError: If the backend answers with a non-2xx status.
            ValueError: If the vector count does not match the input count.
        """
        response = await self.do_request(
            method="POST",
            endpoint=self.get_endpoint_embedding(),
            json=self.get_embed_payload(texts),
            raise_on_error=True,
        )
        vectors = self.extract_embeddings_from_response(response.json())
        if len(vectors) != len(texts):
            raise ValueError("Expected %d embeddings from %s, got %d" % (len(texts), self.get_engine_name(), len(vectors)))
        return vectors

    async def do_generate_embedding(self, text: str) -> list[float]:
        return (await self.do_embed([text]))[0]
