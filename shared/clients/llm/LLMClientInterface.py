from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.helper.HelperConfig import HelperConfig


class LLMClientInterface(ClientInterface):
    """
    Chat completion capability used for query optimisation and answering.

    Messages are OpenAI style dicts ({"role": ..., "content": ...}). Engines only
    translate them into their wire format and pull the reply text back out.
    LLM_CHAT_MODEL and LLM_TEMPERATURE apply to every engine.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self.chat_model = helper_config.get_string_val("LLM_CHAT_MODEL", default=self._get_default_chat_model())
        self.temperature = helper_config.get_number_val("LLM_TEMPERATURE", default=0.2)

    def _get_client_type(self) -> str:
        return "llm"

    @abstractmethod
    def _get_default_chat_model(self) -> str:
        pass

    @abstractmethod
    def _get_endpoint_chat(self) -> str:
        pass

    ##########################################
    ################ WIRE ####################
    ##########################################

    @abstractmethod
    def get_chat_payload(self, messages: list[dict]) -> dict:
        """Request body for one non-streaming completion of ``messages``."""
        pass

    @abstractmethod
    def extract_chat_response(self, response_data: dict) -> str:
        """
        Pull the assistant text out of a parsed response body.

        Raises:
            ValueError: If the body carries no reply.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_chat(self, messages: list[dict]) -> str:
        """
        Run one completion and return the reply text.

        Raises:
            ClientResponseError: If the backend answers with a non-2xx status.
            ValueError: If the reply cannot be extracted.
        """
        response = await self.do_request(
            method="POST",
            endpoint=self._get_endpoint_chat(),
            json=self.get_chat_payload(messages),
            raise_on_error=True,
        )
        reply = self.extract_chat_response(response.json())
        self.logging.debug("%s replied with %d characters", self.get_engine_name(), len(reply))
        return reply
