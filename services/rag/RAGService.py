"""RAG question answering and conversation management.

Answer pipeline (strictly ordered):
  history → optimized query → embedding → intent / k → top-k chunks →
  context strategy → prompt → chat model → persist user turn, then assistant turn.
"""

from services.rag.ContextBuilder import ContextBuilder
from services.rag.PromptBuilder import PromptBuilder
from services.rag.QueryOptimizer import QueryOptimizer
from services.rag.RetrievalStrategySelector import select_plan
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import AskResponse, Conversation, ConversationMessage
from shared.models.document import IndexStats, SimilarDocument
from shared.models.errors import ConversationNotFoundError
from shared.repositories.RepositoryInterfaces import (
    ConversationRepository,
    DocumentVectorRepository,
    ProcessedFileRepository,
)


class RAGService:
    def __init__(
        self,
        helper_config: HelperConfig,
        conversation_repository: ConversationRepository,
        vector_repository: DocumentVectorRepository,
        processed_file_repository: ProcessedFileRepository,
        embed_client: EmbedClientInterface,
        llm_client: LLMClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._conversations = conversation_repository
        self._vectors = vector_repository
        self._processed_files = processed_file_repository
        self._embed_client = embed_client
        self._llm_client = llm_client
        self._optimizer = QueryOptimizer(helper_config=helper_config, llm_client=llm_client)
        self._context_builder = ContextBuilder(helper_config=helper_config, vector_repository=vector_repository)
        self._prompt_builder = PromptBuilder(
            language=helper_config.get_string_val("RAG_ANSWER_LANGUAGE", default="español")
        )

    ##########################################
    ################## ASK ###################
    ##########################################

    async def do_ask_with_rag(self, question: str, conversation_id: int, user_id: int) -> AskResponse:
        """Answer `question` inside a conversation using the indexed documents.

        Args:
            question (str): The raw user question.
            conversation_id (int): Conversation the turn belongs to.
            user_id (int): Owner of the conversation.

        Returns:
            AskResponse: The assistant answer.

        Raises:
            ConversationNotFoundError: If the conversation does not exist or belongs to another user.
            ClientResponseError: If the embedding or the final chat call fails.
        """
        await self._get_owned_conversation(conversation_id, user_id)
        history = await self._conversations.get_messages(conversation_id)

        optimized = await self._optimizer.do_optimize(question, history)
        embedding = await self._embed_client.do_generate_embedding(optimized or question)

        plan = select_plan(question)
        results = await self._vectors.find_similar(embedding, plan.k)
        context = await self._context_builder.do_build(plan, results)
        self.logging.info(
            "Conversation %d: intent=%s k=%d hits=%d strategy=%s",
            conversation_id, plan.intent, plan.k, len(results), context.strategy,
        )

        messages = self._prompt_builder.build_messages(question, history, context)
        answer = await self._llm_client.do_chat(messages)

        await self._conversations.add_message(conversation_id, "user", question)
        await self._conversations.add_message(conversation_id, "assistant", answer)
        return AskResponse(content=answer)

    ##########################################
    ############# CONVERSATIONS ##############
    ##########################################

    async def _get_owned_conversation(self, conversation_id: int, user_id: int) -> Conversation:
        conversation = await self._conversations.find_by_id(conversation_id)
        if conversation is None or conversation.user_id != user_id:
            raise ConversationNotFoundError(f"Conversation {conversation_id} not found")
        return conversation

    async def do_create_conversation(self, user_id: int, title: str) -> int:
        conversation = await self._conversations.create(user_id, title.strip() or "Nueva conversación")
        return conversation.id

    async def do_get_conversation_history(self, conversation_id: int) -> list[ConversationMessage]:
        """History stays readable after the conversation is deactivated."""
        return await self._conversations.get_messages(conversation_id)

    async def do_get_user_conversations(self, user_id: int) -> list[Conversation]:
        return await self._conversations.find_by_user_id(user_id)

    async def do_deactivate_conversation(self, conversation_id: int) -> bool:
        return await self._conversations.deactivate(conversation_id)

    async def do_update_conversation_title(self, conversation_id: int, user_id: int, title: str) -> Conversation:
        await self._get_owned_conversation(conversation_id, user_id)
        return await self._conversations.update_title(conversation_id, title)

    ##########################################
    ################# INDEX ##################
    ##########################################

    async def do_search_similar_documents(self, text: str, k: int = 5) -> list[SimilarDocument]:
        embedding = await self._embed_client.do_generate_embedding(text)
        return await self._vectors.find_similar(embedding, k)

    async def do_get_stats(self) -> IndexStats:
        files = await self._processed_files.find_all()
        total_chunks = await self._vectors.count_all()
        return IndexStats(total_files=len(files), total_chunks=total_chunks, files=files)

    async def do_clear_database(self) -> None:
        self.logging.warning("Clearing vector store and processed-file ledger")
        await self._vectors.clear_all()
        await self._processed_files.clear_all()
