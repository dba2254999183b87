"""Rewrites a user question plus recent conversation into a vector-search string."""

import re

from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.conversation import ConversationMessage

OPTIMIZER_HISTORY_TURNS = 6
MIN_OPTIMIZED_LENGTH = 3

OPTIMIZER_SYSTEM_PROMPT = """Eres un optimizador de consultas para búsqueda vectorial semántica. Tu ÚNICA función es transformar la consulta del usuario en una versión optimizada.

REGLAS ESTRICTAS:
- Responde ÚNICAMENTE con palabras clave de búsqueda separadas por espacios
- NO agregues introducciones, explicaciones ni comentarios
- NO uses frases como "aquí tienes" o "la consulta optimizada es"
- Combina el contexto conversacional con la pregunta específica
- Expande términos vagos con el tema inmediatamente anterior de la conversación
- Mantén las palabras clave técnicas importantes
- Si el usuario repregunta sobre un tema anterior, la búsqueda debe reflejar ese tema

EJEMPLOS:
Contexto: discusión sobre fútbol → Pregunta: "¿y los goles?" → Respuesta: "estadísticas goles fútbol partidos marcadores"
Contexto: programación Python → Pregunta: "¿cómo optimizar?" → Respuesta: "optimización rendimiento código Python técnicas algoritmos"
Contexto: recetas cocina → Pregunta: "sin gluten" → Respuesta: "recetas sin gluten celíacos ingredientes alternativos harina\""""

# open requests are better served by the literal question than by keywords
OPEN_REQUEST_MARKERS = (
    "háblame de",
    "hablame de",
    "contame sobre",
    "contame de",
    "cuéntame sobre",
    "cuentame sobre",
    "explícame",
    "explicame",
    "tell me about",
)

_RESPONSE_PREFIX = re.compile(
    r"^(?:(?:la consulta optimizada es|aquí tienes|aqui tienes)\s*:?|respuesta:|optimizada:)\s*", re.IGNORECASE
)
_EDGE_QUOTES = re.compile(r'^[\["\s]+|["\s\]]+$')
_PUNCTUATION = re.compile(r"[¿?¡!]")
_STOPWORDS = re.compile(r"(?<!\w)(cómo|qué|cuál|cuáles|dónde|cuándo|por qué|para qué)(?!\w)", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def basic_query_cleanup(query: str) -> str:
    """Strip question/exclamation marks and interrogatives, collapse whitespace."""
    cleaned = _PUNCTUATION.sub("", query)
    cleaned = _STOPWORDS.sub("", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def is_open_request(question: str) -> bool:
    lowered = question.lower()
    return any(marker in lowered for marker in OPEN_REQUEST_MARKERS)


class QueryOptimizer:
    def __init__(self, helper_config: HelperConfig, llm_client: LLMClientInterface):
        self.logging = helper_config.get_logger()
        self._llm_client = llm_client

    def build_optimizer_messages(self, question: str, history: list[ConversationMessage]) -> list[dict]:
        recent = history[-OPTIMIZER_HISTORY_TURNS:]
        context = "\n".join(f"{m.role}: {m.content}" for m in recent)
        return [
            {"role": "system", "content": OPTIMIZER_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f"CONTEXTO DE CONVERSACIÓN:\n{context}\n\nPREGUNTA ACTUAL:\n{question}",
            },
        ]

    def clean_optimizer_response(self, response: str, fallback: str) -> str:
        """Normalise the model output; degenerate or refusing answers fall back to basic cleanup."""
        cleaned = _RESPONSE_PREFIX.sub("", response.strip())
        cleaned = _EDGE_QUOTES.sub("", cleaned)
        cleaned = _WHITESPACE.sub(" ", cleaned.replace("\n", " ")).strip()
        if len(cleaned) < MIN_OPTIMIZED_LENGTH or "no puedo" in cleaned.lower():
            return basic_query_cleanup(fallback)
        return cleaned

    async def do_optimize(self, question: str, history: list[ConversationMessage]) -> str:
        """Return the search string for `question`.

        Never raises for LLM problems: any failure falls back to basic cleanup.
        """
        if is_open_request(question):
            return basic_query_cleanup(question)
        try:
            response = await self._llm_client.do_chat(self.build_optimizer_messages(question, history))
        except Exception as e:
            self.logging.warning("Query optimizer failed, using basic cleanup: %s", e)
            return basic_query_cleanup(question)
        optimized = self.clean_optimizer_response(response, question)
        self.logging.debug("Optimized query: '%s' -> '%s'", question, optimized)
        return optimized
