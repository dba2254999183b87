"""Builds the final chat messages for an answer: system rules, recent history, context and question."""

from services.rag.ContextBuilder import AssembledContext
from shared.models.conversation import ConversationMessage

ANSWER_HISTORY_TURNS = 10

SYSTEM_PROMPT_TEMPLATE = """Eres un asistente experto en análisis documental que utiliza RAG (Retrieval Augmented Generation).

REGLAS:
1. Responde ÚNICAMENTE con la información del CONTEXTO. No inventes datos.
2. Si el CONTEXTO no alcanza para responder, dilo y sugiere cómo reformular la pregunta.
3. Responde siempre en {language}, de forma clara y estructurada.
4. Usa markdown: títulos (##) para respuestas extensas y viñetas para enumeraciones.
5. Cita SIEMPRE la fuente de cada dato como enlace markdown [archivo](url) cuando el CONTEXTO trae el enlace, o por su nombre si no lo trae.
6. Si el CONTEXTO incluye varias fuentes, intégralas y compáralas.
7. Mantén coherencia con el historial de la conversación y usa el tema previo para interpretar preguntas vagas."""

STRATEGY_INSTRUCTIONS = {
    "empty": (
        "Todavía no hay documentos indexados. Explica amablemente que aún no hay información cargada, "
        "presenta tu rol y sugiere sincronizar o subir documentos para poder responder."
    ),
    "weak_match": (
        "No hay una coincidencia exacta, pero estos documentos parecen relacionados. Preséntalos de forma "
        "conversacional con su enlace, explica brevemente de qué tratan y pregunta al usuario si alguno es "
        "lo que busca. No digas que no hay resultados."
    ),
    "full_document": (
        "El CONTEXTO contiene el documento completo (o su parte inicial si está truncado). Elabora un resumen "
        "estructurado con las secciones principales y sus puntos clave. Si el contenido está truncado, indícalo."
    ),
    "comparison": (
        "El CONTEXTO está agrupado por documento. Compara la información entre documentos, destacando "
        "similitudes y diferencias; una tabla o viñetas por documento son adecuadas."
    ),
    "pointed": (
        "Responde de forma precisa a la pregunta usando los fragmentos relevantes del CONTEXTO y cita la "
        "fuente de cada dato."
    ),
}


class PromptBuilder:
    def __init__(self, language: str = "español"):
        self.language = language

    def build_system_prompt(self) -> str:
        return SYSTEM_PROMPT_TEMPLATE.format(language=self.language)

    def build_user_turn(self, question: str, context: AssembledContext) -> str:
        return (
            f"CONTEXTO:\n{context.text}\n\n"
            f"INSTRUCCIONES:\n{STRATEGY_INSTRUCTIONS[context.strategy]}\n\n"
            f"PREGUNTA:\n{question}"
        )

    def build_messages(self, question: str, history: list[ConversationMessage], context: AssembledContext) -> list[dict]:
        """Return [system, last 10 history turns..., user turn with context + instruction + question]."""
        messages = [{"role": "system", "content": self.build_system_prompt()}]
        messages.extend({"role": m.role, "content": m.content} for m in history[-ANSWER_HISTORY_TURNS:])
        messages.append({"role": "user", "content": self.build_user_turn(question, context)})
        return messages
