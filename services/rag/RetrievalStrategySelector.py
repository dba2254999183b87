"""Question intent classification and retrieval width selection.

Pure functions only: no I/O, so phrase → intent fixtures can be tested directly.
"""

import re
from typing import Literal

from pydantic import BaseModel

Intent = Literal["full_document", "comparison", "pointed"]

K_FULL_DOCUMENT = 15
K_COMPARISON = 12
K_LONG_QUESTION = 10
K_SHORT_QUESTION = 6
LONG_QUESTION_CHARS = 100

FULL_DOCUMENT_MARKERS = (
    "resumen completo",
    "resumen del documento",
    "resumí el documento",
    "resume el documento",
    "resumir el documento",
    "de qué trata",
    "de que trata",
    "contame",
    "cuéntame",
    "cuentame",
    "documento completo",
    "todo el documento",
    "archivo completo",
    "documento entero",
    "whole document",
    "full document",
    "summarize the document",
)

COMPARISON_MARKERS = (
    "compara",
    "diferencia",
    "versus",
    "compare",
    "difference",
)

_VS = re.compile(r"\bvs\b\.?")


class RetrievalPlan(BaseModel):
    intent: Intent
    k: int


def wants_full_document(question: str) -> bool:
    lowered = question.lower()
    return any(marker in lowered for marker in FULL_DOCUMENT_MARKERS)


def is_comparison(question: str) -> bool:
    lowered = question.lower()
    return any(marker in lowered for marker in COMPARISON_MARKERS) or bool(_VS.search(lowered))


def classify_intent(question: str) -> Intent:
    """Full-document requests win over comparisons; everything else is a pointed query."""
    if wants_full_document(question):
        return "full_document"
    if is_comparison(question):
        return "comparison"
    return "pointed"


def select_k(question: str, intent: Intent) -> int:
    """Retrieval width; ordering full_document > comparison > long > short always holds."""
    if intent == "full_document":
        return K_FULL_DOCUMENT
    if intent == "comparison":
        return K_COMPARISON
    if len(question) > LONG_QUESTION_CHARS:
        return K_LONG_QUESTION
    return K_SHORT_QUESTION


def select_plan(question: str) -> RetrievalPlan:
    intent = classify_intent(question)
    return RetrievalPlan(intent=intent, k=select_k(question, intent))
