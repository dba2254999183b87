import pytest

from services.rag.RetrievalStrategySelector import (
    K_COMPARISON,
    K_FULL_DOCUMENT,
    K_LONG_QUESTION,
    K_SHORT_QUESTION,
    classify_intent,
    select_k,
    select_plan,
)


@pytest.mark.parametrize("question", [
    "¿Qué dice el documento completo?",
    "Dame un resumen completo del contrato",
    "¿De qué trata el informe?",
    "Contame el manual",
    "Summarize the whole document please",
])
def test_full_document_phrases(question):
    assert classify_intent(question) == "full_document"


@pytest.mark.parametrize("question", [
    "Compara el plan 2023 con el 2024",
    "¿Cuál es la diferencia entre ambos contratos?",
    "Python vs Java",
    "presupuesto versus gasto real",
    "What is the difference between the offers?",
])
def test_comparison_phrases(question):
    assert classify_intent(question) == "comparison"


@pytest.mark.parametrize("question", [
    "¿Cuál es el monto total de la factura?",
    "vsphere licencias",
    "¿Quién firmó el acta?",
])
def test_pointed_questions(question):
    assert classify_intent(question) == "pointed"


def test_full_document_wins_over_comparison():
    assert classify_intent("Resumen completo y compara con el anterior") == "full_document"


def test_k_by_intent_and_length():
    short = "¿Cuál es el total?"
    long = "¿Cuál es el total facturado " + "en el período considerado por el área " * 3 + "?"
    assert len(long) > 100
    assert select_k(short, "pointed") == K_SHORT_QUESTION
    assert select_k(long, "pointed") == K_LONG_QUESTION
    assert select_k(short, "comparison") == K_COMPARISON
    assert select_k(short, "full_document") == K_FULL_DOCUMENT


def test_k_ordering_holds():
    assert K_FULL_DOCUMENT >= K_COMPARISON >= K_LONG_QUESTION >= K_SHORT_QUESTION
    full = select_plan("¿Qué dice el documento completo?").k
    comparison = select_plan("Compara los dos informes").k
    short = select_plan("¿Cuándo vence?").k
    assert full >= comparison >= short


def test_full_document_scenario_plan():
    plan = select_plan("¿qué dice el documento completo?")
    assert plan.intent == "full_document"
    assert plan.k == 15
