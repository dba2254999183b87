from datetime import datetime, timezone

import pytest

from services.rag.QueryOptimizer import QueryOptimizer, basic_query_cleanup, is_open_request
from shared.models.conversation import ConversationMessage
from tests.conftest import FakeLLMClient


def message(role: str, content: str) -> ConversationMessage:
    return ConversationMessage(role=role, content=content, timestamp=datetime.now(timezone.utc))


@pytest.fixture
def history() -> list[ConversationMessage]:
    turns = []
    for i in range(5):
        turns.append(message("user", f"pregunta {i}"))
        turns.append(message("assistant", f"respuesta {i}"))
    return turns


def test_basic_cleanup_strips_marks_and_interrogatives():
    assert basic_query_cleanup("¿Qué   dice el contrato sobre pagos?") == "dice el contrato sobre pagos"
    assert basic_query_cleanup("¡Cómo funciona!") == "funciona"


def test_open_request_detection():
    assert is_open_request("Háblame de la política de viajes")
    assert is_open_request("tell me about the onboarding")
    assert not is_open_request("¿Cuál es el plazo de pago?")


async def test_optimizer_uses_last_six_turns(helper_config, history):
    llm = FakeLLMClient(responses=["plazo pago contrato proveedores"])
    optimizer = QueryOptimizer(helper_config=helper_config, llm_client=llm)

    result = await optimizer.do_optimize("¿y el plazo?", history)

    assert result == "plazo pago contrato proveedores"
    user_turn = llm.calls[0][1]["content"]
    assert "pregunta 2" in user_turn and "respuesta 4" in user_turn
    assert "pregunta 1" not in user_turn
    assert user_turn.endswith("¿y el plazo?")


@pytest.mark.parametrize("response", [
    'La consulta optimizada es: "facturas vencidas marzo"',
    "Aquí tienes facturas vencidas marzo",
    '"facturas vencidas marzo"\n',
])
async def test_optimizer_strips_prose_and_quotes(helper_config, response):
    optimizer = QueryOptimizer(helper_config=helper_config, llm_client=FakeLLMClient(responses=[response]))
    assert await optimizer.do_optimize("¿Qué facturas vencieron en marzo?", []) == "facturas vencidas marzo"


@pytest.mark.parametrize("response", ["", "ok", "Lo siento, no puedo ayudar con eso"])
async def test_degenerate_responses_fall_back_to_cleanup(helper_config, response):
    optimizer = QueryOptimizer(helper_config=helper_config, llm_client=FakeLLMClient(responses=[response]))
    assert await optimizer.do_optimize("¿Cuál es el presupuesto?", []) == "es el presupuesto"


async def test_llm_failure_falls_back_to_cleanup(helper_config):
    llm = FakeLLMClient(responses=[RuntimeError("model offline")])
    optimizer = QueryOptimizer(helper_config=helper_config, llm_client=llm)
    assert await optimizer.do_optimize("¿Dónde está la sede?", []) == "está la sede"


async def test_open_requests_skip_the_model(helper_config):
    llm = FakeLLMClient()
    optimizer = QueryOptimizer(helper_config=helper_config, llm_client=llm)
    assert await optimizer.do_optimize("Háblame de la política de viajes", []) == "Háblame de la política de viajes"
    assert llm.calls == []
