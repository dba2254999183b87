from typing import Any

import httpx

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.Scroll import ScrollResult
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig

DEFAULT_BASE_URL = "http://localhost:6333"
DEFAULT_COLLECTION = "documents"


class RAGClientQdrant(RAGClientInterface):
    """Qdrant over its REST API. All calls target RAG_QDRANT_COLLECTION."""

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=DEFAULT_BASE_URL)
        self._api_key = self.get_config_val("API_KEY", default="")
        self._collection_name = self.get_config_val("COLLECTION", default=DEFAULT_COLLECTION)

    def _get_engine_name(self) -> str:
        return "Qdrant"

    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=DEFAULT_BASE_URL),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default=DEFAULT_COLLECTION),
        ]

    def _get_auth_header(self) -> dict:
        return {"api-key": self._api_key} if self._api_key else {}

    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _collection(self, suffix: str = "") -> str:
        return f"/collections/{self._collection_name}{suffix}"

    async def _call(self, method: str, suffix: str, payload: dict | None = None) -> httpx.Response:
        return await self.do_request(method=method, endpoint=self._collection(suffix), json=payload, raise_on_error=True)

    def get_field_match(self, key: str, value: Any) -> dict:
        return {"key": key, "match": {"value": value}}

    ##########################################
    ############### COLLECTION ###############
    ##########################################

    async def do_existence_check(self) -> bool:
        response = await self._call("GET", "/exists")
        return bool((response.json().get("result") or {}).get("exists"))

    async def do_create_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        await self._call("PUT", "", {"vectors": {"size": vector_size, "distance": distance}})

    async def do_delete_collection(self) -> None:
        await self._call("DELETE", "")

    ##########################################
    ################ POINTS ##################
    ##########################################

    async def do_upsert_points(self, points: list[dict[str, Any]]) -> None:
        # wait=true so a following search already sees the points
        await self.do_request(
            method="PUT",
            endpoint=self._collection("/points"),
            params={"wait": "true"},
            json={"points": points},
            raise_on_error=True,
        )

    async def do_search(self, vector: list[float], limit: int) -> list[dict]:
        response = await self._call("POST", "/points/search", {"vector": vector, "limit": limit, "with_payload": True})
        return [
            {"id": hit.get("id"), "score": hit.get("score"), "payload": hit.get("payload") or {}}
            for hit in response.json().get("result") or []
        ]

    async def do_count(self, filters: list[dict]) -> int:
        response = await self._call("POST", "/points/count", {"filter": {"must": filters}, "exact": True})
        return int((response.json().get("result") or {}).get("count", 0))

    async def do_delete_points(self, filters: list[dict] | None = None, point_ids: list[str] | None = None) -> None:
        payload = {"points": point_ids} if point_ids is not None else {"filter": {"must": filters or []}}
        await self.do_request(
            method="POST",
            endpoint=self._collection("/points/delete"),
            params={"wait": "true"},
            json=payload,
            raise_on_error=True,
        )

    async def do_scroll(
        self,
        filters: list[dict],
        with_payload: bool | list | dict,
        with_vector: bool | list,
        limit: int | None = None,
        offset: str | int | None = None,
    ) -> ScrollResult:
        payload: dict = {"filter": {"must": filters}, "with_payload": with_payload, "with_vector": with_vector}
        if limit is not None:
            payload["limit"] = limit
        if offset is not None:
            payload["offset"] = offset
        body = (await self._call("POST", "/points/scroll", payload)).json()
        result = body.get("result") or {}
        return ScrollResult(
            result=result.get("points", []),
            status=body.get("status", "ok"),
            time=body.get("time", 0),
            next_page_offset=result.get("next_page_offset"),
        )
