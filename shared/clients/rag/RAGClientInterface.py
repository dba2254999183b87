from abc import abstractmethod
from typing import Any

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.Scroll import ScrollResult
from shared.helper.HelperConfig import HelperConfig

SCROLL_PAGE_SIZE = 1000


class RAGClientInterface(ClientInterface):
    """
    Vector store capability over a single collection of chunk points.

    A point is {"id", "vector", "payload"}; filters are lists of conditions
    built with ``get_field_match`` that must all hold. Engines implement the
    primitive calls, pagination and the convenience wrappers live here.
    """

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    def _get_client_type(self) -> str:
        return "rag"

    @abstractmethod
    def get_field_match(self, key: str, value: Any) -> dict:
        """Condition matching points whose payload ``key`` equals ``value``."""
        pass

    ##########################################
    ############### COLLECTION ###############
    ##########################################

    @abstractmethod
    async def do_existence_check(self) -> bool:
        pass

    @abstractmethod
    async def do_create_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        pass

    @abstractmethod
    async def do_delete_collection(self) -> None:
        """Drop the collection together with every point in it."""
        pass

    async def do_ensure_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        if await self.do_existence_check():
            self.logging.debug("%s collection already exists", self.get_engine_name())
            return
        self.logging.info("Creating %s collection (size=%d, distance=%s)", self.get_engine_name(), vector_size, distance)
        await self.do_create_collection(vector_size=vector_size, distance=distance)

    ##########################################
    ################ POINTS ##################
    ##########################################

    @abstractmethod
    async def do_upsert_points(self, points: list[dict[str, Any]]) -> None:
        """Write points, replacing any stored point with the same id."""
        pass

    @abstractmethod
    async def do_search(self, vector: list[float], limit: int) -> list[dict]:
        """
        Returns:
            list[dict]: Up to ``limit`` hits as {"id", "score", "payload"}, best first.
        """
        pass

    @abstractmethod
    async def do_count(self, filters: list[dict]) -> int:
        """Number of points matching ``filters``; every point when the list is empty."""
        pass

    @abstractmethod
    async def do_delete_points(self, filters: list[dict] | None = None, point_ids: list[str] | None = None) -> None:
        """Delete by explicit ids when given, otherwise by filter."""
        pass

    @abstractmethod
    async def do_scroll(
        self,
        filters: list[dict],
        with_payload: bool | list | dict,
        with_vector: bool | list,
        limit: int | None = None,
        offset: str | int | None = None,
    ) -> ScrollResult:
        """One page of matching points. ``offset`` is the cursor of the previous page."""
        pass

    async def do_delete_points_by_filter(self, filters: list[dict]) -> None:
        await self.do_delete_points(filters=filters)

    async def do_delete_points_by_ids(self, point_ids: list[str]) -> None:
        if point_ids:
            await self.do_delete_points(point_ids=point_ids)

    async def do_scroll_all(self, filters: list[dict], with_payload: bool | list | dict, with_vector: bool | list) -> ScrollResult:
        """
        Follow the scroll cursor until it runs out.

        Returns:
            ScrollResult: Every matching point, next_page_offset is None.
        """
        points: list[dict] = []
        offset: str | int | None = None
        pages = 0
        while True:
            page = await self.do_scroll(filters, with_payload, with_vector, limit=SCROLL_PAGE_SIZE, offset=offset)
            points.extend(page.result)
            pages += 1
            offset = page.next_page_offset
            if offset is None:
                break
        self.logging.debug("Scrolled %d points in %d page(s) from %s", len(points), pages, self.get_engine_name())
        return ScrollResult(result=points, status="ok", time=0)
