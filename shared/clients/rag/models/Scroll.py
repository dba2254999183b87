from pydantic import BaseModel


class ScrollResult(BaseModel):
    """One page of a scroll, or every page of it merged by do_scroll_all().

    Attributes:
        result:           Point dicts ({"id", "payload", ...}).
        status:           Backend status string.
        time:             Backend execution time in seconds.
        next_page_offset: Cursor of the next page; None once exhausted.
    """

    result: list[dict]
    status: str
    time: float
    next_page_offset: str | int | None = None
