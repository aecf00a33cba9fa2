from enum import Enum

from pydantic import BaseModel

from dirpager.clients.directory.models.SearchPage import SearchPage


class PagingPhase(str, Enum):
    """Where a paged search stands.

    NOT_STARTED and EXHAUSTED both mean "no current page", but only EXHAUSTED
    stops further requests until the state is reset.
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    EXHAUSTED = "exhausted"


class PagingState(BaseModel):
    """Mutable paging state of a single cursor.

    Attributes:
        phase:          NOT_STARTED before the first fetch, IN_PROGRESS while the server hands out
                        tokens, EXHAUSTED once it returned an empty token.
        token:          None while NOT_STARTED, otherwise the last token sent by the server.
        estimated:      Last entry count estimate reported by the server.
        page_index:     1-based index of current_page, None when there is no current page.
        current_page:   The last fetched page.
    """

    phase: PagingPhase = PagingPhase.NOT_STARTED
    token: bytes | str | None = None
    estimated: int | None = None
    page_index: int | None = None
    current_page: SearchPage | None = None

    def clear_page(self) -> None:
        self.page_index = None
        self.current_page = None

    def reset(self) -> None:
        self.phase = PagingPhase.NOT_STARTED
        self.token = None
        self.estimated = None
        self.clear_page()
