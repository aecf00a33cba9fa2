from typing import Any

from pydantic import BaseModel


class PagingResponse(BaseModel):
    """The server's paged results response control for one page.

    Attributes:
        token:      Opaque cookie to send with the next request. Empty when no more pages exist.
        estimated:  The server's estimate of the total number of entries, 0 if it does not know.
    """

    token: bytes | str
    estimated: int = 0

    def is_last_page(self) -> bool:
        return len(self.token) == 0


class DirectoryEntry(BaseModel):
    """A single directory entry as returned by a search."""

    dn: str
    attributes: dict[str, Any] = {}


class SearchPage(BaseModel):
    """One bounded batch of search results plus the paging control the server returned with it.

    Attributes:
        entries:    The entries of this page.
        paging:     The paging response control, or None when the server did not send one.
    """

    entries: list[DirectoryEntry] = []
    paging: PagingResponse | None = None

    def get_paging_response(self) -> PagingResponse | None:
        """
        Returns the paging response control of this page.

        Returns:
            PagingResponse | None: The paging response, or None if the server did not send one.
        """
        return self.paging
