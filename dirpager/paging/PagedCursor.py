"""Cursor over the pages of a paged directory search.

The cursor drives the simple paged results control: it asks its directory
client to prepare the paging window with the current cookie, runs the search,
and carries the cookie returned by the server into the next request until the
server answers with an empty cookie.
"""

from typing import TYPE_CHECKING, Iterator

from dirpager.clients.directory.models.SearchPage import DirectoryEntry, SearchPage
from dirpager.clients.directory.models.SearchSpec import SearchSpec
from dirpager.paging.PagingState import PagingPhase, PagingState
from dirpager.paging.errors import PagingSetupError

if TYPE_CHECKING:
    from dirpager.clients.directory.DirectoryClientInterface import DirectoryClientInterface


class PagedCursor:
    """Lazily advancing, restartable sequence of search result pages.

    Not safe for concurrent use. The directory client is shared and may back
    several cursors, the paging state belongs to this cursor alone.
    """

    def __init__(self, client: "DirectoryClientInterface", search_spec: SearchSpec):
        self.logging = client.logging
        self._client = client
        self._search_spec = search_spec
        self._state = PagingState()

    ##########################################
    ################ PAGING ##################
    ##########################################

    def do_fetch_next_page(self, reset: bool = False) -> SearchPage | None:
        """
        Returns the next (or first) result page, or None when no more pages are available.

        State is only updated once both the page and its paging response were received.
        On any error the state from before the call stays as it was.

        Args:
            reset (bool): Start over from the first page.

        Returns:
            SearchPage | None: The fetched page, or None once the server signalled the last page.

        Raises:
            PagingSetupError: If the paging window was rejected or the server sent no paging response.
            Exception: Any error raised by the directory client is passed on unchanged.
        """
        if reset:
            self.reset_paging()

        # no more pages
        if self._state.phase == PagingPhase.EXHAUSTED:
            self._state.clear_page()
            return None

        spec = self._search_spec
        if not self._client.prepare_window(page_size=spec.page_size, critical=True, token=self._state.token):
            raise PagingSetupError(f"Error when setting up paging by {self._client.get_engine_name()} server")

        page = self._client.search(
            base_dn=spec.base_dn,
            search_filter=spec.search_filter,
            attributes=spec.get_attribute_list(),
            scope=spec.scope,
            attrs_only=spec.attrs_only,
            size_limit=spec.page_size,
            time_limit=spec.time_limit,
            deref=spec.deref,
        )

        paging = page.get_paging_response()
        if paging is None:
            raise PagingSetupError(f"No paging response received from {self._client.get_engine_name()} server")

        self._state.current_page = page
        self._state.token = paging.token
        self._state.estimated = paging.estimated
        self._state.phase = PagingPhase.EXHAUSTED if paging.is_last_page() else PagingPhase.IN_PROGRESS
        self._state.page_index = (self._state.page_index or 0) + 1

        self.logging.debug(
            "Fetched page %d with %d entries from %s (estimated total: %d, last page: %s)",
            self._state.page_index, len(page.entries), self._client.get_engine_name(),
            paging.estimated, paging.is_last_page(),
        )
        return page

    def reset_paging(self) -> None:
        """
        Resets the paging to its initial state. Does not contact the server.
        """
        self._state.reset()

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_search_spec(self) -> SearchSpec:
        return self._search_spec

    def get_phase(self) -> PagingPhase:
        return self._state.phase

    def get_token(self) -> bytes | str | None:
        """
        Returns the cookie returned with the current page, an empty cookie once the
        last page was fetched, or None when no page was fetched yet.
        """
        return self._state.token

    def get_estimated(self) -> int | None:
        """
        Returns the estimated number of entries reported with the current page, or None
        when no page was fetched yet.
        """
        return self._state.estimated

    def get_current_page_index(self) -> int | None:
        """
        Returns the 1-based index of the current page, or None when there is no current page.
        """
        return self._state.page_index

    def get_current_page(self) -> SearchPage | None:
        """
        Returns the current page, or None when there is no current page.
        """
        return self._state.current_page

    ##########################################
    ############### SEQUENCE #################
    ##########################################

    def current(self) -> SearchPage | None:
        return self._state.current_page

    def advance(self) -> None:
        self.do_fetch_next_page()

    def key(self) -> int | None:
        return self._state.page_index

    def valid(self) -> bool:
        return self._state.current_page is not None

    def restart(self) -> None:
        self.do_fetch_next_page(reset=True)

    def iter_pages(self) -> Iterator[SearchPage]:
        """Yields every page from the first one on. Each call starts a fresh paged search.

        Yields:
            SearchPage: The pages in server order.
        """
        self.restart()
        while self.valid():
            yield self.current()
            self.advance()

    def iter_entries(self) -> Iterator[DirectoryEntry]:
        """Yields the entries of all pages, starting a fresh paged search."""
        for page in self.iter_pages():
            yield from page.entries
