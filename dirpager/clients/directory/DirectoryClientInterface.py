from abc import abstractmethod
from typing import Iterable

from dirpager.clients.ClientInterface import ClientInterface
from dirpager.clients.directory.models.SearchPage import DirectoryEntry, SearchPage
from dirpager.clients.directory.models.SearchSpec import DEFAULT_PAGE_SIZE, DerefPolicy, SearchScope, SearchSpec
from dirpager.helper.HelperConfig import HelperConfig
from dirpager.paging.PagedCursor import PagedCursor


class DirectoryClientInterface(ClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "directory"
        """
        return "directory"

    ##########################################
    ############### REQUESTS #################
    ##########################################

    ############# SINGLE PAGE ##############
    @abstractmethod
    def prepare_window(self, page_size: int, critical: bool, token: bytes | str | None) -> bool:
        """
        Sets up the paged results control sent with the next search.

        Args:
            page_size (int): The number of entries the server should return per page. 0 is passed to the server as is.
            critical (bool): Whether the server must honour the control or reject the search.
            token (bytes | str | None): The cookie of the previous page. None requests the first page.

        Returns:
            bool: False if the paging control cannot be established with this server.

        Raises:
            Exception: If the client is not booted or the connection fails.
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    @abstractmethod
    def search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: list[str],
        scope: SearchScope,
        attrs_only: bool,
        size_limit: int,
        time_limit: int,
        deref: DerefPolicy,
    ) -> SearchPage:
        """
        Executes a single search bounded by the window set up in prepare_window().

        Args:
            base_dn (str): The base DN for the search.
            search_filter (str): The search filter.
            attributes (list[str]): Attributes to return. Empty list means all attributes.
            scope (SearchScope): Search scope.
            attrs_only (bool): Return attribute types only.
            size_limit (int): Maximum number of entries.
            time_limit (int): Maximum seconds for the search. 0 means no limit.
            deref (DerefPolicy): Alias dereferencing.

        Returns:
            SearchPage: The entries and the paging response control of this page.

        Raises:
            Exception: If the search fails.
            NotImplementedError: If the method is not implemented in a subclass.
        """
        pass

    ############# PAGED SEARCH ##############
    def do_paged_search(
        self,
        base_dn: str,
        search_filter: str,
        attributes: Iterable[str] = (),
        scope: SearchScope | str = SearchScope.SUBTREE,
        attrs_only: bool = False,
        page_size: int = DEFAULT_PAGE_SIZE,
        time_limit: int = 0,
        deref: DerefPolicy = DerefPolicy.NEVER,
    ) -> PagedCursor:
        """
        Creates a cursor over the pages of a search. Nothing is sent to the server until the
        cursor fetches its first page.

        Returns:
            PagedCursor: The cursor, not yet started.

        Raises:
            InvalidScope: If scope is not SUBTREE or ONELEVEL.
            pydantic.ValidationError: If the filter is empty.
        """
        search_spec = SearchSpec(
            base_dn=base_dn,
            search_filter=search_filter,
            attributes=frozenset(attributes),
            scope=scope,
            attrs_only=attrs_only,
            page_size=page_size,
            time_limit=time_limit,
            deref=deref,
        )
        return PagedCursor(client=self, search_spec=search_spec)

    def do_search_all(self, search_spec: SearchSpec) -> list[DirectoryEntry]:
        """
        Fetches all entries matching a search, paginating automatically.

        Args:
            search_spec (SearchSpec): The search to run.

        Returns:
            list[DirectoryEntry]: All entries collected across all pages.
        """
        cursor = PagedCursor(client=self, search_spec=search_spec)
        entries: list[DirectoryEntry] = []
        for page in cursor.iter_pages():
            entries.extend(page.entries)
            self.logging.info(
                "Fetched directory page %d from %s, total entries so far: %d of about %d",
                cursor.get_current_page_index(), self.get_engine_name(), len(entries), cursor.get_estimated() or len(entries),
            )
        return entries
