class PagedSearchError(Exception):
    """Base class for all errors raised by dirpager."""


class InvalidScope(PagedSearchError):
    """Raised when a search is configured with a scope other than SUBTREE or ONELEVEL."""


class PagingSetupError(PagedSearchError):
    """Raised when the paging control could not be established or the server sent no paging response."""


class DirectorySearchError(PagedSearchError):
    """Raised by a directory engine when the server answers a search with a failing result code."""

    def __init__(self, message: str, result_code: int | None = None):
        super().__init__(message)
        self.result_code = result_code
