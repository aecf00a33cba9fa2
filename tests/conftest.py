import logging

import pytest

from dirpager.clients.directory.DirectoryClientInterface import DirectoryClientInterface
from dirpager.clients.directory.models.SearchPage import DirectoryEntry, PagingResponse, SearchPage
from dirpager.helper.HelperConfig import HelperConfig
from dirpager.logging.logging_setup import ColorLogger
from dirpager.models.config import EnvConfig


class FakeDirectoryClient(DirectoryClientInterface):
    """Directory client serving scripted pages.

    Each page is a (entry_count, token, estimated) tuple. The first search after a
    window with token None serves page 0, a window with the token of page i serves page i + 1.
    """

    def __init__(self, helper_config: HelperConfig, pages: list[tuple[int, str, int]]):
        super().__init__(helper_config=helper_config)
        self.pages = pages
        self.calls: list[tuple[str, dict]] = []
        self.reject_windows: set[int] = set()
        self.omit_paging_on: set[int] = set()
        self.fail_search_on: set[int] = set()
        self._window_count = 0
        self._search_count = 0
        self._next_page = 0

    def is_booted(self) -> bool:
        return True

    def _get_engine_name(self) -> str:
        return "Fake"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    def boot(self) -> None:
        pass

    def close(self) -> None:
        pass

    def do_healthcheck(self) -> bool:
        return True

    def prepare_window(self, page_size, critical, token) -> bool:
        self.calls.append(("prepare_window", {"page_size": page_size, "critical": critical, "token": token}))
        self._window_count += 1
        if self._window_count in self.reject_windows:
            return False
        if token is None:
            self._next_page = 0
        else:
            self._next_page = [page[1] for page in self.pages].index(token) + 1
        return True

    def search(self, base_dn, search_filter, attributes, scope, attrs_only, size_limit, time_limit, deref) -> SearchPage:
        self.calls.append(("search", {
            "base_dn": base_dn,
            "search_filter": search_filter,
            "attributes": attributes,
            "scope": scope,
            "attrs_only": attrs_only,
            "size_limit": size_limit,
            "time_limit": time_limit,
            "deref": deref,
        }))
        self._search_count += 1
        if self._search_count in self.fail_search_on:
            raise ConnectionError("connection reset by peer")
        index = self._next_page
        entry_count, token, estimated = self.pages[index]
        entries = [
            DirectoryEntry(dn=f"uid=user{index}-{n},ou=people,dc=example,dc=org", attributes={"uid": [f"user{index}-{n}"]})
            for n in range(entry_count)
        ]
        paging = None if self._search_count in self.omit_paging_on else PagingResponse(token=token, estimated=estimated)
        return SearchPage(entries=entries, paging=paging)

    def count_calls(self, name: str) -> int:
        return sum(1 for call_name, _ in self.calls if call_name == name)


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("dirpager.tests")))


@pytest.fixture
def make_client(helper_config):
    def _make(pages):
        return FakeDirectoryClient(helper_config=helper_config, pages=pages)
    return _make


@pytest.fixture
def three_page_client(make_client) -> FakeDirectoryClient:
    return make_client([(2, "A", 5), (2, "B", 5), (1, "", 5)])
