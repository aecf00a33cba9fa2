import pytest

from dirpager.clients.directory.models.SearchSpec import DerefPolicy, SearchScope, SearchSpec
from dirpager.paging.PagedCursor import PagedCursor
from dirpager.paging.PagingState import PagingPhase
from dirpager.paging.errors import PagingSetupError


def _cursor(client, **overrides) -> PagedCursor:
    params = {"base_dn": "ou=people,dc=example,dc=org", "search_filter": "(objectClass=person)", "page_size": 2}
    params.update(overrides)
    return PagedCursor(client=client, search_spec=SearchSpec(**params))


def _assert_unset(cursor: PagedCursor) -> None:
    assert cursor.get_token() is None
    assert cursor.get_estimated() is None
    assert cursor.get_current_page_index() is None
    assert cursor.get_current_page() is None
    assert cursor.get_phase() == PagingPhase.NOT_STARTED


def test_fresh_cursor_is_unset_and_does_not_contact_server(three_page_client):
    cursor = _cursor(three_page_client)

    _assert_unset(cursor)
    assert not cursor.valid()
    assert cursor.key() is None
    assert three_page_client.calls == []


def test_three_pages_then_none(three_page_client):
    cursor = _cursor(three_page_client)

    indices = []
    tokens = []
    for _ in range(3):
        page = cursor.do_fetch_next_page()
        assert page is not None
        assert cursor.get_current_page() is page
        indices.append(cursor.get_current_page_index())
        tokens.append(cursor.get_token())

    assert indices == [1, 2, 3]
    assert tokens == ["A", "B", ""]
    assert cursor.get_estimated() == 5
    assert cursor.get_phase() == PagingPhase.EXHAUSTED

    calls_before = len(three_page_client.calls)
    assert cursor.do_fetch_next_page() is None
    assert cursor.get_current_page() is None
    assert cursor.get_current_page_index() is None
    assert len(three_page_client.calls) == calls_before


def test_tokens_are_carried_into_the_next_window(three_page_client):
    cursor = _cursor(three_page_client)
    for _ in range(3):
        cursor.do_fetch_next_page()

    windows = [args for name, args in three_page_client.calls if name == "prepare_window"]
    assert [window["token"] for window in windows] == [None, "A", "B"]
    assert all(window["critical"] is True for window in windows)
    assert all(window["page_size"] == 2 for window in windows)


def test_search_receives_spec_parameters(three_page_client):
    cursor = _cursor(
        three_page_client,
        attributes=["mail", "cn"],
        scope=SearchScope.ONELEVEL,
        attrs_only=True,
        time_limit=30,
        deref=DerefPolicy.ALWAYS,
    )
    cursor.do_fetch_next_page()

    name, args = three_page_client.calls[1]
    assert name == "search"
    assert args == {
        "base_dn": "ou=people,dc=example,dc=org",
        "search_filter": "(objectClass=person)",
        "attributes": ["cn", "mail"],
        "scope": SearchScope.ONELEVEL,
        "attrs_only": True,
        "size_limit": 2,
        "time_limit": 30,
        "deref": DerefPolicy.ALWAYS,
    }


def test_first_fetch_with_and_without_reset_is_the_same(make_client):
    pages = [(2, "A", 4), (2, "", 4)]
    plain_client = make_client(pages)
    reset_client = make_client(pages)
    plain = _cursor(plain_client)
    reset = _cursor(reset_client)

    plain_page = plain.do_fetch_next_page(reset=False)
    reset_page = reset.do_fetch_next_page(reset=True)

    assert plain_page == reset_page
    assert plain.get_current_page_index() == reset.get_current_page_index() == 1
    assert plain.get_token() == reset.get_token() == "A"
    assert plain_client.calls == reset_client.calls


def test_repeated_calls_after_exhaustion_stay_exhausted(make_client):
    client = make_client([(1, "", 1)])
    cursor = _cursor(client)

    assert cursor.do_fetch_next_page() is not None
    for _ in range(3):
        assert cursor.do_fetch_next_page() is None
        assert not cursor.valid()
    assert client.count_calls("search") == 1
    # the exhausted token is kept, it is not confused with "not started"
    assert cursor.get_token() == ""
    assert cursor.get_phase() == PagingPhase.EXHAUSTED


def test_reset_after_exhaustion_starts_over(make_client):
    client = make_client([(1, "A", 2), (1, "", 2)])
    cursor = _cursor(client)
    while cursor.do_fetch_next_page() is not None:
        pass

    page = cursor.do_fetch_next_page(reset=True)

    assert page is not None
    assert cursor.get_current_page_index() == 1
    assert cursor.get_token() == "A"
    assert client.count_calls("search") == 3


def test_reset_paging_clears_everything(three_page_client):
    cursor = _cursor(three_page_client)
    cursor.do_fetch_next_page()
    cursor.do_fetch_next_page()
    calls_before = len(three_page_client.calls)

    cursor.reset_paging()
    _assert_unset(cursor)
    cursor.reset_paging()
    _assert_unset(cursor)
    assert len(three_page_client.calls) == calls_before


def test_page_size_zero_is_passed_through(make_client):
    client = make_client([(3, "", 3)])
    cursor = _cursor(client, page_size=0)
    cursor.do_fetch_next_page()

    assert client.calls[0][1]["page_size"] == 0
    assert client.calls[1][1]["size_limit"] == 0


def test_negative_page_size_uses_default(make_client):
    client = make_client([(1, "", 1)])
    cursor = _cursor(client, page_size=-5)
    cursor.do_fetch_next_page()

    assert client.calls[0][1]["page_size"] == 1000


##########################################
################ ERRORS ##################
##########################################

def test_rejected_window_on_second_page_keeps_state(three_page_client):
    three_page_client.reject_windows = {2}
    cursor = _cursor(three_page_client)
    first = cursor.do_fetch_next_page()

    with pytest.raises(PagingSetupError):
        cursor.do_fetch_next_page()

    assert cursor.get_current_page_index() == 1
    assert cursor.get_current_page() is first
    assert cursor.get_token() == "A"
    assert three_page_client.count_calls("search") == 1


def test_missing_paging_response_rolls_back(three_page_client):
    three_page_client.omit_paging_on = {2}
    cursor = _cursor(three_page_client)
    first = cursor.do_fetch_next_page()

    with pytest.raises(PagingSetupError):
        cursor.do_fetch_next_page()

    assert cursor.get_current_page() is first
    assert cursor.get_current_page_index() == 1
    assert cursor.get_token() == "A"
    assert cursor.get_estimated() == 5


def test_missing_paging_response_on_first_page(three_page_client):
    three_page_client.omit_paging_on = {1}
    cursor = _cursor(three_page_client)

    with pytest.raises(PagingSetupError):
        cursor.do_fetch_next_page()

    _assert_unset(cursor)


def test_search_errors_propagate_unchanged(three_page_client):
    three_page_client.fail_search_on = {2}
    cursor = _cursor(three_page_client)
    cursor.do_fetch_next_page()

    with pytest.raises(ConnectionError, match="connection reset"):
        cursor.do_fetch_next_page()

    assert cursor.get_current_page_index() == 1
    assert cursor.get_token() == "A"


def test_retry_after_failure_continues_with_same_token(three_page_client):
    three_page_client.reject_windows = {2}
    cursor = _cursor(three_page_client)
    cursor.do_fetch_next_page()
    with pytest.raises(PagingSetupError):
        cursor.do_fetch_next_page()

    cursor.do_fetch_next_page()

    assert cursor.get_current_page_index() == 2
    assert cursor.get_token() == "B"


##########################################
############### SEQUENCE #################
##########################################

def test_sequence_protocol(three_page_client):
    cursor = _cursor(three_page_client)

    cursor.restart()
    assert cursor.valid()
    assert cursor.key() == 1
    first = cursor.current()

    cursor.advance()
    assert cursor.valid()
    assert cursor.key() == 2
    assert cursor.current() is cursor.get_current_page()
    assert cursor.current() is not first

    cursor.advance()
    cursor.advance()
    assert not cursor.valid()
    assert cursor.current() is None
    assert cursor.key() is None


def test_restart_mid_sequence_fetches_page_one_again(three_page_client):
    cursor = _cursor(three_page_client)
    cursor.restart()
    cursor.advance()

    cursor.restart()

    assert cursor.key() == 1
    assert cursor.get_token() == "A"
    windows = [args["token"] for name, args in three_page_client.calls if name == "prepare_window"]
    assert windows == [None, "A", None]


def test_iter_pages_and_entries(three_page_client):
    cursor = _cursor(three_page_client)

    pages = list(cursor.iter_pages())
    assert [len(page.entries) for page in pages] == [2, 2, 1]

    entries = list(cursor.iter_entries())
    assert len(entries) == 5
    assert entries[0].dn == "uid=user0-0,ou=people,dc=example,dc=org"
    assert three_page_client.count_calls("search") == 6


def test_cursors_sharing_a_client_keep_their_own_state(make_client):
    client = make_client([(1, "A", 2), (1, "", 2)])
    first = _cursor(client)
    second = _cursor(client)

    first.do_fetch_next_page()
    first.do_fetch_next_page()
    second.do_fetch_next_page()

    assert first.get_phase() == PagingPhase.EXHAUSTED
    assert second.get_current_page_index() == 1
    assert second.get_token() == "A"
