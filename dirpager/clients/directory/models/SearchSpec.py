"""SearchSpec model: the immutable parameters of a paged directory search."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from dirpager.paging.errors import InvalidScope

DEFAULT_PAGE_SIZE = 1000


class SearchScope(str, Enum):
    """Breadth of a directory search below its base DN."""

    SUBTREE = "subtree"
    ONELEVEL = "onelevel"


class DerefPolicy(str, Enum):
    """How aliases are dereferenced while searching."""

    NEVER = "never"
    SEARCHING = "searching"
    FINDING = "finding"
    ALWAYS = "always"


class SearchSpec(BaseModel):
    """Parameters of a paged directory search. Frozen once constructed.

    Attributes:
        base_dn:        The base DN the search starts from.
        search_filter:  LDAP filter expression, e.g. "(objectClass=person)". Must not be empty.
        attributes:     Attributes to return. Empty means all attributes.
        scope:          SUBTREE or ONELEVEL. Anything else raises InvalidScope.
        attrs_only:     Return attribute types only, without values.
        page_size:      Entries per page. Negative values fall back to 1000, 0 is passed
                        through to the server as is.
        time_limit:     Seconds the server may spend per search. 0 means no limit.
        deref:          Alias dereferencing policy.
    """

    model_config = ConfigDict(frozen=True)

    base_dn: str
    search_filter: str
    attributes: frozenset[str] = frozenset()
    scope: SearchScope = SearchScope.SUBTREE
    attrs_only: bool = False
    page_size: int = DEFAULT_PAGE_SIZE
    time_limit: int = 0
    deref: DerefPolicy = DerefPolicy.NEVER

    @field_validator("search_filter")
    @classmethod
    def check_filter(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("An empty search filter is not allowed.")
        return value

    @field_validator("scope", mode="before")
    @classmethod
    def check_scope(cls, value: Any) -> SearchScope:
        """Accepts SearchScope members and their names or values, raises InvalidScope for anything else."""
        if isinstance(value, SearchScope):
            return value
        if isinstance(value, str):
            for scope in SearchScope:
                if value.lower() in (scope.value, scope.name.lower()):
                    return scope
        raise InvalidScope(f"Unrecognised or unsupported search scope {value!r}")

    @field_validator("page_size")
    @classmethod
    def normalize_page_size(cls, value: int) -> int:
        if value < 0:
            return DEFAULT_PAGE_SIZE
        return value

    def get_attribute_list(self) -> list[str]:
        """Returns the attribute projection as a sorted list, empty for all attributes."""
        return sorted(self.attributes)
