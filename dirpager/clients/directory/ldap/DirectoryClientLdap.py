from ldap3 import (
    ALL_ATTRIBUTES,
    AUTO_BIND_NO_TLS,
    BASE,
    DEREF_ALWAYS,
    DEREF_BASE,
    DEREF_NEVER,
    DEREF_SEARCH,
    DSA,
    LEVEL,
    SUBTREE,
    Connection,
    Server,
)
from ldap3.protocol.rfc2696 import paged_search_control

from dirpager.clients.directory.DirectoryClientInterface import DirectoryClientInterface
from dirpager.clients.directory.models.SearchPage import DirectoryEntry, PagingResponse, SearchPage
from dirpager.clients.directory.models.SearchSpec import DerefPolicy, SearchScope
from dirpager.helper.HelperConfig import HelperConfig
from dirpager.models.config import EnvConfig
from dirpager.paging.errors import DirectorySearchError

PAGED_RESULTS_OID = "1.2.840.113556.1.4.319"

# success and sizeLimitExceeded, the latter still carries a usable page
_ACCEPTED_RESULT_CODES = (0, 4)

_SCOPE_MAP = {
    SearchScope.SUBTREE: SUBTREE,
    SearchScope.ONELEVEL: LEVEL,
}

_DEREF_MAP = {
    DerefPolicy.NEVER: DEREF_NEVER,
    DerefPolicy.SEARCHING: DEREF_SEARCH,
    DerefPolicy.FINDING: DEREF_BASE,
    DerefPolicy.ALWAYS: DEREF_ALWAYS,
}


class DirectoryClientLdap(DirectoryClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._server_uri = self.get_config_val("SERVER_URI", default=None, val_type="string")
        self._bind_dn = self.get_config_val("BIND_DN", default="", val_type="string")
        self._bind_password = self.get_config_val("BIND_PASSWORD", default="", val_type="string")
        self._use_ssl = self.get_config_val("USE_SSL", default=False, val_type="bool")
        self._connect_timeout = self.get_config_val("CONNECT_TIMEOUT", default=10, val_type="number")

        self._server: Server | None = None
        self._connection: Connection | None = None
        # (page_size, critical, cookie) for the next search
        self._window: tuple[int, bool, bytes | str | None] | None = None

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def is_booted(self) -> bool:
        return self._connection is not None

    def _supports_paging(self) -> bool:
        """
        Returns False only if the server published its supported controls and paging is not among them.
        """
        info = self._server.info if self._server is not None else None
        if info is None or not info.supported_controls:
            return True
        for control in info.supported_controls:
            oid = control[0] if isinstance(control, tuple) else control
            if oid == PAGED_RESULTS_OID:
                return True
        return False

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Ldap"

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="SERVER_URI", val_type="string", default=None),
            EnvConfig(env_key="BIND_DN", val_type="string", default=""),
            EnvConfig(env_key="BIND_PASSWORD", val_type="string", default=""),
            EnvConfig(env_key="USE_SSL", val_type="bool", default=False),
            EnvConfig(env_key="CONNECT_TIMEOUT", val_type="number", default=10),
        ]

    def _get_connection(self) -> Connection:
        if self._connection is None:
            raise Exception("LDAP connection not initialised. Call boot() before searching.")
        return self._connection

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    def boot(self) -> None:
        self._server = Server(
            self._server_uri,
            use_ssl=self._use_ssl,
            connect_timeout=self._connect_timeout,
            get_info=DSA,
        )
        self._connection = Connection(
            self._server,
            user=self._bind_dn or None,
            password=self._bind_password or None,
            auto_bind=AUTO_BIND_NO_TLS,
            read_only=True,
            receive_timeout=self.timeout,
            raise_exceptions=False,
        )
        self.logging.debug("Bound to LDAP server %s as %s", self._server_uri, self._bind_dn or "anonymous")

    def close(self) -> None:
        if self._connection is not None:
            self._connection.unbind()
            self._connection = None
        self._server = None
        self._window = None

    def do_healthcheck(self) -> bool:
        """Reads the root DSE of the server."""
        connection = self._get_connection()
        connection.search(search_base="", search_filter="(objectClass=*)", search_scope=BASE, attributes=["namingContexts"])
        return connection.result.get("result") == 0

    ##########################################
    ############### REQUESTS #################
    ##########################################

    def prepare_window(self, page_size: int, critical: bool, token: bytes | str | None) -> bool:
        self._get_connection()
        if not self._supports_paging():
            self.logging.warning("LDAP server %s does not advertise the paged results control", self._server_uri)
            return False
        if isinstance(token, str):
            token = token.encode("utf-8")
        self._window = (page_size, critical, token)
        return True

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
        connection = self._get_connection()
        controls = None
        if self._window is not None:
            page_size, critical, cookie = self._window
            controls = [paged_search_control(critical, page_size, cookie)]
            # a window is valid for exactly one search
            self._window = None

        connection.search(
            search_base=base_dn,
            search_filter=search_filter,
            search_scope=_SCOPE_MAP[scope],
            dereference_aliases=_DEREF_MAP[deref],
            attributes=attributes or ALL_ATTRIBUTES,
            size_limit=size_limit,
            time_limit=time_limit,
            types_only=attrs_only,
            controls=controls,
        )

        result = connection.result or {}
        result_code = result.get("result")
        if result_code not in _ACCEPTED_RESULT_CODES:
            self.logging.error(
                "LDAP search below '%s' with filter '%s' failed with code %s: %s",
                base_dn, search_filter, result_code, result.get("description"),
            )
            raise DirectorySearchError(
                f"LDAP search failed with result code {result_code} ({result.get('description')}): {result.get('message')}",
                result_code=result_code,
            )

        return SearchPage(
            entries=self._extract_entries(connection.response or []),
            paging=self._extract_paging_response(result),
        )

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _extract_entries(self, response: list[dict]) -> list[DirectoryEntry]:
        return [
            DirectoryEntry(dn=item["dn"], attributes=dict(item.get("attributes") or {}))
            for item in response
            if item.get("type") == "searchResEntry"
        ]

    def _extract_paging_response(self, result: dict) -> PagingResponse | None:
        control = (result.get("controls") or {}).get(PAGED_RESULTS_OID)
        if not control:
            return None
        value = control.get("value") or {}
        return PagingResponse(token=value.get("cookie") or b"", estimated=value.get("size") or 0)
