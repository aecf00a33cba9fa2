"""Directory export entry point.

Runs one paged search against every configured directory engine and writes
the entries as JSON lines, one file per engine.

Environment:
    DIRECTORY_ENGINES           e.g. "[ldap]"
    EXPORT_BASE_DN              base DN of the search
    EXPORT_FILTER               search filter, default "(objectClass=*)"
    EXPORT_ATTRIBUTES           e.g. "[cn,mail]", default all attributes
    EXPORT_SCOPE                SUBTREE or ONELEVEL, default SUBTREE
    EXPORT_PAGE_SIZE            entries per page, default 1000
    EXPORT_TIME_LIMIT           seconds per page request, default 0 (no limit)
    EXPORT_OUTPUT_DIR           target directory, default "./export"

Usage:
    python -m services.directory_export.directory_export
"""

import os

from dirpager.clients.directory.DirectoryClientInterface import DirectoryClientInterface
from dirpager.clients.directory.DirectoryClientManager import DirectoryClientManager
from dirpager.clients.directory.models.SearchSpec import SearchScope
from dirpager.helper.HelperConfig import HelperConfig
from dirpager.logging.logging_setup import setup_logging
from services.directory_export.ExportService import ExportService


def main() -> None:
    """Run the export for all configured directory engines."""
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    directory_clients = DirectoryClientManager(helper_config=config).get_clients()

    base_dn = config.get_string_val("EXPORT_BASE_DN")
    search_filter = config.get_string_val("EXPORT_FILTER", default="(objectClass=*)")
    attributes = config.get_list_val("EXPORT_ATTRIBUTES", default=[])
    scope = config.get_enum_val("EXPORT_SCOPE", SearchScope, default=SearchScope.SUBTREE)
    page_size = int(config.get_number_val("EXPORT_PAGE_SIZE", default=1000))
    time_limit = int(config.get_number_val("EXPORT_TIME_LIMIT", default=0))
    output_dir = config.get_string_val("EXPORT_OUTPUT_DIR", default=os.path.join(os.getcwd(), "export"))

    try:
        # boot all clients. A client failing to boot is skipped, if all fail we abort.
        booted_clients: list[DirectoryClientInterface] = []
        for client in directory_clients:
            try:
                client.boot()
                if not client.do_healthcheck():
                    raise Exception("healthcheck failed")
                booted_clients.append(client)
            except Exception as e:
                logger.error(f"Error booting directory client {client.get_engine_name()}: {e}. Skipping this client.")
        if not booted_clients:
            logger.error("No directory clients booted successfully. Aborting.")
            return

        # a client failing to export is skipped as well
        export_service = ExportService(helper_config=config)
        export_service.do_export_all(
            booted_clients,
            output_dir,
            base_dn=base_dn,
            search_filter=search_filter,
            attributes=attributes,
            scope=scope,
            page_size=page_size,
            time_limit=time_limit,
        )
    finally:
        for client in directory_clients:
            client.close()


if __name__ == "__main__":
    main()
