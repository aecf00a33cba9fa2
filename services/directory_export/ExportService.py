"""Export service.

Walks a paged directory search page by page and writes every entry as one
JSON line, so arbitrarily large result sets never have to fit in memory.
"""

import json
import os

from dirpager.clients.directory.DirectoryClientInterface import DirectoryClientInterface
from dirpager.helper.HelperConfig import HelperConfig
from dirpager.paging.PagedCursor import PagedCursor


class ExportService:
    """Writes the results of paged directory searches to JSON lines files."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()

    ##########################################
    ################ EXPORT ##################
    ##########################################

    def do_export(self, cursor: PagedCursor, output_path: str) -> int:
        """Export all entries of a paged search.

        The cursor is restarted, so the export always begins with the first page.
        If a page fails, no output file is left behind and an existing one is kept as it was.

        Args:
            cursor (PagedCursor): The search to export.
            output_path (str): Path of the JSON lines file. Parent directories are created.

        Returns:
            int: The number of exported entries.

        Raises:
            PagingSetupError: If the server does not support paging.
            Exception: Any error raised by the directory client.
        """
        spec = cursor.get_search_spec()
        self.logging.info("Exporting '%s' below '%s' to %s...", spec.search_filter, spec.base_dn, output_path)

        directory = os.path.dirname(output_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        # entries go to a .part file which only replaces output_path once all pages are written
        part_path = f"{output_path}.part"
        exported = 0
        try:
            with open(part_path, "w", encoding="utf-8") as handle:
                for page in cursor.iter_pages():
                    for entry in page.entries:
                        handle.write(json.dumps(entry.model_dump(), default=str, ensure_ascii=False) + "\n")
                    exported += len(page.entries)
                    self.logging.info(
                        "Exported page %d (%d entries), total entries so far: %d of about %d",
                        cursor.get_current_page_index(), len(page.entries), exported, cursor.get_estimated() or exported,
                    )
        except Exception:
            self.logging.error("Export to %s failed after %d entries, discarding partial output.", output_path, exported)
            if os.path.exists(part_path):
                os.remove(part_path)
            raise
        os.replace(part_path, output_path)

        self.logging.info("Export complete: %d entries written to %s", exported, output_path, color="green")
        return exported

    def do_export_all(self, clients: list[DirectoryClientInterface], output_dir: str, **search_params) -> dict[str, int]:
        """Run the same paged search against several directory clients, one output file per engine.

        A client whose export fails is logged and skipped, the remaining clients are still exported.

        Args:
            clients (list[DirectoryClientInterface]): Booted directory clients.
            output_dir (str): Directory receiving "<engine>.jsonl" files.
            **search_params: Passed to DirectoryClientInterface.do_paged_search().

        Returns:
            dict[str, int]: Exported entry count per engine name, failed engines are missing.
        """
        results: dict[str, int] = {}
        for client in clients:
            engine = client.get_engine_name()
            try:
                cursor = client.do_paged_search(**search_params)
                results[engine] = self.do_export(cursor, os.path.join(output_dir, f"{engine}.jsonl"))
            except Exception as e:
                self.logging.error(f"Error exporting directory client {engine}: {e}. Skipping this client.")
        return results
