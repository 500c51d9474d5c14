"""
Recursive enumeration of a drive's files.

Traversal is iterative and depth-first over item ids; pages of a single
folder are walked with the Graph continuation token. A folder that cannot be
listed is logged and skipped so one bad subtree never aborts a scan.
"""

import logging
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from sharepoint_dedup.core.cancellation import CancellationToken, check_cancelled
from sharepoint_dedup.core.errors import FATAL_ERRORS, ScanCancelledError
from sharepoint_dedup.core.paths import item_path
from sharepoint_dedup.schemas import DriveItem, FileInfo

logger = logging.getLogger(__name__)

EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def to_file_info(item: DriveItem, site_id: str, drive_id: str) -> FileInfo:
    """Build a FileInfo from a Graph file item (id and size must be present)."""
    algorithm, digest = ("", "")
    if item.file is not None and item.file.hashes is not None:
        algorithm, digest = item.file.hashes.preferred()

    name = item.name or "Unknown"
    parent_path = item.parent_reference.path if item.parent_reference else None
    return FileInfo(
        id=item.id,
        name=name,
        path=item_path(parent_path, name),
        size=item.size,
        hash=digest,
        hash_algorithm=algorithm,
        last_modified=item.last_modified_date_time or EPOCH,
        web_url=item.web_url or "",
        site_id=site_id,
        drive_id=drive_id,
    )


class DriveEnumerator:
    """Walks one drive and yields every file with an id and a size."""

    def __init__(self, client, max_pages_per_directory: int = 10000):
        """Initialize the enumerator.

        Args:
            client: GraphClient (or anything with the same list_children signature).
            max_pages_per_directory: Ceiling on non-empty pages read per folder.
        """
        self.client = client
        self.max_pages_per_directory = max_pages_per_directory

    def enumerate(
        self,
        site_id: str,
        drive_id: str,
        cancel: Optional[CancellationToken] = None,
    ) -> Iterator[FileInfo]:
        """Lazily yield the files of a drive.

        Raises:
            ScanCancelledError: if cancel is signalled. Any other failure only
                skips the folder being listed.
        """
        worklist: List[str] = ["root"]
        while worklist:
            check_cancelled(cancel)
            item_id = worklist.pop()
            yield from self._enumerate_folder(site_id, drive_id, item_id, worklist, cancel)

    def _enumerate_folder(
        self,
        site_id: str,
        drive_id: str,
        item_id: str,
        worklist: List[str],
        cancel: Optional[CancellationToken],
    ) -> Iterator[FileInfo]:
        page_count = 0
        page_token = None
        try:
            while True:
                page = self.client.list_children(drive_id, item_id, page_token, cancel=cancel)
                if page.items:
                    page_count += 1

                for child in page.items:
                    if child.folder is not None:
                        if child.id is not None:
                            worklist.append(child.id)
                    elif child.file is not None and child.id is not None and child.size is not None:
                        yield to_file_info(child, site_id, drive_id)

                if not page.next_link:
                    break
                if page.next_link == page_token:
                    logger.warning(f"Continuation token repeated for drive {drive_id}, item {item_id}")
                    break
                page_token = page.next_link
                if page_count >= self.max_pages_per_directory:
                    logger.warning(
                        f"Reached maximum page limit ({self.max_pages_per_directory}) "
                        f"scanning drive {drive_id}, item {item_id}"
                    )
                    break
        except ScanCancelledError:
            raise
        except FATAL_ERRORS:
            raise
        except Exception as e:
            logger.error(f"Error scanning items in drive {drive_id}, item {item_id}: {e}")
