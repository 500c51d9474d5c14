"""
Replaces duplicate files with Internet Shortcut files pointing at a kept copy.

Each duplicate is handled by one transaction: the shortcut is uploaded
first and the duplicate is deleted only once the upload succeeded, so a
failure never leaves a path without either the file or its shortcut.
"""

import logging
from typing import Optional, Tuple

from sharepoint_dedup.core.cancellation import CancellationToken
from sharepoint_dedup.core.errors import (
    FATAL_ERRORS,
    ErrorKind,
    InvalidInputError,
    NotFoundError,
    classify_error,
    error_message,
)
from sharepoint_dedup.core.paths import (
    join_drive_path,
    shortcut_content,
    shortcut_name,
    shortcut_path,
    split_path,
)
from sharepoint_dedup.schemas import (
    DuplicateGroup,
    FileInfo,
    ReplacementDetail,
    ReplacementRequest,
    ReplacementResult,
    ReplacementSelection,
    ScanReport,
    ScanStatus,
    ShortcutEntry,
)
from sharepoint_dedup.services.scan_registry import ScanRegistry

logger = logging.getLogger(__name__)


class ReplacerService:
    """Applies operator selections to a completed scan."""

    def __init__(self, client, registry: ScanRegistry):
        self.client = client
        self.registry = registry

    def replace(self, request: ReplacementRequest, cancel: Optional[CancellationToken] = None) -> ReplacementResult:
        """Replace every non-selected duplicate of each selected group with a shortcut.

        Args:
            request: Scan id and one (hash, keep id) selection per group.
            cancel: Optional token; once signalled no new transaction starts.

        Returns:
            Per-duplicate outcome with success and failure counters.

        Raises:
            InvalidInputError: empty scan id or selections, or scan not completed.
            NotFoundError: unknown scan id.
        """
        if not request.scan_id or not request.scan_id.strip():
            raise InvalidInputError("Scan ID is required")
        if not request.selections:
            raise InvalidInputError("At least one replacement selection is required")

        report = self.registry.get_report(request.scan_id)
        if report is None:
            raise NotFoundError(f"Scan report not found: {request.scan_id}")
        if report.status != ScanStatus.COMPLETED:
            raise InvalidInputError(f"Scan {request.scan_id} is not completed (status: {report.status.value})")

        result = ReplacementResult(scan_id=request.scan_id)
        self.registry.ensure_manifest(request.scan_id)

        for selection in request.selections:
            match = self._find_group(report, selection)
            if match is None:
                logger.info(
                    f"Skipping selection hash={selection.hash} keep={selection.true_copy_file_id}: "
                    "not part of the scan"
                )
                continue

            index, group, keep = match
            self.registry.set_selected_true_copy(request.scan_id, index, keep)

            for duplicate in group.files:
                if duplicate.id == keep.id:
                    continue
                if cancel is not None and cancel.cancelled:
                    logger.warning(f"Replacement for scan {request.scan_id} cancelled; stopping")
                    return result
                detail = self._replace_one(request.scan_id, duplicate, keep)
                result.details.append(detail)
                result.total_replacements += 1
                if detail.success:
                    result.successful_replacements += 1
                else:
                    result.failed_replacements += 1

        logger.info(
            f"Replacement for scan {request.scan_id} finished: "
            f"{result.successful_replacements} succeeded, {result.failed_replacements} failed"
        )
        return result

    @staticmethod
    def _find_group(
        report: ScanReport, selection: ReplacementSelection
    ) -> Optional[Tuple[int, DuplicateGroup, FileInfo]]:
        """The group with the selection's hash that contains the keep id."""
        for index, group in enumerate(report.duplicate_groups):
            if group.hash != selection.hash:
                continue
            keep = group.find_file(selection.true_copy_file_id)
            if keep is not None:
                return index, group, keep
        return None

    def _replace_one(
        self,
        scan_id: str,
        duplicate: FileInfo,
        keep: FileInfo,
    ) -> ReplacementDetail:
        # Started transactions run to completion, so no cancellation token here
        detail = ReplacementDetail(original_file_id=duplicate.id, original_path=duplicate.path)

        name = shortcut_name(duplicate.name)
        parent_dir, _ = split_path(duplicate.path)
        upload_path = join_drive_path(parent_dir, name)
        path = shortcut_path(duplicate.path, name)

        # SharePoint paths are case-insensitive
        occupied = {join_drive_path(*split_path(duplicate.path)).lower()}
        if keep.drive_id == duplicate.drive_id:
            occupied.add(join_drive_path(*split_path(keep.path)).lower())
        if upload_path.lower() in occupied:
            logger.warning(
                f"Skipping {duplicate.path}: shortcut {path} would overwrite the duplicate or the kept copy"
            )
            detail.error_message = f"Shortcut path {path} collides with an existing file of the group"
            return detail

        try:
            self.client.upload_content(duplicate.drive_id, upload_path, shortcut_content(keep.web_url))
        except FATAL_ERRORS:
            raise
        except Exception as e:
            self._record_failure(detail, e, "uploading shortcut for")
            return detail

        # The shortcut exists from here on, even if the delete below fails
        detail.shortcut_path = path
        self.registry.append_shortcut(scan_id, ShortcutEntry(
            path=path,
            drive_id=duplicate.drive_id,
            target_path=keep.path,
            target_url=keep.web_url,
        ))

        try:
            self.client.delete_item(duplicate.drive_id, duplicate.id)
        except FATAL_ERRORS:
            raise
        except Exception as e:
            self._record_failure(detail, e, "deleting")
            return detail

        detail.success = True
        logger.info(f"Replaced file {duplicate.path} with shortcut {path}")
        return detail

    @staticmethod
    def _record_failure(detail: ReplacementDetail, exc: Exception, action: str) -> None:
        kind = classify_error(exc)
        label = {
            ErrorKind.UNAUTHORIZED: "Unauthorized access",
            ErrorKind.IO: "IO error",
            ErrorKind.TRANSPORT: "Transport error",
            ErrorKind.REMOTE_API: "Graph API error",
        }.get(kind, "Unexpected error")
        logger.error(f"{label} {action} {detail.original_path}: {exc}")
        detail.success = False
        detail.error_message = error_message(exc)
