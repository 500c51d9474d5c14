import logging
from typing import Optional

from sharepoint_dedup.core.cancellation import CancellationToken
from sharepoint_dedup.core.errors import (
    FATAL_ERRORS,
    ErrorKind,
    InvalidInputError,
    NotFoundError,
    ScanCancelledError,
    classify_error,
    error_message,
)
from sharepoint_dedup.core.paths import join_drive_path, split_path
from sharepoint_dedup.schemas import BrokenShortcutDetail, VerificationResult
from sharepoint_dedup.services.scan_registry import ScanRegistry

logger = logging.getLogger(__name__)

ISSUE_PREFIXES = {
    ErrorKind.REMOTE_API: "Graph API error",
    ErrorKind.TRANSPORT: "Transport error",
    ErrorKind.IO: "IO error",
    ErrorKind.UNAUTHORIZED: "Unauthorized access",
}


class VerifierService:
    """Checks that the shortcuts produced for a scan still exist."""

    def __init__(self, client, registry: ScanRegistry):
        self.client = client
        self.registry = registry

    def verify(self, scan_id: str, cancel: Optional[CancellationToken] = None) -> VerificationResult:
        """Look up every shortcut in the scan's manifest by path.

        Raises:
            InvalidInputError: empty scan id.
            NotFoundError: no manifest or no report for the scan.
            ScanCancelledError: cancel was signalled.
        """
        if not scan_id or not scan_id.strip():
            raise InvalidInputError("Scan ID is required")

        manifest = self.registry.get_manifest(scan_id)
        if manifest is None:
            raise NotFoundError(f"No shortcuts found for scan: {scan_id}")
        if self.registry.get_report(scan_id) is None:
            raise NotFoundError(f"Scan report not found: {scan_id}")

        result = VerificationResult(scan_id=scan_id, total_shortcuts_checked=len(manifest))

        for entry in manifest:
            issue = None
            try:
                parent_dir, file_name = split_path(entry.path)
                item = self.client.get_item_by_path(
                    entry.drive_id, join_drive_path(parent_dir, file_name), cancel=cancel
                )
                if item is None:
                    issue = "Shortcut file not found"
            except (ScanCancelledError, *FATAL_ERRORS):
                raise
            except Exception as e:
                kind = classify_error(e)
                logger.error(f"Error verifying shortcut {entry.path}: {e}")
                prefix = ISSUE_PREFIXES.get(kind)
                issue = f"{prefix}: {error_message(e)}" if prefix else error_message(e)

            if issue is None:
                result.valid_shortcuts += 1
            else:
                result.broken_shortcuts += 1
                result.broken_details.append(BrokenShortcutDetail(
                    shortcut_path=entry.path,
                    target_path=entry.target_path,
                    issue=issue,
                ))

        logger.info(
            f"Verified {result.total_shortcuts_checked} shortcuts for scan {scan_id}: "
            f"{result.valid_shortcuts} valid, {result.broken_shortcuts} broken"
        )
        return result
