"""
In-process store of scan reports and shortcut manifests.

Entries live for the lifetime of the process. All access goes through a
single lock; the lock is never held across a remote call.
"""

import threading
from typing import Dict, List, Optional

from sharepoint_dedup.core.cancellation import CancellationToken
from sharepoint_dedup.schemas import FileInfo, ScanReport, ShortcutEntry


class ScanRegistry:
    """Reports, shortcut manifests and running-scan tokens keyed by scan id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._reports: Dict[str, ScanReport] = {}
        self._manifests: Dict[str, List[ShortcutEntry]] = {}
        self._cancellations: Dict[str, CancellationToken] = {}

    # --- Reports ---

    def add_report(self, report: ScanReport) -> None:
        with self._lock:
            self._reports[report.scan_id] = report

    def replace_report(self, report: ScanReport) -> None:
        """Publish a new version of a report (status and counter updates)."""
        with self._lock:
            self._reports[report.scan_id] = report

    def get_report(self, scan_id: str) -> Optional[ScanReport]:
        with self._lock:
            return self._reports.get(scan_id)

    def list_reports(self) -> List[ScanReport]:
        """All reports, newest first."""
        with self._lock:
            reports = list(self._reports.values())
        return sorted(reports, key=lambda r: r.scan_date, reverse=True)

    def set_selected_true_copy(self, scan_id: str, group_index: int, keep: FileInfo) -> None:
        """Record the operator's keep copy on a group of a completed report.

        Publishes a new report version; reports already handed out are not mutated.
        """
        with self._lock:
            report = self._reports[scan_id]
            groups = list(report.duplicate_groups)
            groups[group_index] = groups[group_index].model_copy(update={"selected_true_copy": keep})
            self._reports[scan_id] = report.model_copy(update={"duplicate_groups": groups})

    # --- Shortcut manifests ---

    def append_shortcut(self, scan_id: str, entry: ShortcutEntry) -> None:
        with self._lock:
            self._manifests.setdefault(scan_id, []).append(entry)

    def ensure_manifest(self, scan_id: str) -> None:
        """Create an empty manifest so a replacement run is visible to verification."""
        with self._lock:
            self._manifests.setdefault(scan_id, [])

    def get_manifest(self, scan_id: str) -> Optional[List[ShortcutEntry]]:
        """A copy of the manifest, or None if no replacement ran for the scan."""
        with self._lock:
            manifest = self._manifests.get(scan_id)
            return list(manifest) if manifest is not None else None

    # --- Cancellation of running scans ---

    def register_cancellation(self, scan_id: str, token: CancellationToken) -> None:
        with self._lock:
            self._cancellations[scan_id] = token

    def release_cancellation(self, scan_id: str) -> None:
        with self._lock:
            self._cancellations.pop(scan_id, None)

    def cancel(self, scan_id: str) -> bool:
        """Signal a running scan. Returns False if no scan with that id is running."""
        with self._lock:
            token = self._cancellations.get(scan_id)
        if token is None:
            return False
        token.cancel()
        return True
