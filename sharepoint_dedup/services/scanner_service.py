"""
Scan orchestration: site resolution, drive enumeration and grouping.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from sharepoint_dedup.config import ScannerConfig
from sharepoint_dedup.core.cancellation import CancellationToken
from sharepoint_dedup.core.errors import FATAL_ERRORS, NotFoundError, ScanCancelledError, error_message
from sharepoint_dedup.schemas import DriveRef, FileInfo, ScanReport, ScanStatus
from sharepoint_dedup.services.enumerator import DriveEnumerator
from sharepoint_dedup.services.grouper import group_duplicates
from sharepoint_dedup.services.scan_registry import ScanRegistry

logger = logging.getLogger(__name__)


class ScannerService:
    """Owns the lifecycle of a scan from InProgress to Completed or Failed."""

    def __init__(self, client, registry: ScanRegistry, config: Optional[ScannerConfig] = None):
        """Initialize the service.

        Args:
            client: GraphClient used for site, drive and children lookups.
            registry: Where reports are published.
            config: Page ceiling and drive fan-out settings; defaults when omitted.
        """
        self.client = client
        self.registry = registry
        self.config = config or ScannerConfig()
        self.enumerator = DriveEnumerator(client, self.config.max_pages_per_directory)

    def get_scan_report(self, scan_id: str) -> Optional[ScanReport]:
        return self.registry.get_report(scan_id)

    def list_scans(self) -> List[ScanReport]:
        return self.registry.list_reports()

    def cancel_scan(self, scan_id: str) -> bool:
        return self.registry.cancel(scan_id)

    def scan_site(self, site_url: str, cancel: Optional[CancellationToken] = None) -> ScanReport:
        """Scan every drive of a site and publish the resulting report.

        The report is published with status InProgress before the first
        remote call, so it can be polled by id while the scan runs. Errors
        never propagate: they end the scan with status Failed.

        Args:
            site_url: Absolute URL of the SharePoint site.
            cancel: Optional token; a fresh one is created when omitted.

        Returns:
            The final (Completed or Failed) report.
        """
        cancel = cancel or CancellationToken()
        report = ScanReport(site_url=site_url)
        self.registry.add_report(report)
        self.registry.register_cancellation(report.scan_id, cancel)

        files: List[FileInfo] = []
        try:
            logger.info(f"Starting scan {report.scan_id} of SharePoint site: {site_url}")
            site_id = self.client.resolve_site(site_url, cancel=cancel)

            drives = self.client.list_drives(site_id, cancel=cancel)
            if not drives:
                raise NotFoundError("No drives found in the site")

            self._scan_drives(report, site_id, drives, files, cancel)

            groups = group_duplicates(files)
            report = report.model_copy(update={
                "total_files_scanned": len(files),
                "duplicate_groups": groups,
                "duplicate_files_found": sum(len(g.files) for g in groups),
                "total_space_wasted": sum(g.total_wasted_space for g in groups),
                "status": ScanStatus.COMPLETED,
            })
            logger.info(f"Scan {report.scan_id} completed. Found {len(groups)} duplicate groups")
        except ScanCancelledError as e:
            logger.warning(f"Scan {report.scan_id} was cancelled for site {site_url}")
            report = self._failed(report, e.message, len(files))
        except FATAL_ERRORS:
            raise
        except Exception as e:
            logger.error(f"Error scanning SharePoint site {site_url}: {e}")
            report = self._failed(report, error_message(e), len(files))
        finally:
            self.registry.release_cancellation(report.scan_id)

        self.registry.replace_report(report)
        return report

    @staticmethod
    def _failed(report: ScanReport, message: str, files_scanned: int) -> ScanReport:
        return report.model_copy(update={
            "status": ScanStatus.FAILED,
            "error_message": message,
            "total_files_scanned": files_scanned,
        })

    def _scan_drives(
        self,
        report: ScanReport,
        site_id: str,
        drives: List[DriveRef],
        files: List[FileInfo],
        cancel: CancellationToken,
    ) -> None:
        if self.config.max_parallel_drives <= 1 or len(drives) == 1:
            for drive in drives:
                logger.info(f"Scanning drive: {drive.name} ({drive.id})")
                for file_info in self.enumerator.enumerate(site_id, drive.id, cancel):
                    files.append(file_info)
                # Progress for clients polling the report
                self.registry.replace_report(report.model_copy(update={"total_files_scanned": len(files)}))
            return

        workers = min(self.config.max_parallel_drives, len(drives))
        logger.info(f"Scanning {len(drives)} drives with {workers} workers")
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(lambda d: list(self.enumerator.enumerate(site_id, d.id, cancel)), drive)
                for drive in drives
            ]
            try:
                # Results are concatenated in drive order so grouping stays deterministic
                for future in futures:
                    files.extend(future.result())
            except BaseException:
                cancel.cancel()
                raise
