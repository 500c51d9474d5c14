import json
import os
import asyncio
import aiofiles
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Dict, Any, Optional

from sharepoint_dedup.schemas import ReplacementResult, ScanReport, ScanStatus, VerificationResult

logger = logging.getLogger(__name__)

MAX_EVENTS = 1000


class AuditService:
    """Service for recording destructive operations (replacements) and their outcomes."""

    def __init__(self, log_path: Path):
        self.log_path = str(log_path)
        # Ensure data directory exists
        os.makedirs(os.path.dirname(self.log_path), exist_ok=True)
        self._lock = asyncio.Lock()

    async def _read_logs(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.log_path):
            return []
        try:
            async with aiofiles.open(self.log_path, mode='r', encoding='utf-8') as f:
                content = await f.read()
                return json.loads(content) if content else []
        except (OSError, ValueError) as e:
            logger.error(f"Error reading audit logs: {e}")
            return []

    async def _write_logs(self, logs: List[Dict[str, Any]]):
        temp_path = f"{self.log_path}.{os.getpid()}.{asyncio.get_running_loop().time()}.tmp"
        try:
            async with aiofiles.open(temp_path, mode='w', encoding='utf-8') as f:
                await f.write(json.dumps(logs, indent=2, ensure_ascii=False))

            # Windows atomic replace retry loop
            retries = 3
            for i in range(retries):
                try:
                    os.replace(temp_path, self.log_path)
                    break
                except PermissionError:
                    if i == retries - 1:
                        raise
                    await asyncio.sleep(0.1 * (i + 1))
        except OSError as e:
            logger.error(f"Error writing audit logs: {e}")
            if os.path.exists(temp_path):
                try:
                    os.remove(temp_path)
                except OSError:
                    pass
            raise

    @staticmethod
    def _event(action: str, details: str, level: str = "INFO", ip: Optional[str] = None,
               scan_id: Optional[str] = None) -> Dict[str, Any]:
        return {
            "timestamp": datetime.now().isoformat(),
            "action": action,
            "scan_id": scan_id,
            "details": details,
            "level": level,
            "ip": ip
        }

    async def _append(self, events: List[Dict[str, Any]]):
        async with self._lock:
            try:
                logs = await self._read_logs()
                logs[:0] = events  # Newest first
                await self._write_logs(logs[:MAX_EVENTS])
            except OSError as e:
                logger.error(f"Failed to record audit events: {e}")

    async def log_event(self, action: str, details: str, level: str = "INFO", ip: Optional[str] = None,
                        scan_id: Optional[str] = None):
        """Record a single audit event.

        Args:
            action: The action name (e.g., "SCAN", "REPLACE", "VERIFY").
            details: Human readable details.
            level: INFO, WARNING, ERROR.
            ip: Source IP address.
            scan_id: The scan the event belongs to, if any.
        """
        await self._append([self._event(action, details, level, ip, scan_id)])

    async def record_scan(self, report: ScanReport, ip: Optional[str] = None):
        level = "INFO" if report.status == ScanStatus.COMPLETED else "WARNING"
        details = (
            f"Scan of {report.site_url} {report.status.value}: {report.total_files_scanned} files, "
            f"{len(report.duplicate_groups)} duplicate groups"
        )
        if report.error_message:
            details += f" ({report.error_message})"
        await self.log_event("SCAN", details, level, ip, report.scan_id)

    async def record_replacement(self, result: ReplacementResult, ip: Optional[str] = None):
        """One REPLACE summary plus a REPLACE_FAILURE event per failed duplicate."""
        events = [self._event(
            "REPLACE",
            f"{result.successful_replacements}/{result.total_replacements} duplicates replaced with shortcuts",
            "INFO" if result.all_successful else "WARNING",
            ip,
            result.scan_id,
        )]
        for detail in result.details:
            if not detail.success:
                events.append(self._event(
                    "REPLACE_FAILURE",
                    f"{detail.original_path}: {detail.error_message}",
                    "ERROR",
                    ip,
                    result.scan_id,
                ))
        await self._append(events)

    async def record_verification(self, result: VerificationResult, ip: Optional[str] = None):
        await self.log_event(
            "VERIFY",
            f"{result.valid_shortcuts}/{result.total_shortcuts_checked} shortcuts valid",
            "INFO" if result.all_valid else "WARNING",
            ip,
            result.scan_id,
        )

    async def get_logs(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Retrieve recent audit events, newest first."""
        async with self._lock:
            logs = await self._read_logs()
            return logs[:limit]
