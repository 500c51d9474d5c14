"""
FastAPI router for the SharePoint deduplication endpoints.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from sharepoint_dedup.core.rate_limit import limiter, SCAN_LIMIT
from sharepoint_dedup.dependencies import (
    get_audit_service,
    get_replacer_service,
    get_scanner_service,
    get_verifier_service,
)
from sharepoint_dedup.schemas import (
    CancelScanResponse,
    ReplacementRequest,
    ReplacementResult,
    ScanReport,
    ScanRequest,
    VerificationResult,
)
from sharepoint_dedup.services.audit_service import AuditService
from sharepoint_dedup.services.replacer_service import ReplacerService
from sharepoint_dedup.services.scanner_service import ScannerService
from sharepoint_dedup.services.verifier_service import VerifierService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sharepoint")


def get_client_ip(request: Request) -> str:
    """Detection of client IP, supporting proxies like cloudflared/nginx."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.post("/scan", response_model=ScanReport)
@limiter.limit(SCAN_LIMIT)
async def scan_site(
    request: Request,
    scan_request: ScanRequest,
    scanner: ScannerService = Depends(get_scanner_service),
    audit: AuditService = Depends(get_audit_service),
):
    """Scan every document library of a site and return the duplicate report."""
    site_url = (scan_request.site_url or "").strip()
    if not site_url:
        raise HTTPException(status_code=400, detail="Site URL is required")

    logger.info(f"Scanning SharePoint site: {site_url}")
    report = await run_in_threadpool(scanner.scan_site, site_url)
    await audit.record_scan(report, ip=get_client_ip(request))
    return report


@router.get("/scans", response_model=List[ScanReport])
async def list_scans(scanner: ScannerService = Depends(get_scanner_service)):
    """All scans of this process, newest first."""
    return scanner.list_scans()


@router.get("/scan/{scan_id}", response_model=ScanReport)
async def get_scan_report(scan_id: str, scanner: ScannerService = Depends(get_scanner_service)):
    """Fetch a report by id; works while the scan is still in progress."""
    report = scanner.get_scan_report(scan_id)
    if report is None:
        raise HTTPException(status_code=404, detail=f"Scan report not found: {scan_id}")
    return report


@router.post("/scan/{scan_id}/cancel", response_model=CancelScanResponse)
async def cancel_scan(scan_id: str, scanner: ScannerService = Depends(get_scanner_service)):
    """Ask a running scan to stop; it ends as Failed with a cancellation message."""
    if not scanner.cancel_scan(scan_id):
        raise HTTPException(status_code=404, detail=f"No running scan with id: {scan_id}")
    logger.info(f"Cancellation requested for scan {scan_id}")
    return CancelScanResponse(scan_id=scan_id, cancelled=True)


@router.post("/replace", response_model=ReplacementResult)
async def replace_with_shortcuts(
    request: Request,
    replacement: ReplacementRequest,
    replacer: ReplacerService = Depends(get_replacer_service),
    audit: AuditService = Depends(get_audit_service),
):
    """Replace the non-selected copies of each chosen group with .url shortcuts."""
    if not replacement.scan_id or not replacement.scan_id.strip():
        raise HTTPException(status_code=400, detail="Scan ID is required")
    if not replacement.selections:
        raise HTTPException(status_code=400, detail="At least one replacement selection is required")

    logger.info(f"Replacing duplicates with shortcuts for scan: {replacement.scan_id}")
    result = await run_in_threadpool(replacer.replace, replacement)
    await audit.record_replacement(result, ip=get_client_ip(request))
    return result


@router.post("/verify/{scan_id}", response_model=VerificationResult)
async def verify_shortcuts(
    request: Request,
    scan_id: str,
    verifier: VerifierService = Depends(get_verifier_service),
    audit: AuditService = Depends(get_audit_service),
):
    """Check that every shortcut created for the scan still exists."""
    if not scan_id.strip():
        raise HTTPException(status_code=400, detail="Scan ID is required")

    logger.info(f"Verifying shortcuts for scan: {scan_id}")
    result = await run_in_threadpool(verifier.verify, scan_id)
    await audit.record_verification(result, ip=get_client_ip(request))
    return result


@router.get("/audit")
async def get_audit_log(limit: int = 100, audit: AuditService = Depends(get_audit_service)) -> List[Dict[str, Any]]:
    """Recent replacement, verification and scan events."""
    return await audit.get_logs(limit=max(1, min(limit, 1000)))
