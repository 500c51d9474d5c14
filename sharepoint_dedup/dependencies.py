"""
Service wiring for the API and CLI.

Each getter builds its service once per process. Routes receive them via
``Depends`` so tests can swap them with ``app.dependency_overrides``.
"""

from functools import lru_cache

from sharepoint_dedup.config import settings
from sharepoint_dedup.services.audit_service import AuditService
from sharepoint_dedup.services.credential_service import ClientSecretCredential
from sharepoint_dedup.services.graph_service import GraphClient
from sharepoint_dedup.services.replacer_service import ReplacerService
from sharepoint_dedup.services.scan_registry import ScanRegistry
from sharepoint_dedup.services.scanner_service import ScannerService
from sharepoint_dedup.services.verifier_service import VerifierService


@lru_cache(maxsize=None)
def get_registry() -> ScanRegistry:
    return ScanRegistry()


@lru_cache(maxsize=None)
def get_graph_client() -> GraphClient:
    credential = ClientSecretCredential(settings.azure_ad, timeout=settings.graph.timeout_seconds)
    return GraphClient(credential, settings.graph)


@lru_cache(maxsize=None)
def get_scanner_service() -> ScannerService:
    return ScannerService(get_graph_client(), get_registry(), settings.scanner)


@lru_cache(maxsize=None)
def get_replacer_service() -> ReplacerService:
    return ReplacerService(get_graph_client(), get_registry())


@lru_cache(maxsize=None)
def get_verifier_service() -> VerifierService:
    return VerifierService(get_graph_client(), get_registry())


@lru_cache(maxsize=None)
def get_audit_service() -> AuditService:
    return AuditService(settings.paths.audit_log_file)
