"""
Shared fixtures for the deduplicator tests.
"""
import pytest

from fakes import SITE_URL, FakeGraphClient, file_info
from sharepoint_dedup.schemas import DuplicateGroup, ScanReport, ScanStatus
from sharepoint_dedup.services.scan_registry import ScanRegistry


@pytest.fixture
def fake_client():
    return FakeGraphClient()


@pytest.fixture
def registry():
    return ScanRegistry()


@pytest.fixture
def completed_scan(registry):
    """A completed scan with one group {/dir/a.txt, /dir/b.txt} sharing hash X."""
    group = DuplicateGroup(
        hash="X",
        hash_algorithm="quickXorHash",
        file_size=10,
        files=[file_info("id-a", "/dir/a.txt"), file_info("id-b", "/dir/b.txt")],
    )
    report = ScanReport(
        site_url=SITE_URL,
        total_files_scanned=2,
        duplicate_files_found=2,
        total_space_wasted=10,
        duplicate_groups=[group],
        status=ScanStatus.COMPLETED,
    )
    registry.add_report(report)
    return report
