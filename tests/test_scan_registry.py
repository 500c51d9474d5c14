"""
Tests for ScanRegistry.
"""
from sharepoint_dedup.core.cancellation import CancellationToken
from sharepoint_dedup.schemas import ScanReport, ShortcutEntry


def test_selecting_keep_publishes_new_report(registry, completed_scan):
    before = registry.get_report(completed_scan.scan_id)
    keep = before.duplicate_groups[0].files[0]

    registry.set_selected_true_copy(completed_scan.scan_id, 0, keep)

    after = registry.get_report(completed_scan.scan_id)
    assert after is not before
    assert after.duplicate_groups[0].selected_keep_id == "id-a"
    assert before.duplicate_groups[0].selected_true_copy is None
    assert after.duplicate_groups[0].files == before.duplicate_groups[0].files


def test_manifest_is_returned_as_copy(registry):
    registry.append_shortcut("s1", ShortcutEntry(path="/a.url", drive_id="drive-1"))

    registry.get_manifest("s1").append(ShortcutEntry(path="/b.url", drive_id="drive-1"))

    assert [e.path for e in registry.get_manifest("s1")] == ["/a.url"]
    assert registry.get_manifest("other") is None


def test_cancel_only_running_scans(registry):
    token = CancellationToken()
    registry.register_cancellation("s1", token)

    assert registry.cancel("s1") is True
    assert token.cancelled

    registry.release_cancellation("s1")
    assert registry.cancel("s1") is False


def test_list_reports_newest_first(registry, completed_scan):
    newer = ScanReport(scan_date=completed_scan.scan_date.replace(year=completed_scan.scan_date.year + 1))
    registry.add_report(newer)

    assert [r.scan_id for r in registry.list_reports()] == [newer.scan_id, completed_scan.scan_id]
