"""
Tests for ReplacerService: upload-before-delete transactions and per-item outcomes.
"""
import pytest

from fakes import file_info
from sharepoint_dedup.core.cancellation import CancellationToken
from sharepoint_dedup.core.errors import (
    InvalidInputError,
    NotFoundError,
    RemoteApiError,
    TransportError,
    UnauthorizedError,
)
from sharepoint_dedup.schemas import (
    DuplicateGroup,
    ReplacementRequest,
    ReplacementSelection,
    ScanReport,
    ScanStatus,
)
from sharepoint_dedup.services.replacer_service import ReplacerService


def _request(scan_id, hash_value="X", keep="id-a"):
    return ReplacementRequest(
        scan_id=scan_id,
        selections=[ReplacementSelection(hash=hash_value, true_copy_file_id=keep)],
    )


class TestReplace:

    def test_replace_keeps_one(self, fake_client, registry, completed_scan):
        result = ReplacerService(fake_client, registry).replace(_request(completed_scan.scan_id))

        keep_url = completed_scan.duplicate_groups[0].files[0].web_url
        assert fake_client.calls == [
            ("upload", "drive-1", "dir/b.url", f"[InternetShortcut]\r\nURL={keep_url}\r\n".encode()),
            ("delete", "drive-1", "id-b"),
        ]
        assert result.total_replacements == 1
        assert result.successful_replacements == 1
        assert result.failed_replacements == 0
        assert result.all_successful
        detail = result.details[0]
        assert detail.original_file_id == "id-b"
        assert detail.original_path == "/dir/b.txt"
        assert detail.shortcut_path == "/dir/b.url"
        assert detail.success

    def test_selected_keep_recorded_on_group(self, fake_client, registry, completed_scan):
        ReplacerService(fake_client, registry).replace(_request(completed_scan.scan_id))

        group = registry.get_report(completed_scan.scan_id).duplicate_groups[0]
        assert group.selected_keep_id == "id-a"

    def test_manifest_gains_one_entry_per_removed_duplicate(self, fake_client, registry):
        files = [file_info(f"id-{i}", f"/docs/copy{i}.pdf") for i in range(4)]
        report = ScanReport(
            duplicate_groups=[DuplicateGroup(hash="X", file_size=10, files=files)],
            status=ScanStatus.COMPLETED,
        )
        registry.add_report(report)

        result = ReplacerService(fake_client, registry).replace(_request(report.scan_id, keep="id-2"))

        manifest = registry.get_manifest(report.scan_id)
        assert result.successful_replacements == 3
        assert [e.path for e in manifest] == ["/docs/copy0.url", "/docs/copy1.url", "/docs/copy3.url"]
        assert all(e.drive_id == "drive-1" and e.target_path == "/docs/copy2.pdf" for e in manifest)

    def test_upload_always_precedes_delete(self, fake_client, registry):
        files = [file_info(f"id-{i}", f"/f{i}.txt") for i in range(3)]
        report = ScanReport(
            duplicate_groups=[DuplicateGroup(hash="X", file_size=10, files=files)],
            status=ScanStatus.COMPLETED,
        )
        registry.add_report(report)

        ReplacerService(fake_client, registry).replace(_request(report.scan_id, keep="id-0"))

        for item_id, name in (("id-1", "f1.url"), ("id-2", "f2.url")):
            upload = next(i for i, c in enumerate(fake_client.calls) if c[0] == "upload" and c[2] == name)
            delete = fake_client.calls.index(("delete", "drive-1", item_id))
            assert upload < delete

    def test_root_level_duplicate_uploads_to_root(self, fake_client, registry):
        files = [file_info("id-a", "/a.txt"), file_info("id-b", "/b.txt")]
        report = ScanReport(
            duplicate_groups=[DuplicateGroup(hash="X", file_size=10, files=files)],
            status=ScanStatus.COMPLETED,
        )
        registry.add_report(report)

        ReplacerService(fake_client, registry).replace(_request(report.scan_id))

        manifest = registry.get_manifest(report.scan_id)
        assert fake_client.calls[0][2] == "b.url"
        assert [e.path for e in manifest] == ["/b.url"]

    def test_root_level_detail_shortcut_path(self, fake_client, registry):
        files = [file_info("id-a", "/a.txt"), file_info("id-b", "/b.txt")]
        report = ScanReport(
            duplicate_groups=[DuplicateGroup(hash="X", file_size=10, files=files)],
            status=ScanStatus.COMPLETED,
        )
        registry.add_report(report)

        result = ReplacerService(fake_client, registry).replace(_request(report.scan_id))

        assert result.details[0].shortcut_path == "/b.url"


class TestReplaceFailures:

    def test_upload_failure_skips_delete(self, fake_client, registry, completed_scan):
        fake_client.upload_errors["dir/b.url"] = UnauthorizedError("Access denied")

        result = ReplacerService(fake_client, registry).replace(_request(completed_scan.scan_id))

        assert ("delete", "drive-1", "id-b") not in fake_client.calls
        assert result.total_replacements == 1
        assert result.successful_replacements == 0
        assert result.failed_replacements == 1
        assert result.details[0].success is False
        assert result.details[0].error_message
        assert registry.get_manifest(completed_scan.scan_id) == []

    def test_delete_failure_keeps_shortcut_in_manifest(self, fake_client, registry, completed_scan):
        fake_client.delete_errors["id-b"] = RemoteApiError("Item is locked", code="resourceLocked")

        result = ReplacerService(fake_client, registry).replace(_request(completed_scan.scan_id))

        assert result.failed_replacements == 1
        assert result.details[0].error_message == "Item is locked"
        assert result.details[0].shortcut_path == "/dir/b.url"
        assert [e.path for e in registry.get_manifest(completed_scan.scan_id)] == ["/dir/b.url"]

    def test_failure_does_not_abort_loop(self, fake_client, registry):
        files = [file_info(f"id-{i}", f"/f{i}.txt") for i in range(3)]
        report = ScanReport(
            duplicate_groups=[DuplicateGroup(hash="X", file_size=10, files=files)],
            status=ScanStatus.COMPLETED,
        )
        registry.add_report(report)
        fake_client.upload_errors["f1.url"] = TransportError("connection reset")

        result = ReplacerService(fake_client, registry).replace(_request(report.scan_id, keep="id-0"))

        assert (result.successful_replacements, result.failed_replacements) == (1, 1)
        assert [d.success for d in result.details] == [False, True]

    def test_existing_shortcut_duplicate_is_not_overwritten(self, fake_client, registry):
        files = [file_info("id-a", "/dir/a.url"), file_info("id-b", "/dir/b.url")]
        report = ScanReport(
            duplicate_groups=[DuplicateGroup(hash="X", file_size=10, files=files)],
            status=ScanStatus.COMPLETED,
        )
        registry.add_report(report)

        result = ReplacerService(fake_client, registry).replace(_request(report.scan_id))

        assert fake_client.calls == []
        assert result.failed_replacements == 1
        assert result.details[0].success is False
        assert result.details[0].error_message
        assert registry.get_manifest(report.scan_id) == []

    def test_kept_copy_at_shortcut_path_is_not_overwritten(self, fake_client, registry):
        files = [file_info("id-a", "/dir/B.url"), file_info("id-b", "/dir/b.txt")]
        report = ScanReport(
            duplicate_groups=[DuplicateGroup(hash="X", file_size=10, files=files)],
            status=ScanStatus.COMPLETED,
        )
        registry.add_report(report)

        result = ReplacerService(fake_client, registry).replace(_request(report.scan_id))

        assert fake_client.calls == []
        assert result.failed_replacements == 1

    def test_kept_copy_in_other_drive_does_not_collide(self, fake_client, registry):
        files = [file_info("id-a", "/dir/b.url", drive_id="drive-2"), file_info("id-b", "/dir/b.txt")]
        report = ScanReport(
            duplicate_groups=[DuplicateGroup(hash="X", file_size=10, files=files)],
            status=ScanStatus.COMPLETED,
        )
        registry.add_report(report)

        result = ReplacerService(fake_client, registry).replace(_request(report.scan_id))

        assert result.successful_replacements == 1
        assert fake_client.calls[0][:3] == ("upload", "drive-1", "dir/b.url")

    def test_os_error_reported(self, fake_client, registry, completed_scan):
        fake_client.upload_errors["dir/b.url"] = OSError("disk quota")

        result = ReplacerService(fake_client, registry).replace(_request(completed_scan.scan_id))

        assert result.details[0].error_message == "disk quota"

    def test_unknown_hash_and_keep_id_are_skipped(self, fake_client, registry, completed_scan):
        request = ReplacementRequest(
            scan_id=completed_scan.scan_id,
            selections=[
                ReplacementSelection(hash="nope", true_copy_file_id="id-a"),
                ReplacementSelection(hash="X", true_copy_file_id="nope"),
            ],
        )

        result = ReplacerService(fake_client, registry).replace(request)

        assert result.total_replacements == 0
        assert fake_client.calls == []

    def test_cancelled_replacement_stops_before_next_transaction(self, fake_client, registry, completed_scan):
        token = CancellationToken()
        token.cancel()

        result = ReplacerService(fake_client, registry).replace(_request(completed_scan.scan_id), token)

        assert result.total_replacements == 0
        assert fake_client.calls == []


class TestReplacePreconditions:

    def test_unknown_scan(self, fake_client, registry):
        with pytest.raises(NotFoundError):
            ReplacerService(fake_client, registry).replace(_request("missing"))

    def test_empty_scan_id(self, fake_client, registry):
        with pytest.raises(InvalidInputError):
            ReplacerService(fake_client, registry).replace(_request(" "))

    def test_empty_selections(self, fake_client, registry, completed_scan):
        with pytest.raises(InvalidInputError):
            ReplacerService(fake_client, registry).replace(ReplacementRequest(scan_id=completed_scan.scan_id))

    def test_scan_not_completed(self, fake_client, registry):
        report = ScanReport(status=ScanStatus.IN_PROGRESS)
        registry.add_report(report)

        with pytest.raises(InvalidInputError):
            ReplacerService(fake_client, registry).replace(_request(report.scan_id))
