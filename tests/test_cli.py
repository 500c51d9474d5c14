"""
Tests for the click CLI.
"""
import json

from click.testing import CliRunner

from fakes import SITE_URL, make_file
from sharepoint_dedup import cli as cli_module
from sharepoint_dedup.services.scanner_service import ScannerService


def test_format_size():
    assert cli_module.format_size(512) == "512.00 B"
    assert cli_module.format_size(1536) == "1.50 KB"
    assert cli_module.format_size(3 * 1024 ** 4) == "3.00 TB"


def test_scan_prints_summary(monkeypatch, fake_client, registry):
    fake_client.add_children("drive-1", "root", [make_file("a", "a.txt"), make_file("b", "b.txt")])
    monkeypatch.setattr(cli_module, "get_scanner_service", lambda: ScannerService(fake_client, registry))

    result = CliRunner().invoke(cli_module.cli, ["scan", SITE_URL])

    assert result.exit_code == 0
    assert "Completed" in result.output
    assert "Duplicate groups:     1" in result.output
    assert "b  /b.txt" in result.output


def test_scan_json_output(monkeypatch, fake_client, registry):
    monkeypatch.setattr(cli_module, "get_scanner_service", lambda: ScannerService(fake_client, registry))

    result = CliRunner().invoke(cli_module.cli, ["scan", SITE_URL, "--json"])

    assert result.exit_code == 0
    assert json.loads(result.output)["status"] == "Completed"


def test_failed_scan_exits_non_zero(monkeypatch, fake_client, registry):
    monkeypatch.setattr(cli_module, "get_scanner_service", lambda: ScannerService(fake_client, registry))

    result = CliRunner().invoke(cli_module.cli, ["scan", "https://contoso.sharepoint.com/sites/Nope"])

    assert result.exit_code == 1
    assert "Failed" in result.output
