"""
CLI for the SharePoint deduplicator.

Uses the same services as the API so scans behave identically.
"""

import click

from sharepoint_dedup.config import settings
from sharepoint_dedup.dependencies import get_scanner_service
from sharepoint_dedup.schemas import ScanStatus


def format_size(size_bytes: int) -> str:
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.2f} {unit}"
        size /= 1024
    return f"{size:.2f} TB"


@click.group()
def cli():
    """SharePoint Deduplicator CLI."""
    pass


@cli.command()
@click.argument('site_url')
@click.option('--json', 'as_json', is_flag=True, help='Print the full report as JSON')
def scan(site_url, as_json):
    """Scan a SharePoint site for duplicate files."""
    report = get_scanner_service().scan_site(site_url)

    if as_json:
        click.echo(report.model_dump_json(by_alias=True, indent=2))
    else:
        click.echo("=" * 50)
        click.echo(f"Scan {report.scan_id}: {report.status.value}")
        click.echo("=" * 50)
        click.echo(f"  Files scanned:        {report.total_files_scanned}")
        click.echo(f"  Duplicate groups:     {len(report.duplicate_groups)}")
        click.echo(f"  Duplicate files:      {report.duplicate_files_found}")
        click.echo(f"  Space wasted:         {format_size(report.total_space_wasted)}")
        for group in report.duplicate_groups:
            click.echo(f"\n  [{group.hash}] {len(group.files)} x {format_size(group.file_size)}")
            for f in group.files:
                click.echo(f"    {f.id}  {f.path}")

    if report.status != ScanStatus.COMPLETED:
        click.echo(f'[ERROR] {report.error_message}', err=True)
        raise SystemExit(1)


@cli.command()
@click.option('--host', default=None, help='Bind address (defaults to server.host)')
@click.option('--port', default=None, type=int, help='Port (defaults to server.port)')
def serve(host, port):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run(
        "sharepoint_dedup.app:app",
        host=host or settings.server.host,
        port=port or settings.server.port,
        reload=settings.server.debug,
    )


if __name__ == '__main__':
    cli()
