from seminars.app import create_app, db

import click
from flask.cli import FlaskGroup
from flask_migrate import Migrate

from seminars.services.certificate_scans import process_missing, process_pending


migrate = Migrate()


def create_seminars_app():
    app = create_app()
    migrate.init_app(app, db)
    return app


cli = FlaskGroup(create_app=create_seminars_app)


def _table(rows: list[tuple[str, object]]) -> list[str]:
    width = max(len(label) for label, _ in rows)
    lines = [f"{'Metric'.ljust(width)}  Count", f"{'-' * width}  -----"]
    lines.extend(f"{label.ljust(width)}  {value}" for label, value in rows)
    return lines


@cli.command("process-missing")
@click.option("--send-email", is_flag=True, help="Email the certificate after generating it")
@click.option("--sync", is_flag=True, help="Process in this process instead of queuing")
@click.option(
    "--event",
    "--seminar",
    "seminar_id",
    type=int,
    default=None,
    help="Only registrations of this seminar id",
)
def process_missing_cmd(send_email: bool, sync: bool, seminar_id: int | None):
    """Generate missing certificate images and PDFs for attendees."""
    summary = process_missing(send_email=send_email, sync=sync, seminar_id=seminar_id)
    click.echo(f"Found {summary.total} registrations.")
    for line in _table(
        [
            ("Total registrations", summary.total),
            ("Processed/queued", summary.processed),
            ("Already present (skipped)", summary.skipped),
            ("Orphaned (skipped)", summary.orphaned),
            ("Errors", summary.errors),
        ]
    ):
        click.echo(line)


@cli.command("process-pending")
@click.option("--sync", is_flag=True, help="Process in this process instead of queuing")
@click.option("--no-email", is_flag=True, help="Skip sending emails")
def process_pending_cmd(sync: bool, no_email: bool):
    """Generate and send certificates for attendees not yet notified."""
    summary = process_pending(sync=sync, send_email=not no_email)
    if not summary.dispatched and not summary.orphaned and not summary.errors:
        click.echo("No pending certificates to process.")
        return
    for line in summary.lines:
        click.echo(line)
    if summary.orphaned:
        click.echo(f"Skipped {summary.orphaned} orphaned registration(s).")
    if summary.errors:
        click.echo(f"Failed {summary.errors} registration(s); see the log for details.")
    click.echo(f"Dispatched {summary.dispatched} certificate job(s).")


if __name__ == "__main__":
    cli()
