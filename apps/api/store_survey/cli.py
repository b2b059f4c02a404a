"""CLI tools for survey spreadsheet administration."""

import anyio
import click
import httpx

from store_survey.core.config import settings
from store_survey.core.survey_definitions import SHEET_COLUMNS
from store_survey.services.sheets_client import GoogleSheetsClient, SheetsClientError
from store_survey.services.submission_service import SubmissionService


@click.group()
def cli():
    """Store survey CLI tools."""
    pass


@cli.command()
def init_sheet():
    """
    Prepare the results spreadsheet before the first submission.

    Widens the first worksheet if needed and writes the header row. Safe to
    run repeatedly; an existing full header row is left alone.

    Example:
        python -m store_survey.cli init-sheet
    """

    async def _run() -> None:
        async with httpx.AsyncClient() as client:
            service = SubmissionService(
                GoogleSheetsClient.from_settings(client),
                bucket=settings.S3_BUCKET,
                timezone=settings.business_tz,
            )
            worksheet = await service.ensure_header_row()
            click.echo(f"✓ Worksheet '{worksheet.title}' has {len(SHEET_COLUMNS)} header columns")

    try:
        anyio.run(_run)
    except SheetsClientError as e:
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)


@cli.command()
def print_columns():
    """List the spreadsheet columns in order."""
    for index, column in enumerate(SHEET_COLUMNS, start=1):
        click.echo(f"{index:>2}  {column.key:<32} {column.header}")


if __name__ == "__main__":
    cli()
