"""Click CLI entry point for export and import."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import click
import yaml

from translation_exchange.config import LoggingSettings, Settings
from translation_exchange.errors import TranslationExchangeError
from translation_exchange.exporter import ExportRequest, ExportService
from translation_exchange.importer import ImportService
from translation_exchange.repository import ContentRepository

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "translation_exchange"


@dataclass
class CliState:
    """Objects shared by the subcommands."""

    settings: Settings
    repository_path: Path

    def load_repository(self) -> ContentRepository:
        return ContentRepository.load(self.repository_path)


@click.group()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Settings YAML file",
)
@click.option(
    "--repository",
    "-r",
    "repository_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Content repository snapshot (defaults to repository_file from settings)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(
    ctx: click.Context, config_path: Path | None, repository_path: Path | None, verbose: bool
) -> None:
    """Export content for translation and import translated content."""
    try:
        settings = Settings.load(config_path) if config_path else Settings.default()
    except yaml.YAMLError as e:
        raise click.ClickException(f"Invalid settings file: {e}") from e
    configure_logging(settings.logging, "DEBUG" if verbose else None)
    ctx.default_map = {
        "export": {
            "ignore_hidden": settings.export.ignore_hidden,
            "exclude_child_documents": settings.export.exclude_child_documents,
        },
        "import": {"workspace": settings.imports.workspace},
    }
    ctx.obj = CliState(settings=settings, repository_path=repository_path or settings.repository_file)


@cli.command("export")
@click.argument("starting_point")
@click.option("--source-language", "-s", required=True, help="Language to use as base for the export")
@click.option("--target-language", "-t", help="Target language for the translation")
@click.option(
    "--filename",
    "-f",
    type=click.Path(dir_okay=False, path_type=Path),
    help="XML file to create (stdout if omitted)",
)
@click.option("--modified-after", help="Only export nodes modified at or after this ISO-8601 time")
@click.option(
    "--ignore-hidden/--include-hidden",
    default=True,
    help="Skip hidden nodes and nodes below hidden ones",
)
@click.option(
    "--exclude-child-documents",
    is_flag=True,
    help="Only export content nodes, not nested documents",
)
@click.pass_obj
def export_command(
    state: CliState,
    starting_point: str,
    source_language: str,
    target_language: str | None,
    filename: Path | None,
    modified_after: str | None,
    ignore_hidden: bool,
    exclude_child_documents: bool,
) -> None:
    """Export the tree below STARTING_POINT (identifier or path below /sites)."""
    request = ExportRequest(
        starting_point=starting_point,
        source_language=source_language,
        target_language=target_language,
        modified_after=parse_timestamp(modified_after),
        ignore_hidden=ignore_hidden,
        exclude_child_documents=exclude_child_documents,
    )

    try:
        service = ExportService(state.settings, state.load_repository())
        if filename is None:
            click.echo(service.export_to_string(request), nl=False)
        else:
            count = service.export_to_file(request, filename)
            click.echo(
                f'The tree starting at "/sites/{starting_point}" has been exported to '
                f'"{filename}" ({count} variants).'
            )
    except (TranslationExchangeError, FileNotFoundError, yaml.YAMLError) as e:
        logger.debug("Export failed", exc_info=True)
        raise click.ClickException(str(e)) from e


@cli.command("import")
@click.argument("filename", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--target-language", "-t", help="Target language, optional if included in the XML")
@click.option("--workspace", "-w", default="live", show_default=True, help="Workspace to import into")
@click.pass_obj
def import_command(
    state: CliState, filename: Path, target_language: str | None, workspace: str
) -> None:
    """Import translated content from FILENAME."""
    try:
        service = ImportService(state.settings, state.load_repository())
        result = service.import_from_file(filename, workspace, target_language)
    except (TranslationExchangeError, FileNotFoundError, yaml.YAMLError) as e:
        logger.debug("Import failed", exc_info=True)
        raise click.ClickException(str(e)) from e

    click.echo(
        f'The file "{filename}" has been imported to language "{result.target_language}" '
        f'in workspace "{result.workspace}".'
    )
    click.echo(
        f"  Variants: {result.variants_read} read, {result.variants_adopted} adopted, "
        f"{result.variants_unmatched} unmatched, {result.variants_unchanged} unchanged"
    )


def configure_logging(settings: LoggingSettings, level_override: str | None = None) -> None:
    """Send package log records to stderr and the optional log file.

    stdout is left alone because `export` without `--filename` writes
    the XML document there.
    """
    level = getattr(logging, (level_override or settings.level).upper(), logging.INFO)
    formatter = logging.Formatter(settings.format)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if settings.file:
        log_path = Path(settings.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    for handler in package_logger.handlers:
        handler.close()
    package_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp option."""
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise click.BadParameter(
            f"Invalid timestamp: {value}", param_hint="'--modified-after'"
        ) from e


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
