# -*- coding: utf-8 -*-
"""
PackDiff CLI
====================

Compares two package archives and writes the updates and final reports:

    packdiff oldPackage.tar.gz newPackage.tar.gz
"""

import dataclasses
import logging
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm
from rich.table import Table

from packdiff import __version__
from packdiff.config import get_config
from packdiff.exceptions import PackDiffException, format_exception_chain
from packdiff.models import PackageDiffResult
from packdiff.pipeline import PackageDiffPipeline

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="packdiff",
    help="PackDiff: compare two exported record packages",
    add_completion=False,
)
console = Console()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"PackDiff v{__version__}")
        raise typer.Exit(0)


def _confirm(question: str) -> bool:
    return Confirm.ask(question, console=console, default=False)


def _print_summary(result: PackageDiffResult, elapsed: float) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Check", style="cyan")
    table.add_column("Count", justify="right", style="green")

    table.add_row("Record files compared", str(len(result.record_results)))
    table.add_row("Records added", str(result.added_count))
    table.add_row("Records changed", str(result.changed_count))
    table.add_row("Records removed", str(result.removed_count))
    table.add_row("Lines skipped", str(result.parse_issue_count))
    table.add_row("Dictionaries compared", str(len(result.schema_results)))
    table.add_row("Files added", str(len(result.file_set.added_files)))
    table.add_row("Files removed", str(len(result.file_set.removed_files)))
    console.print(table)

    if result.parse_issue_count:
        console.print(
            f"[yellow][WARN][/yellow] {result.parse_issue_count} record line(s) "
            "could not be compared; see the log for details"
        )

    for name, path in result.report_paths.items():
        console.print(f"[blue][INFO][/blue] {name} report: {escape(path)}")
    console.print(f"[green][OK][/green] All done in {elapsed / 60.0:.1f} minutes")


@app.command()
def diff(
    old_package: Path = typer.Argument(
        ...,
        help="Archive of the old package (e.g. oldPackage.tar.gz)",
    ),
    new_package: Path = typer.Argument(
        ...,
        help="Archive of the new package (e.g. newPackage.tar.gz)",
    ),
    output_dir: Optional[Path] = typer.Option(
        None,
        "--output-dir",
        "-o",
        help="Directory the reports are written to",
    ),
    work_dir: Optional[Path] = typer.Option(
        None,
        "--work-dir",
        help="Directory the packages are extracted into",
    ),
    cleanup: Optional[bool] = typer.Option(
        None,
        "--cleanup/--keep",
        help="Remove or keep the extracted packages without asking",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """
    Compare OLD_PACKAGE with NEW_PACKAGE.

    Writes updates_<new>.diff, updates_ext_<new>.diff and report.diff.
    """
    overrides = {}
    if output_dir is not None:
        overrides["output_dir"] = str(output_dir)
    if work_dir is not None:
        overrides["work_dir"] = str(work_dir)
    if cleanup is not None:
        overrides["cleanup"] = cleanup

    try:
        config = get_config()
        if overrides:
            config = dataclasses.replace(config, **overrides)
    except ValueError as exc:
        console.print(f"[red][FAIL][/red] Invalid configuration: {escape(str(exc))}")
        raise typer.Exit(1)

    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    console.print(
        f"[bold]PackDiff[/bold] {escape(str(old_package))} -> {escape(str(new_package))}"
    )
    start_t = time.time()
    pipeline = PackageDiffPipeline(config, confirm=_confirm)

    try:
        result = pipeline.run(old_package, new_package)
    except PackDiffException as exc:
        logger.debug("Run failed:\n%s", format_exception_chain(exc))
        console.print(f"[red][FAIL][/red] {escape(exc.message)}")
        raise typer.Exit(1)

    _print_summary(result, time.time() - start_t)
