"""
Command-line interface for CrateDocs.

This module provides the entry point for the CrateDocs tool, allowing users
to generate rustdoc JSON for popular crates through the command line.
"""

import asyncio
import logging
import os
import sys
import time
from typing import List, Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from cratedocs import __version__
from cratedocs.batch import BatchRunner
from cratedocs.config import AppConfig, CloneProtocol, LogLevel
from cratedocs.exceptions import ConfigurationError, CrateDocsError
from cratedocs.registry import CratesIoClient, read_package_file
from cratedocs.repo_manager import RepositoryManager, TagResolver, tag_candidates
from cratedocs.schemas import BatchSummary, PackageOutcome, PackageVersion

# Load environment variables from .env file
load_dotenv()


def setup_logging(level: LogLevel, console: Optional[Console] = None) -> None:
    """Route log records through rich at ``level``."""
    logging.basicConfig(
        level=level.value,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(version=__version__, prog_name="cratedocs")
def cli():
    """CrateDocs - Generate rustdoc JSON snapshots for the most popular crates."""
    pass


async def load_packages(config: AppConfig, input_file: Optional[str]) -> List[PackageVersion]:
    """Read packages from ``input_file`` or query the registry."""
    if input_file:
        return read_package_file(input_file)

    client = CratesIoClient(user_agent=config.user_agent, base_url=config.registry_url)
    return await client.top_crates(config.top_n)


async def generate(
    config: AppConfig, input_file: Optional[str], no_progress: bool, console: Optional[Console] = None
) -> BatchSummary:
    """Asynchronous implementation of the batch generation process."""
    console = console or Console()

    console.print("[bold blue]🚀 Starting CrateDocs[/]")
    console.print(f"[dim]Output directory: {config.output_dir}[/]")
    console.print(f"[dim]Working directory: {config.work_dir}[/]")

    packages = await load_packages(config, input_file)
    if not packages:
        console.print("[yellow]⚠️ No packages to process[/]")
        return BatchSummary()

    console.print(f"[bold]📦 {len(packages)} packages queued[/]")
    start_time = time.time()

    if no_progress:
        summary = await BatchRunner(config).run(packages)
    else:
        with Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}[/]"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task(f"[yellow]Processing {packages[0]}...[/]", total=len(packages))

            async def progress_callback(index: int, total: int, outcome: PackageOutcome):
                description = f"[yellow]{outcome.package}: {outcome.status.value}[/]"
                if index < total:
                    description = f"[yellow]Processing {packages[index]}...[/]"
                progress.update(task, completed=index, description=description)

            summary = await BatchRunner(config, progress_callback=progress_callback).run(packages)
            progress.update(task, description="[green]Batch complete![/]")

    elapsed_time = time.time() - start_time
    print_summary(console, config, summary, elapsed_time)
    return summary


def print_summary(console: Console, config: AppConfig, summary: BatchSummary, elapsed_time: float) -> None:
    console.print(f"\n[bold]📊 Processed {summary.total} packages in {elapsed_time:.1f} seconds[/]")
    console.print(f"   [green]Built:[/] {len(summary.built)}")
    console.print(f"   [cyan]No matching tag:[/] {len(summary.no_tag)}")
    console.print(f"   [red]Failed:[/] {len(summary.failures)}")

    for outcome in summary.no_tag:
        console.print(f"   [dim]- no tag for {outcome.package}[/]")

    if summary.failures:
        console.print(f"\n[bold red]❌ Failures written to {config.failure_report_path}[/]")
        for record in summary.failures:
            first_line = (record.error.splitlines() or [""])[0]
            console.print(f"[red]- {record.package}: {first_line}[/]")


@cli.command(name="generate")
@click.option(
    "--input-file",
    help="File with '<repository-url> <name> <version>' lines. Queries crates.io when omitted.",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
)
@click.option("--top", "top_n", help="Number of crates to take from crates.io.", type=int, default=None)
@click.option("--output-dir", help="Directory for the rustdoc JSON files.", type=str, default=None)
@click.option("--work-dir", help="Directory for cloned repositories.", type=str, default=None)
@click.option("--failure-report", help="File the failure report is appended to.", type=str, default=None)
@click.option(
    "--clone-protocol",
    help="Protocol used to clone repositories.",
    type=click.Choice([p.value for p in CloneProtocol]),
    default=None,
)
@click.option(
    "--semver-checks/--no-semver-checks",
    help="Run cargo-semver-checks against each resolved tag.",
    default=None,
)
@click.option("--timeout", help="Seconds before a build attempt is abandoned.", type=float, default=None)
@click.option("--debug", help="Enable debug mode with more verbose output.", is_flag=True, default=False)
@click.option("--no-progress", help="Disable progress display.", is_flag=True, default=False)
def sync_generate(
    input_file, top_n, output_dir, work_dir, failure_report, clone_protocol, semver_checks, timeout, debug, no_progress
):
    """Generate rustdoc JSON for a batch of crates."""
    console = Console()
    try:
        if output_dir and not os.path.isabs(output_dir):
            output_dir = os.path.abspath(output_dir)

        config = AppConfig.from_env_and_args(
            output_dir=output_dir,
            work_dir=work_dir,
            failure_report_path=failure_report,
            clone_protocol=clone_protocol,
            semver_checks=semver_checks,
            build_timeout=timeout,
            top_n=top_n,
            debug=debug,
        )
        if not config.validate():
            sys.exit(1)

        setup_logging(config.log_level, console)
        summary = asyncio.run(generate(config, input_file, no_progress, console))
    except (CrateDocsError, OSError) as e:
        console.print(f"[bold red]❌ Error:[/] {str(e)}")
        if debug:
            import traceback
            console.print("[bold yellow]Traceback:[/]")
            console.print(traceback.format_exc())
        sys.exit(1)

    if summary.failures:
        sys.exit(1)


@cli.command(name="resolve-tag")
@click.argument("repo_path", type=click.Path(exists=True, file_okay=False))
@click.argument("name")
@click.argument("version")
def resolve_tag(repo_path, name, version):
    """Show which tag of an existing clone matches NAME VERSION."""
    console = Console()
    resolver = TagResolver(RepositoryManager(work_dir=os.path.dirname(os.path.abspath(repo_path))))

    try:
        tag = resolver.resolve(repo_path, name, version)
    except CrateDocsError as e:
        console.print(f"[bold red]❌ Error:[/] {str(e)}")
        sys.exit(1)

    if tag is None:
        console.print(f"[yellow]No tag found for {name} {version}. Tried:[/]")
        for candidate in tag_candidates(name, version):
            console.print(f"   [dim]{candidate}[/]")
        sys.exit(2)

    console.print(f"[bold green]{tag}[/]")


@cli.command()
@click.option(
    "--show",
    help="Show current configuration.",
    is_flag=True,
    default=False,
)
def configure(show):
    """Show the configuration CrateDocs would run with."""
    console = Console()

    try:
        config = AppConfig.from_env_and_args()
    except ConfigurationError as e:
        console.print(f"[bold red]❌ Error:[/] {str(e)}")
        sys.exit(1)

    if not show:
        console.print("Settings are read from the environment and a .env file. Use --show to print them.")
        return

    console.print("[bold blue]Current CrateDocs Configuration:[/]")
    console.print(f"[cyan]Output Directory:[/] {config.output_dir}")
    console.print(f"[cyan]Working Directory:[/] {config.work_dir}")
    console.print(f"[cyan]Failure Report:[/] {config.failure_report_path}")
    console.print(f"[cyan]Toolchain:[/] {config.toolchain}")
    console.print(f"[cyan]Clone Protocol:[/] {config.clone_protocol.value}")
    console.print(f"[cyan]Semver Checks:[/] {'✅ Enabled' if config.semver_checks else '❌ Disabled'}")
    console.print(f"[cyan]Build Timeout:[/] {config.build_timeout_seconds or 'None'}")
    console.print(f"[cyan]Top N Crates:[/] {config.top_n}")
    console.print(f"[cyan]Registry URL:[/] {config.registry_url}")
    console.print(f"[cyan]Log Level:[/] {config.log_level.value}")


def main():
    """Entry point for the application."""
    cli()


if __name__ == "__main__":
    main()
