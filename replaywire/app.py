"""replaywire - CLI Entry Point"""

import sys
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .replay.errors import ChainDecodeError
from .replay.fixture_manager import FixtureManager
from .replay.models import RecordedExchange
from .utils.logging import get_logger, setup_logging
from .utils.text import truncate

# Load environment variables
load_dotenv()

console = Console()
logger = get_logger(__name__)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--log-level", default="WARNING", help="Log level")
@click.option(
    "--log-format",
    type=click.Choice(["rich", "json"]),
    default="rich",
    help="Console log format",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Also write JSON log lines to this file",
)
def cli(verbose: bool, log_level: str, log_format: str, log_file: Optional[Path]) -> None:
    """replaywire - 檢視與維護錄製的 HTTP fixtures"""
    level = "DEBUG" if verbose else log_level
    setup_logging(level=level, log_format=log_format, log_file=log_file)


@cli.command("list")
@click.argument("fixture_dir", type=click.Path(file_okay=False, path_type=Path))
def list_chains(fixture_dir: Path) -> None:
    """List recorded chains"""
    chains = FixtureManager(fixture_dir).list_chains()

    if not chains:
        console.print(f"[yellow]No chains found in {fixture_dir}[/yellow]")
        return

    table = Table(title=f"Chains in {fixture_dir}")
    table.add_column("Chain", style="cyan")
    table.add_column("Exchanges", justify="right", style="green")
    table.add_column("Size", justify="right")
    table.add_column("Modified", style="dim")

    for chain in chains:
        exchanges = chain["exchanges"]
        table.add_row(
            chain["path"],
            str(exchanges) if exchanges is not None else "[red]unreadable[/red]",
            f"{chain['size_bytes']:,} B",
            chain["modified_at"],
        )

    console.print(table)
    console.print(f"\n[bold]Total chains:[/bold] {len(chains)}")


@cli.command()
@click.argument("chain_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def show(chain_file: Path) -> None:
    """Show the exchanges of one chain file"""
    manager = FixtureManager(chain_file.parent)
    try:
        chain = manager.read_chain(chain_file)
    except ChainDecodeError as e:
        console.print(f"[red]✗ {e}[/red]")
        sys.exit(1)

    table = Table(title=chain_file.name)
    table.add_column("#", justify="right")
    table.add_column("Method", style="cyan")
    table.add_column("URL")
    table.add_column("Status", justify="right", style="green")
    table.add_column("Recorded", style="dim")

    for index, entry in enumerate(chain):
        try:
            exchange = RecordedExchange.from_dict(entry)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            table.add_row(str(index), "", f"[red]malformed: {e}[/red]", "", "")
            continue
        table.add_row(
            str(index),
            exchange.request.method,
            truncate(exchange.request.url, 80),
            str(exchange.response.status_code),
            exchange.recorded_at,
        )

    console.print(table)


@cli.command()
@click.argument("fixture_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
def verify(fixture_dir: Path) -> None:
    """Check that every recorded exchange can be replayed"""
    report = FixtureManager(fixture_dir).verify()

    for problem in report.problems:
        console.print(f"  ✗ {problem}", style="red")

    console.print(
        f"\n[bold]Chains:[/bold] {report.chains}  "
        f"[bold]Exchanges:[/bold] {report.exchanges}  "
        f"[bold]Problems:[/bold] {len(report.problems)}"
    )

    if not report.ok:
        sys.exit(1)
    console.print("[bold green]All recordings are loadable[/bold green]")


@cli.command()
@click.argument("fixture_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
def clean(fixture_dir: Path) -> None:
    """Remove temp files left by interrupted recordings"""
    deleted = FixtureManager(fixture_dir).cleanup_temp_files()
    console.print(f"Removed {deleted} temp files")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
