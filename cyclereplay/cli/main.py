"""cyclereplay CLI — inspect recorded .cylog files.

Commands:
    cyclereplay info <file>                       Show log summary and key schema
    cyclereplay show <file> -p <prefix> -c <n>    Show one recorded table
    cyclereplay streams <file>                    List instrumentation streams
"""

from __future__ import annotations

from pathlib import Path

import click
import numpy as np
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()


def _open_reader(file: Path):
    from cyclereplay.storage.reader import LogReader

    try:
        reader = LogReader(file)
        reader.open()
    except Exception as e:
        console.print(f"[red]Error opening {file}: {e}[/red]")
        raise SystemExit(1)
    return reader


def _format_value(value: object) -> str:
    if isinstance(value, np.ndarray):
        return np.array2string(value, separator=", ", threshold=16)
    return repr(value)


@click.group()
@click.version_option(version="0.1.0", prog_name="cyclereplay")
def cli() -> None:
    """cyclereplay — deterministic input logging and replay for control loops."""
    pass


@cli.command()
@click.argument("file", type=click.Path(exists=True, path_type=Path))
def info(file: Path) -> None:
    """Show log summary."""
    reader = _open_reader(file)
    meta = reader.metadata

    console.print()
    console.print(Panel.fit(f"[bold]{meta.name}[/bold]", subtitle=f"{file}"))

    meta_table = Table(show_header=False, box=None, padding=(0, 2))
    meta_table.add_column("Key", style="dim")
    meta_table.add_column("Value")
    if meta.robot:
        meta_table.add_row("Robot", meta.robot)
    meta_table.add_row("Cycles", str(reader.num_cycles))
    meta_table.add_row("Prefixes", str(len(reader.prefixes)))
    meta_table.add_row("Streams", str(len(reader.stream_index.streams)))
    meta_table.add_row("Created", meta.created_at)
    console.print(meta_table)

    if reader.schema.entries:
        console.print()
        keys_table = Table(title="Keys")
        keys_table.add_column("Prefix")
        keys_table.add_column("Key")
        keys_table.add_column("Type")
        keys_table.add_column("Samples", justify="right")
        for key, entry in reader.schema.entries.items():
            keys_table.add_row(
                entry.prefix, entry.name, entry.type.value, str(len(reader.key_cycles(key)))
            )
        console.print(keys_table)

    reader.close()
    console.print()


@cli.command()
@click.argument("file", type=click.Path(exists=True, path_type=Path))
@click.option("--prefix", "-p", required=True, help="Prefix of the table, e.g. DriverStation")
@click.option("--cycle", "-c", default=0, help="Cycle index")
def show(file: Path, prefix: str, cycle: int) -> None:
    """Show the table recorded under a prefix at one cycle."""
    reader = _open_reader(file)
    table = reader.read(cycle, prefix)

    if len(table) == 0:
        console.print(f"[yellow]Nothing recorded for '{prefix}' at cycle {cycle}[/yellow]")
    else:
        out = Table(title=f"{prefix} @ cycle {cycle}")
        out.add_column("Key")
        out.add_column("Type")
        out.add_column("Value")
        for key, value in table.items():
            out.add_row(key, value.type.value, _format_value(value.value))
        console.print(out)

    reader.close()


@cli.command()
@click.argument("file", type=click.Path(exists=True, path_type=Path))
def streams(file: Path) -> None:
    """List instrumentation streams."""
    reader = _open_reader(file)

    if not reader.stream_index.streams:
        console.print("[dim]No instrumentation streams.[/dim]")
    else:
        out = Table(title="Instrumentation Streams")
        out.add_column("Name")
        out.add_column("Kind")
        out.add_column("Unit")
        out.add_column("Samples", justify="right")
        for name, stream in reader.stream_index.streams.items():
            out.add_row(name, stream.kind, stream.unit, str(len(reader.stream(name))))
        console.print(out)

    reader.close()


if __name__ == "__main__":
    cli()
