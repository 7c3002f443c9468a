"""
ImageForge CLI Main Entry Point.

Command-line interface for building, transferring and starting the image.
"""

from __future__ import annotations

import functools
import json
import sys
from pathlib import Path
from typing import Any, Callable

import click
import humanize
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from imageforge import __version__
from imageforge.core.config import HardwareType, ImageForgeConfig, load_config
from imageforge.core.errors import ImageForgeError, OperatorAbortedError
from imageforge.core.models import ConsistencyState, Direction
from imageforge.core.safety import StaticConfirmation
from imageforge.core.session import Session

console = Console()

STATE_STYLES = {
    ConsistencyState.COMPLETE: "green",
    ConsistencyState.ABSENT: "yellow",
    ConsistencyState.IMAGE_ONLY_CORRUPT: "red",
    ConsistencyState.METADATA_ONLY_CORRUPT: "red",
}


def get_session(ctx: click.Context, username: str | None = None) -> Session:
    """Get or create session from context."""
    if "session" not in ctx.obj:
        config = ctx.obj.get("config") or load_config()
        confirmation = StaticConfirmation(True) if ctx.obj.get("assume_yes") else None
        ctx.obj["session"] = Session(config=config, confirmation=confirmation, username=username)
    return ctx.obj["session"]


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """Map ImageForge outcomes to exit codes: abort -> 0, failure -> 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except OperatorAbortedError as e:
            console.print(f"[yellow]{e.message}[/yellow]")
            sys.exit(0)
        except ImageForgeError as e:
            console.print(f"[red]✗ {e.message}[/red]")
            if e.details:
                for key, value in e.details.items():
                    console.print(f"  [dim]{key}:[/dim] {value}")
            sys.exit(1)

    return wrapper


@click.group()
@click.version_option(version=__version__, prog_name="ImageForge")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option("--yes", "-y", "assume_yes", is_flag=True, help="Answer yes to every confirmation")
@click.option(
    "--hardware",
    type=click.Choice([h.value for h in HardwareType]),
    help="Override the configured hardware type",
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path | None,
    assume_yes: bool,
    hardware: str | None,
    json_output: bool,
) -> None:
    """
    ImageForge - Build, transfer and start the shared Apptainer image.

    Keeps the image and its metadata consistent between this workstation
    and the remote build/storage host.
    """
    ctx.ensure_object(dict)

    if config:
        ctx.obj["config"] = ImageForgeConfig.load(config)
    else:
        ctx.obj["config"] = load_config()

    if hardware:
        ctx.obj["config"].hardware = HardwareType(hardware)

    ctx.obj["assume_yes"] = assume_yes or not ctx.obj["config"].safety.require_confirmation
    ctx.obj["json_output"] = json_output


@cli.command("status")
@click.option("--local-only", is_flag=True, help="Do not contact the remote host")
@click.option("-u", "--username", help="Username on the remote host")
@click.pass_context
@handle_errors
def status(ctx: click.Context, local_only: bool, username: str | None) -> None:
    """Show the state of the local and remote image files."""
    session = get_session(ctx, username)

    with console.status("Checking image files..."):
        reports = session.inspect(include_remote=not local_only)

    if ctx.obj.get("json_output"):
        click.echo(json.dumps([r.to_dict() for r in reports], indent=2))
        return

    table = Table(title="Image Status")
    table.add_column("Location", style="cyan")
    table.add_column("Image", style="white")
    table.add_column("State")
    table.add_column("Size", style="green")
    table.add_column("Created At", style="magenta")
    table.add_column("Created By", style="blue")

    for report in reports:
        style = STATE_STYLES[report.state]
        table.add_row(
            report.location.value,
            report.image,
            f"[{style}]{report.state.name}[/{style}]",
            humanize.naturalsize(report.size_bytes, binary=True) if report.size_bytes else "",
            str(report.metadata.created_at) if report.metadata else report.error or "",
            report.metadata.created_by if report.metadata else "",
        )

    console.print(table)


@cli.command("build")
@click.option(
    "--backup/--no-backup",
    default=None,
    help="Keep (or delete) the existing image without asking",
)
@click.pass_context
@handle_errors
def build(ctx: click.Context, backup: bool | None) -> None:
    """Build the image from its definition file."""
    session = get_session(ctx)
    config = session.config

    console.print(
        Panel(
            f"[cyan]Image:[/cyan] {config.artifacts.image_file}\n"
            f"[cyan]Definition:[/cyan] {config.artifacts.definition_path}\n"
            f"[cyan]Hardware:[/cyan] {config.hardware.value}\n"
            f"[cyan]Log:[/cyan] {config.build_log_path}",
            title="Building Apptainer Image",
        )
    )

    result = session.build(keep_backup=backup)

    if ctx.obj.get("json_output"):
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    console.print(f"[green]✓ Built {result.image.name}[/green]")
    if result.metadata:
        console.print(
            f"  [dim]created:[/dim] {result.metadata.to_dict()['created_at']} "
            f"by {result.metadata.created_by}"
        )


@cli.command("transfer")
@click.argument("operation", type=click.Choice([d.value for d in Direction]))
@click.option("-u", "--username", help="Username on the remote host")
@click.pass_context
@handle_errors
def transfer(ctx: click.Context, operation: str, username: str | None) -> None:
    """Upload the image to, or download it from, the remote host."""
    session = get_session(ctx, username)
    direction = Direction(operation)

    console.print(f"[bold]{direction.value.upper()}ING APPTAINER IMAGE[/bold] ({session.host.name})")

    result = session.transfer(direction)

    if ctx.obj.get("json_output"):
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    if result.redirected:
        console.print(
            f"[yellow]Nothing to {result.requested.value}; "
            f"performed a {result.direction.value} instead[/yellow]"
        )
    console.print("[green]✓ The image and metadata files have been successfully transferred[/green]")


@cli.command("start")
@click.option("--nv", "nvidia_gpu", is_flag=True, help="Enable NVIDIA GPU support in the container")
@click.option("-u", "--username", help="Username on the remote host, if a download is needed")
@click.pass_context
@handle_errors
def start(ctx: click.Context, nvidia_gpu: bool, username: str | None) -> None:
    """Start the Apptainer container."""
    session = get_session(ctx, username)
    returncode = session.start(nvidia_gpu=nvidia_gpu)
    if returncode != 0:
        sys.exit(returncode)


@cli.command("config")
@click.option(
    "--write",
    "write_path",
    type=click.Path(path_type=Path),
    help="Save the effective configuration to this file",
)
@click.pass_context
def show_config(ctx: click.Context, write_path: Path | None) -> None:
    """Show the effective configuration."""
    config: ImageForgeConfig = ctx.obj["config"]
    if write_path:
        config.save(write_path)
        console.print(f"[green]✓ Configuration saved to {write_path}[/green]")
        return
    click.echo(json.dumps(config.model_dump(mode="json"), indent=2, default=str))


def main() -> None:
    """Main entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
