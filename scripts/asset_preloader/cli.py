"""
Command-line interface for the asset preloader.
Preloads manifests, inspects structured files and manages configuration.
"""

import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

import toml
import typer
from rich.console import Console
from rich.table import Table
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from . import __version__
from .config import PreloaderConfig, PreloadManifest
from .errors import PreloadError
from .manager import AssetsManager
from .processing.normalizer import DocumentKind, decode_document
from .processing.progress import ProgressEvent
from .schema import AtlasDescriptor, TileMap, Tileset, TilesetRef

# Initialize typer app and rich console
app = typer.Typer(
    name="asset-preloader",
    help="Asset preloader - Load images, audio, Tiled maps/tilesets and sprite atlases with dependency resolution",
    add_completion=False,
    rich_markup_mode="rich",
    epilog="""
[bold]Examples:[/bold]
  [cyan]asset-preloader preload assets.toml[/cyan]              Preload every file of a manifest
  [cyan]asset-preloader inspect maps/level1.tmx[/cyan]          Summarize a tile map
  [cyan]asset-preloader inspect ui.xml --kind atlas -f json[/cyan]  Dump an atlas as JSON

[bold]Environment Variables:[/bold]
  Use [cyan]asset-preloader config --env-vars[/cyan] to see all available variables.
    """
)
console = Console()

KIND_NAMES = {
    "tilemap": DocumentKind.TILEMAP,
    "tileset": DocumentKind.TILESET,
    "atlas": DocumentKind.ATLAS,
}

# Extensions that name exactly one document kind
KIND_BY_EXTENSION = {
    ".tmj": DocumentKind.TILEMAP,
    ".tmx": DocumentKind.TILEMAP,
    ".tsj": DocumentKind.TILESET,
    ".tsx": DocumentKind.TILESET,
}

OUTPUT_FORMATS = ("table", "json", "toml")


@app.command()
def preload(
    manifest: Path = typer.Argument(..., help="Manifest file (TOML or JSON) with one key = url table per loader type"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    base_dir: Optional[Path] = typer.Option(None, "--base-dir", help="Directory relative paths are resolved against (defaults to the manifest's directory)"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override the configured log level"),
    strict: bool = typer.Option(False, "--strict", help="Exit with an error if any file failed to load"),
    show_summary: bool = typer.Option(True, "--summary/--no-summary", help="Show loaded file counts per loader type")
):
    """Preload every file listed in a manifest."""
    if not manifest.exists():
        console.print(f"[red]Manifest file not found:[/red] {manifest}")
        raise typer.Exit(1)

    config = _load_config(config_file)
    if base_dir is not None:
        config.base_dir = str(base_dir)
    elif config.base_dir == PreloaderConfig.base_dir:
        # Neither the configuration file nor the environment set one
        config.base_dir = str(manifest.parent)
    if log_level:
        config.log_level = log_level.upper()

    errors = config.validate()
    if errors:
        console.print("[red]Configuration validation errors:[/red]")
        for error in errors:
            console.print(f"  • {error}")
        raise typer.Exit(1)

    try:
        files = PreloadManifest.from_file(manifest)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error reading manifest:[/red] {e}")
        raise typer.Exit(1)

    manager = AssetsManager(config)
    failures: List[ProgressEvent] = []
    manager.add_event_listener("error", failures.append)

    try:
        for type_name, key, url in files:
            if not manager.has_loader_type(type_name):
                console.print(f"[dim]Registering custom loader type '{type_name}' (raw bytes)[/dim]")
                manager.register_loader_type(type_name)
            manager.add_file(type_name, key, url)

        console.print(f"[bold blue]Preloading {manager.files_waiting_for_upload} file(s)...[/bold blue]")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console
        ) as progress:
            task = progress.add_task("Loading...", total=manager.files_waiting_for_upload)

            def on_progress(event: ProgressEvent) -> None:
                # Discovered dependencies grow the total while loading
                progress.update(
                    task,
                    completed=event.loaded,
                    total=event.loaded + event.total,
                    description=f"{event.loader_type} '{event.key}'",
                )

            manager.add_event_listener("progress", on_progress)
            asyncio.run(manager.preload())
            progress.update(task, description="✓ Done")

    except PreloadError as e:
        console.print(f"[red]Preload aborted:[/red] {e}")
        raise typer.Exit(1)
    finally:
        manager.close()

    if show_summary:
        _display_preload_summary(manager)

    if failures:
        console.print(f"[yellow]{len(failures)} file(s) failed to load:[/yellow]")
        for event in failures:
            console.print(f"  • {event.loader_type} '{event.key}': {event.error}")
        if strict:
            raise typer.Exit(1)
    else:
        console.print("[green]✓ All files loaded successfully[/green]")


@app.command("inspect")
def inspect_file(
    file: Path = typer.Argument(..., help="Tile map, tileset or atlas file"),
    kind: Optional[str] = typer.Option(None, "--kind", "-k", help="tilemap, tileset or atlas (guessed from .tmj/.tmx/.tsj/.tsx)"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format: table, json or toml")
):
    """Normalize one structured file and print it."""
    if not file.exists():
        console.print(f"[red]File not found:[/red] {file}")
        raise typer.Exit(1)

    if output_format not in OUTPUT_FORMATS:
        console.print(f"[red]Unknown format '{output_format}'.[/red] Use one of: {', '.join(OUTPUT_FORMATS)}")
        raise typer.Exit(1)

    if kind is not None:
        document_kind = KIND_NAMES.get(kind.lower())
        if document_kind is None:
            console.print(f"[red]Unknown kind '{kind}'.[/red] Use one of: {', '.join(KIND_NAMES)}")
            raise typer.Exit(1)
    else:
        document_kind = KIND_BY_EXTENSION.get(file.suffix.lower())
        if document_kind is None:
            console.print(f"[red]Cannot guess the kind of '{file.name}'.[/red] Pass --kind tilemap, tileset or atlas")
            raise typer.Exit(1)

    try:
        record = decode_document(file.read_bytes(), file.name, document_kind)
    except PreloadError as e:
        console.print(f"[red]Error reading {document_kind.value}:[/red] {e}")
        raise typer.Exit(1)

    if output_format == "json":
        typer.echo(json.dumps(record.to_dict(), indent=2))
    elif output_format == "toml":
        typer.echo(toml.dumps(record.to_dict()))
    elif isinstance(record, TileMap):
        _display_tilemap(record)
    elif isinstance(record, Tileset):
        _display_tileset(record)
    else:
        _display_atlas(record)


@app.command()
def config(
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    validate_config: bool = typer.Option(False, "--validate", help="Validate configuration file"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file path"),
    env_vars: bool = typer.Option(False, "--env-vars", help="Show available environment variables")
):
    """Manage preloader configuration."""
    if env_vars:
        _display_env_vars()
        return

    if not (show or validate_config):
        console.print("Use --show to display configuration, --validate to check it, or --env-vars to see environment variables.")
        return

    try:
        config = _load_config(config_file)
    except (OSError, ValueError) as e:
        console.print(f"[red]Error managing configuration:[/red] {e}")
        raise typer.Exit(1)

    if show:
        _display_config(config)

    if validate_config:
        errors = config.validate()
        if errors:
            console.print("[red]Configuration validation errors:[/red]")
            for error in errors:
                console.print(f"  • {error}")
            raise typer.Exit(1)
        console.print("[green]✓ Configuration is valid[/green]")


@app.command()
def version():
    """Show asset preloader version information."""
    console.print("[bold]Asset Preloader[/bold]")
    console.print(f"Version: {__version__}")
    console.print("Python: " + sys.version.split()[0])


def _load_config(config_file: Optional[Path]) -> PreloaderConfig:
    """Load configuration from file or use defaults with environment variable support."""
    config = None

    if config_file:
        if not config_file.exists():
            console.print(f"[red]Configuration file not found:[/red] {config_file}")
            raise typer.Exit(1)
        config = PreloaderConfig.from_file(config_file)
        console.print(f"[dim]Using configuration: {config_file}[/dim]")
    else:
        for config_path in (Path("asset_preloader.toml"), Path("asset_preloader.json")):
            if config_path.exists():
                console.print(f"[dim]Using configuration: {config_path}[/dim]")
                config = PreloaderConfig.from_file(config_path)
                break

    if config is None:
        config = PreloaderConfig.default()
    else:
        config = PreloaderConfig._apply_env_overrides(config)

    env_vars_used = [key for key in os.environ if key.startswith('ASSET_PRELOADER_')]
    if env_vars_used:
        console.print(f"[dim]Environment overrides applied: {len(env_vars_used)} variables[/dim]")

    return config


def _display_preload_summary(manager: AssetsManager) -> None:
    table = Table(title="Preload Summary")
    table.add_column("Loader Type", style="cyan")
    table.add_column("Loaded", style="green", justify="right")
    table.add_column("Pending", style="yellow", justify="right")

    for name in manager.loader_types:
        handle = manager.loader(name)
        if handle.loaded_count or handle.pending_count:
            table.add_row(name, str(handle.loaded_count), str(handle.pending_count))

    console.print(table)


def _display_tilemap(tilemap: TileMap) -> None:
    table = Table(title="Tile Map", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Size", f"{tilemap.width}×{tilemap.height} tiles")
    table.add_row("Tile Size", f"{tilemap.tile_width}×{tilemap.tile_height}")
    table.add_row("Orientation", tilemap.orientation)
    table.add_row("Infinite", str(tilemap.infinite))
    if tilemap.render_order:
        table.add_row("Render Order", tilemap.render_order)
    if tilemap.version:
        table.add_row("Version", tilemap.version)
    console.print(table)

    tilesets = Table(title="Tilesets")
    tilesets.add_column("First GID", justify="right")
    tilesets.add_column("Tileset", style="cyan")
    tilesets.add_column("Kind")
    for tileset in tilemap.tilesets:
        if isinstance(tileset, TilesetRef):
            tilesets.add_row(str(tileset.firstgid), tileset.source, "external")
        else:
            tilesets.add_row(str(tileset.firstgid), tileset.name, "inline")
    console.print(tilesets)

    layers = Table(title="Layers")
    layers.add_column("ID", justify="right")
    layers.add_column("Name", style="cyan")
    layers.add_column("Type")
    layers.add_column("Content", justify="right")
    for layer in tilemap.layers:
        layers.add_row(str(layer.id), layer.name, layer.type, _layer_content(layer))
    console.print(layers)


def _layer_content(layer: Any) -> str:
    if layer.data is not None:
        return f"{sum(1 for gid in layer.data if gid)} tile(s)"
    if layer.objects is not None:
        return f"{len(layer.objects)} object(s)"
    return "-"


def _display_tileset(tileset: Tileset) -> None:
    table = Table(title=f"Tileset '{tileset.name}'", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Tile Size", f"{tileset.tile_width}×{tileset.tile_height}")
    table.add_row("Tile Count", str(tileset.tile_count))
    table.add_row("Columns", str(tileset.columns))
    table.add_row("Margin / Spacing", f"{tileset.margin} / {tileset.spacing}")
    if tileset.image:
        table.add_row("Image", f"{tileset.image} ({tileset.image_width}×{tileset.image_height})")
    if tileset.tile_offset:
        table.add_row("Tile Offset", f"{tileset.tile_offset.x}, {tileset.tile_offset.y}")
    console.print(table)

    if tileset.tiles:
        tiles = Table(title="Tiles")
        tiles.add_column("ID", justify="right")
        tiles.add_column("Collision Shapes")
        tiles.add_column("Animation Frames", justify="right")
        for tile in tileset.tiles:
            shapes = ", ".join(o.shape for o in tile.object_group.objects) if tile.object_group else "-"
            frames = str(len(tile.animation)) if tile.animation else "-"
            tiles.add_row(str(tile.id), shapes or "-", frames)
        console.print(tiles)


def _display_atlas(atlas: AtlasDescriptor) -> None:
    table = Table(title=f"Atlas '{atlas.image_path}'")
    table.add_column("Name", style="cyan")
    table.add_column("Position", justify="right")
    table.add_column("Size", justify="right")
    for entry in atlas.entries:
        table.add_row(entry.name, f"{entry.x}, {entry.y}", f"{entry.width}×{entry.height}")
    console.print(table)
    console.print(f"[dim]{len(atlas.entries)} entries[/dim]")


def _display_config(config: PreloaderConfig) -> None:
    """Display configuration in a formatted table."""
    table = Table(title="Asset Preloader Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Base Directory", config.base_dir)
    table.add_row("Max Upload Passes", str(config.max_upload_passes))
    table.add_row("Request Timeout", "none" if config.request_timeout is None else f"{config.request_timeout}s")
    table.add_row("User Agent", config.user_agent)
    table.add_row("Verify SSL", str(config.verify_ssl))
    table.add_row("Log Level", config.log_level)

    console.print(table)


def _display_env_vars() -> None:
    """Display available environment variables for configuration."""
    table = Table(title="Asset Preloader Environment Variables")
    table.add_column("Environment Variable", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Example", style="green")

    env_vars = [
        ("ASSET_PRELOADER_BASE_DIR", "Directory relative paths are resolved against", "assets"),
        ("ASSET_PRELOADER_MAX_UPLOAD_PASSES", "Upload passes before giving up", "5"),
        ("ASSET_PRELOADER_REQUEST_TIMEOUT", "HTTP request timeout in seconds", "30"),
        ("ASSET_PRELOADER_USER_AGENT", "User-Agent header for HTTP requests", "MyGame/1.0"),
        ("ASSET_PRELOADER_VERIFY_SSL", "Verify TLS certificates (true/false)", "true"),
        ("ASSET_PRELOADER_LOG_LEVEL", "Log level", "INFO"),
    ]

    for var_name, description, example in env_vars:
        table.add_row(var_name, description, example)

    console.print(table)
    console.print("\n[dim]Set these environment variables to override configuration file settings.[/dim]")
    console.print("[dim]Example: export ASSET_PRELOADER_LOG_LEVEL=DEBUG[/dim]")


if __name__ == "__main__":
    app()
