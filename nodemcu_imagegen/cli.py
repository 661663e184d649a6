"""Thin CLI wrapper for nodemcu_imagegen.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import logging
from pathlib import Path
from typing import Annotated, Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from nodemcu_imagegen import __version__
from nodemcu_imagegen.config import Settings, get_settings, print_settings_json
from nodemcu_imagegen.errors import ImageGenError

app = typer.Typer(
    name="imagegen",
    help="NodeMCU Image Generator - resolve, pack and cache device firmware",
    no_args_is_help=True,
)
console = Console()

FirmwareDirOption = Annotated[
    Path | None,
    typer.Option("--firmware-dir", help="Core root of shared modules"),
]
SiteDirOption = Annotated[
    Path | None,
    typer.Option("--site-dir", help="Site directory holding lib/ and devices/"),
]
DistDirOption = Annotated[
    Path | None,
    typer.Option("--dist-dir", help="Output directory (cleared on build)"),
]
CacheDirOption = Annotated[
    Path | None,
    typer.Option("--cache-dir", help="LFS image cache directory"),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"nodemcu-imagegen version {__version__}")
        raise typer.Exit()


def _settings_with_overrides(**overrides: Any) -> Settings:
    """Apply CLI flags on top of environment settings."""
    settings = get_settings()
    update = {k: v for k, v in overrides.items() if v is not None}
    if update:
        settings = settings.model_copy(update=update)
    return settings


def _fail(error: ImageGenError, json_output: bool) -> NoReturn:
    """Report a pipeline error and exit non-zero."""
    if json_output:
        console.print_json(
            data={"success": False, "code": error.code, "message": str(error)}
        )
    else:
        console.print(f"[red]Error ({error.code}): {escape(str(error))}[/red]")
    raise typer.Exit(code=1)


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """NodeMCU Image Generator - resolve, pack and cache device firmware."""
    level = "DEBUG" if verbose else get_settings().log_level
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command()
def config(json_output: JsonOption = False) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print_json(print_settings_json(settings))
        return

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Inputs:[/bold]")
    console.print(f"  Firmware directory:  {settings.firmware_dir}")
    console.print(f"  Site directory:      {settings.site_dir}")
    console.print(f"  Definition file:     {settings.definition_filename}")
    console.print()
    console.print("[bold]Outputs:[/bold]")
    console.print(f"  Dist directory:      {settings.dist_dir}")
    console.print(f"  Cache directory:     {settings.cache_dir}")
    console.print()
    console.print("[bold]Tools:[/bold]")
    console.print(f"  luac.cross:          {settings.luac_cross}")
    console.print(f"  luac timeout:        {settings.luac_timeout}")
    console.print(f"  Log level:           {settings.log_level}")


@app.command()
def roots(
    firmware_dir: FirmwareDirOption = None,
    site_dir: SiteDirOption = None,
    json_output: JsonOption = False,
) -> None:
    """Index all roots and list them with their file counts."""
    from nodemcu_imagegen.roots.index import index_roots

    settings = _settings_with_overrides(firmware_dir=firmware_dir, site_dir=site_dir)
    try:
        root_set = index_roots(settings)
    except ImageGenError as e:
        _fail(e, json_output)

    all_roots = root_set.all_roots()
    if json_output:
        console.print_json(
            data=[
                {
                    "name": r.name,
                    "kind": r.kind.value,
                    "base_path": str(r.base_path),
                    "files": len(r.files),
                }
                for r in all_roots
            ]
        )
        return

    console.print(f"[bold]Found {len(all_roots)} root(s):[/bold]")
    for r in all_roots:
        console.print(
            f"  [green]{escape(r.name)}[/green] ({r.kind.value}) "
            f"{escape(str(r.base_path))}: {len(r.files)} files"
        )


@app.command()
def resolve(
    device: Annotated[str, typer.Argument(help="Device folder name")],
    firmware_dir: FirmwareDirOption = None,
    site_dir: SiteDirOption = None,
    cache_dir: CacheDirOption = None,
    json_output: JsonOption = False,
) -> None:
    """Resolve a device's file set without writing any artifact."""
    from nodemcu_imagegen.builds.manifest import manifest_to_dict
    from nodemcu_imagegen.builds.service import resolve_device
    from nodemcu_imagegen.roots.index import index_roots

    settings = _settings_with_overrides(
        firmware_dir=firmware_dir, site_dir=site_dir, cache_dir=cache_dir
    )
    try:
        manifest = resolve_device(index_roots(settings), device, settings)
    except ImageGenError as e:
        _fail(e, json_output)

    if json_output:
        console.print_json(data=manifest_to_dict(manifest))
        return

    console.print(
        f"[bold]{escape(manifest.device.name)}[/bold] "
        f"(id {escape(manifest.device.id)}): {len(manifest.files)} files"
    )
    for entry in manifest.files:
        console.print(
            f"  {escape(entry.path):<32} {entry.hash[:12]}  "
            f"{escape(entry.source_path.as_posix())}"
        )
    if manifest.autostart:
        console.print(f"  Autostart: {escape(', '.join(manifest.autostart))}")


@app.command()
def build(
    firmware_dir: FirmwareDirOption = None,
    site_dir: SiteDirOption = None,
    dist_dir: DistDirOption = None,
    cache_dir: CacheDirOption = None,
    json_output: JsonOption = False,
) -> None:
    """Build manifests and images for every device.

    The output directory is cleared first. The build stops at the first
    device that fails.
    """
    from nodemcu_imagegen.builds.service import build_all

    settings = _settings_with_overrides(
        firmware_dir=firmware_dir,
        site_dir=site_dir,
        dist_dir=dist_dir,
        cache_dir=cache_dir,
    )
    try:
        summary = build_all(settings)
    except ImageGenError as e:
        _fail(e, json_output)

    if json_output:
        console.print_json(data={"success": True, **summary.to_dict()})
        return

    console.print(
        f"[bold]Built {len(summary.devices)} device(s) into "
        f"{escape(str(summary.dist_dir))}:[/bold]"
    )
    for result in summary.devices:
        console.print(
            f"  [green]✓ {escape(result.device_name)}[/green] "
            f"({escape(result.device_id)}, {result.file_count} files) "
            f"checksum {result.checksum}"
        )


if __name__ == "__main__":
    app()
