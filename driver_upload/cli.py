"""Typer based command line entry points for driver-upload."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from driver_upload.config import apply_overrides, load_upload_config
from driver_upload.core.errors import DriverUploadError
from driver_upload.core.logger import get_logger
from driver_upload.core.models import UploadConfig
from driver_upload.core.runner import SEPARATOR, DriverUploadRunner

app = typer.Typer(help="Upload prebuilt kernel drivers to Artifactory.")


def _handle_error(exc: Exception) -> None:
    get_logger().error("driver upload failed: %s", exc, exc_info=True)
    typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _resolve_config(
    config: Optional[Path],
    *,
    kernel_version: Optional[str] = None,
    artifactory_base: Optional[str] = None,
    inspect: Optional[bool] = None,
    dry_run: bool = False,
    jfrog_cli: Optional[str] = None,
) -> UploadConfig:
    base = load_upload_config(config)
    return apply_overrides(
        base,
        kernel_version=kernel_version,
        artifactory_base=artifactory_base,
        inspect=inspect,
        dry_run=dry_run,
        jfrog_cli=jfrog_cli,
    )


ConfigOption = typer.Option(None, "--config", "-c", dir_okay=False, help="Driver table YAML")
SourceDirOption = typer.Option(
    Path("."), "--source-dir", "-s", file_okay=False, exists=True, help="Directory holding the built drivers"
)
KernelOption = typer.Option(None, "--kernel-version", "-k", help="Override the kernel version suffix")
BaseOption = typer.Option(None, "--artifactory-base", help="Override the Artifactory base directory")
DriverOption = typer.Option(None, "--driver", "-d", help="Only process this driver (repeatable)")


@app.command("upload")
def cmd_upload(
    config: Optional[Path] = ConfigOption,
    source_dir: Path = SourceDirOption,
    kernel_version: Optional[str] = KernelOption,
    artifactory_base: Optional[str] = BaseOption,
    driver: Optional[List[str]] = DriverOption,
    inspect: Optional[bool] = typer.Option(
        None, "--inspect/--no-inspect", help="Run module inspection on *.ko files"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print the uploads without running the JFrog CLI"),
    jfrog_cli: Optional[str] = typer.Option(None, "--jfrog-cli", help="Path to the jfrog executable"),
) -> None:
    """Check, inspect and upload every configured driver file."""

    try:
        resolved = _resolve_config(
            config,
            kernel_version=kernel_version,
            artifactory_base=artifactory_base,
            inspect=inspect,
            dry_run=dry_run,
            jfrog_cli=jfrog_cli,
        )
        runner = DriverUploadRunner(resolved, source_dir=source_dir, progress=typer.echo)
        report = runner.run(only=driver)
    except DriverUploadError as exc:
        _handle_error(exc)
    else:
        summary = report.summary()
        typer.echo(f"Uploaded {summary['uploaded']}/{summary['total']} file(s), {len(report.missing)} missing.")


@app.command("plan")
def cmd_plan(
    config: Optional[Path] = ConfigOption,
    source_dir: Path = SourceDirOption,
    kernel_version: Optional[str] = KernelOption,
    artifactory_base: Optional[str] = BaseOption,
    driver: Optional[List[str]] = DriverOption,
) -> None:
    """Show which files would be uploaded where, without uploading."""

    try:
        resolved = _resolve_config(config, kernel_version=kernel_version, artifactory_base=artifactory_base, dry_run=True)
        planned = DriverUploadRunner(resolved, source_dir=source_dir).plan(only=driver)
    except DriverUploadError as exc:
        _handle_error(exc)
    else:
        current = None
        for item in planned:
            if item.driver != current:
                current = item.driver
                typer.echo(SEPARATOR)
                typer.echo(f"Driver: {item.driver} -> {item.remote_dir}/")
            typer.echo(f"  {item.status:8} {item.file_name}")
        found = sum(1 for item in planned if item.status == "found")
        typer.echo(f"{found}/{len(planned)} file(s) present.")


@app.command("show-config")
def cmd_show_config(config: Optional[Path] = ConfigOption) -> None:
    """Print the resolved driver table."""

    try:
        resolved = load_upload_config(config)
    except DriverUploadError as exc:
        _handle_error(exc)
    else:
        typer.echo(f"kernel_version:   {resolved.kernel_version}")
        typer.echo(f"artifactory_base: {resolved.artifactory_base}")
        typer.echo(f"publisher:        {resolved.publisher.type} ({resolved.publisher.cli})")
        typer.echo(f"inspection:       {'on' if resolved.inspection.enabled else 'off'}")
        for spec in resolved.drivers:
            typer.echo(f"{spec.name:12} {spec.version_dir:32} {len(spec.files)} file(s)")
        for special in resolved.special_drivers:
            typer.echo(f"{special.name:12} {resolved.special_base:32} {resolved.special_name(special.file)}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
