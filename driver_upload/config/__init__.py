"""Configuration loading for driver uploads.

Reads the driver table from YAML, expands ``${VAR}`` references, applies
``DRIVER_UPLOAD_*`` environment overrides and validates the result before
anything touches the filesystem or the network.
"""

from __future__ import annotations

import os
from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import find_dotenv, load_dotenv

from driver_upload.core.errors import ConfigError
from driver_upload.core.models import (
    DEFAULT_INSPECT_COMMAND,
    DriverSpec,
    InspectionSettings,
    PublisherSettings,
    SpecialDriverSpec,
    UploadConfig,
)


CONFIG_DIR = Path(__file__).resolve().parent
DEFAULT_CONFIG_PATH = CONFIG_DIR / "drivers.yaml"

CONFIG_PATH_ENV = "DRIVER_UPLOAD_CONFIG"
KERNEL_VERSION_ENV = "DRIVER_UPLOAD_KERNEL_VERSION"
ARTIFACTORY_BASE_ENV = "DRIVER_UPLOAD_ARTIFACTORY_BASE"
RC_NUMBER_ENV = "DRIVER_UPLOAD_RC_NUMBER"
JFROG_CLI_ENV = "DRIVER_UPLOAD_JFROG_CLI"

PUBLISHER_TYPES = {"jfrog", "dry_run"}


def load_env_file() -> None:
    """Read ``.env`` from the working directory (or a parent) into the environment."""

    load_dotenv(find_dotenv(usecwd=True), override=False)


def load_upload_config(path: str | Path | None = None) -> UploadConfig:
    """Load and validate the upload configuration.

    Args:
        path: Optional YAML path. Falls back to ``$DRIVER_UPLOAD_CONFIG`` and
            then to the packaged ``drivers.yaml``.

    Returns:
        Validated ``UploadConfig`` with environment overrides applied.

    Raises:
        ConfigError: If the file is missing, malformed or inconsistent.
    """

    load_env_file()
    cfg_path = Path(path) if path else Path(_read_env(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    if not cfg_path.exists():
        raise ConfigError(f"driver config not found: {cfg_path}")
    try:
        with cfg_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {cfg_path}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigError(f"{cfg_path} must contain a mapping at the top level")
    return apply_env_overrides(config_from_mapping(data, validate=False))


def config_from_mapping(data: Mapping[str, Any], *, validate: bool = True) -> UploadConfig:
    """Build an ``UploadConfig`` from a parsed YAML mapping.

    With ``validate=False`` the cross-field checks are left to the caller,
    so overrides can still fill in values the file leaves out.
    """

    kernel_version = _require(data, "kernel_version")
    artifactory_base = _require(data, "artifactory_base").rstrip("/")
    drivers = _parse_drivers(data)

    special_base = _optional_str(data.get("special_base"))
    config = UploadConfig(
        kernel_version=kernel_version,
        artifactory_base=artifactory_base,
        drivers=drivers,
        special_base=special_base.rstrip("/") if special_base else None,
        rc_number=_optional_str(data.get("rc_number")),
        special_drivers=_parse_special_drivers(data.get("special_drivers") or {}),
        inspection=_parse_inspection(_ensure_mapping(data.get("inspection"))),
        publisher=_parse_publisher(_ensure_mapping(data.get("publisher"))),
    )
    if validate:
        validate_config(config)
    return config


def validate_config(config: UploadConfig) -> UploadConfig:
    """Check values that overrides may have changed. Raises ``ConfigError``."""

    if not config.kernel_version:
        raise ConfigError("kernel_version must not be empty")
    if not config.artifactory_base:
        raise ConfigError("artifactory_base must not be empty")
    if config.special_drivers and not (config.special_base and config.rc_number):
        raise ConfigError("special_drivers require both special_base and rc_number")
    return config


def apply_env_overrides(config: UploadConfig) -> UploadConfig:
    """Apply ``DRIVER_UPLOAD_*`` environment variables on top of ``config``."""

    return apply_overrides(
        config,
        kernel_version=_read_env(KERNEL_VERSION_ENV),
        artifactory_base=_read_env(ARTIFACTORY_BASE_ENV),
        rc_number=_read_env(RC_NUMBER_ENV),
        jfrog_cli=_read_env(JFROG_CLI_ENV),
    )


def apply_overrides(
    config: UploadConfig,
    *,
    kernel_version: str | None = None,
    artifactory_base: str | None = None,
    rc_number: str | None = None,
    inspect: bool | None = None,
    dry_run: bool = False,
    jfrog_cli: str | None = None,
) -> UploadConfig:
    """Return a validated copy of ``config`` with the given overrides applied.

    ``None`` leaves a value alone. A blank string is applied and then rejected
    by validation.
    """

    updates: dict[str, Any] = {}
    if kernel_version is not None:
        updates["kernel_version"] = kernel_version.strip()
    if artifactory_base is not None:
        updates["artifactory_base"] = artifactory_base.strip().rstrip("/")
    if rc_number is not None:
        updates["rc_number"] = rc_number.strip() or None
    if inspect is not None:
        updates["inspection"] = replace(config.inspection, enabled=inspect)
    publisher = config.publisher
    if jfrog_cli is not None:
        if not jfrog_cli.strip():
            raise ConfigError("jfrog cli path must not be empty")
        publisher = replace(publisher, cli=jfrog_cli.strip())
    if dry_run:
        publisher = replace(publisher, type="dry_run")
    if publisher is not config.publisher:
        updates["publisher"] = publisher
    if updates:
        config = replace(config, **updates)
    return validate_config(config)


def _parse_drivers(data: Mapping[str, Any]) -> tuple[DriverSpec, ...]:
    if "drivers" in data:
        if "driver_versions" in data or "driver_files" in data:
            raise ConfigError("use either 'drivers' or 'driver_versions'/'driver_files', not both")
        records = data.get("drivers") or []
        if not isinstance(records, list):
            raise ConfigError("'drivers' must be a list of {name, version_dir, files} records")
        specs = [_parse_driver_record(record) for record in records]
    else:
        specs = _parse_driver_tables(
            _ensure_mapping(data.get("driver_versions")) or {},
            _ensure_mapping(data.get("driver_files")) or {},
        )

    seen: set[str] = set()
    for spec in specs:
        if spec.name in seen:
            raise ConfigError(f"duplicate driver name: {spec.name}")
        seen.add(spec.name)
    return tuple(specs)


def _parse_driver_record(record: Any) -> DriverSpec:
    if not isinstance(record, Mapping):
        raise ConfigError(f"driver entry must be a mapping, got {type(record).__name__}")
    name = _require(record, "name")
    version_dir = _optional_str(record.get("version_dir"))
    if not version_dir:
        raise ConfigError(f"driver '{name}' has no version_dir")
    return DriverSpec(name=name, version_dir=version_dir, files=_parse_files(name, record.get("files")))


def _parse_driver_tables(versions: Mapping[str, Any], files: Mapping[str, Any]) -> list[DriverSpec]:
    """Join the legacy ``driver_versions``/``driver_files`` maps into records."""

    without_version = sorted(str(k) for k in files if k not in versions)
    if without_version:
        raise ConfigError(f"drivers missing from driver_versions: {', '.join(without_version)}")
    without_files = sorted(str(k) for k in versions if k not in files)
    if without_files:
        raise ConfigError(f"drivers missing from driver_files: {', '.join(without_files)}")

    specs: list[DriverSpec] = []
    for name, file_list in files.items():
        version_dir = _optional_str(versions.get(name))
        if not version_dir:
            raise ConfigError(f"driver '{name}' has no version_dir")
        specs.append(DriverSpec(name=str(name), version_dir=version_dir, files=_parse_files(str(name), file_list)))
    return specs


def _parse_files(driver: str, raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    # The shell scripts kept file lists as space separated strings.
    if isinstance(raw, str):
        return tuple(raw.split())
    if not isinstance(raw, list):
        raise ConfigError(f"files for driver '{driver}' must be a list")
    files: list[str] = []
    for entry in raw:
        if not isinstance(entry, str) or not entry.strip():
            raise ConfigError(f"driver '{driver}' has an invalid file entry: {entry!r}")
        files.append(entry.strip())
    return tuple(files)


def _parse_special_drivers(raw: Any) -> tuple[SpecialDriverSpec, ...]:
    if isinstance(raw, Mapping):
        items = list(raw.items())
    elif isinstance(raw, list):
        items = []
        for record in raw:
            if not isinstance(record, Mapping):
                raise ConfigError("special_drivers entries must be mappings")
            items.append((_require(record, "name"), record.get("file")))
    else:
        raise ConfigError("special_drivers must be a mapping or a list")

    specs: list[SpecialDriverSpec] = []
    for name, file in items:
        file_name = _optional_str(file)
        if not file_name:
            raise ConfigError(f"special driver '{name}' has no file")
        specs.append(SpecialDriverSpec(name=str(name), file=file_name))
    return tuple(specs)


def _parse_inspection(data: Mapping[str, Any] | None) -> InspectionSettings:
    if not data:
        return InspectionSettings()
    command = data.get("command", list(DEFAULT_INSPECT_COMMAND))
    if isinstance(command, str):
        command = command.split()
    if not command:
        raise ConfigError("inspection.command must not be empty")
    return InspectionSettings(
        enabled=_parse_bool(data.get("enabled", False), "inspection.enabled"),
        command=tuple(_expand_env(str(part)) for part in command),
    )


def _parse_publisher(data: Mapping[str, Any] | None) -> PublisherSettings:
    if not data:
        return PublisherSettings()
    ptype = str(data.get("type", "jfrog")).lower()
    if ptype not in PUBLISHER_TYPES:
        raise ConfigError(f"unknown publisher type: {ptype}")
    if data.get("flat", True) is not True:
        raise ConfigError("publisher.flat must be true: uploads keep the local file's base name")
    extra = data.get("extra_args") or []
    if isinstance(extra, str):
        extra = extra.split()
    return PublisherSettings(
        type=ptype,
        cli=_expand_env(str(data.get("cli", "jfrog"))),
        extra_args=tuple(_expand_env(str(arg)) for arg in extra),
        timeout_sec=_parse_timeout(data.get("timeout_sec")),
    )


def _parse_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{key} must be true or false, got {value!r}")
    return value


def _parse_timeout(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"publisher.timeout_sec must be a number, got {value!r}")
    try:
        timeout = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"publisher.timeout_sec must be a number, got {value!r}") from exc
    if timeout <= 0:
        raise ConfigError("publisher.timeout_sec must be positive")
    return timeout


def _require(data: Mapping[str, Any], key: str) -> str:
    value = _optional_str(data.get(key))
    if not value:
        raise ConfigError(f"missing required config value: {key}")
    return value


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = _expand_env(str(value)).strip()
    return text or None


def _read_env(key: str) -> str | None:
    value = os.getenv(key)
    if value is None:
        return None
    return value.strip() or None


def _ensure_mapping(value: Any) -> Mapping[str, Any] | None:
    if isinstance(value, Mapping):
        return value
    return None


def _expand_env(value: str) -> str:
    expanded = os.path.expandvars(value)
    if "${" in value and "}" in value and expanded == value:
        raise ConfigError(f"environment variable not set for value: {value}")
    return expanded


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "CONFIG_PATH_ENV",
    "KERNEL_VERSION_ENV",
    "ARTIFACTORY_BASE_ENV",
    "RC_NUMBER_ENV",
    "JFROG_CLI_ENV",
    "load_upload_config",
    "config_from_mapping",
    "validate_config",
    "load_env_file",
    "apply_env_overrides",
    "apply_overrides",
]
