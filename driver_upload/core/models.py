"""Domain models for driver uploads."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Literal

DEFAULT_INSPECT_COMMAND: tuple[str, ...] = ("modinfo",)


@dataclass(frozen=True, slots=True)
class DriverSpec:
    """A driver, the Artifactory directory it lives under and its files."""

    name: str
    version_dir: str
    files: tuple[str, ...] = ()

    def target_dir(self, artifactory_base: str) -> str:
        return f"{artifactory_base}/{self.version_dir}"


@dataclass(frozen=True, slots=True)
class SpecialDriverSpec:
    """Driver shipped as a single release-candidate tagged file.

    Special drivers upload straight into the special base directory,
    without a version subdirectory.
    """

    name: str
    file: str


@dataclass(frozen=True, slots=True)
class InspectionSettings:
    enabled: bool = False
    command: tuple[str, ...] = DEFAULT_INSPECT_COMMAND


@dataclass(frozen=True, slots=True)
class PublisherSettings:
    type: str = "jfrog"
    cli: str = "jfrog"
    extra_args: tuple[str, ...] = ()
    timeout_sec: float | None = None


@dataclass(frozen=True, slots=True)
class UploadConfig:
    """Resolved, validated configuration for one upload run."""

    kernel_version: str
    artifactory_base: str
    drivers: tuple[DriverSpec, ...] = ()
    special_base: str | None = None
    rc_number: str | None = None
    special_drivers: tuple[SpecialDriverSpec, ...] = ()
    inspection: InspectionSettings = field(default_factory=InspectionSettings)
    publisher: PublisherSettings = field(default_factory=PublisherSettings)

    def expected_name(self, base_file: str) -> str:
        return f"{base_file}.{self.kernel_version}"

    def special_name(self, file: str) -> str:
        return f"{file}.{self.kernel_version}.{self.rc_number}"

    def driver(self, name: str) -> DriverSpec | None:
        for spec in self.drivers:
            if spec.name == name:
                return spec
        return None

    @property
    def driver_names(self) -> list[str]:
        return [spec.name for spec in self.drivers] + [spec.name for spec in self.special_drivers]


FileStatus = Literal["found", "uploaded", "missing"]


@dataclass(slots=True)
class FileOutcome:
    """What happened to one expected file."""

    driver: str
    file_name: str
    local_path: Path
    remote_dir: str
    status: FileStatus
    inspected: bool = False
    inspection_error: str | None = None


@dataclass(slots=True)
class RunReport:
    outcomes: list[FileOutcome] = field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def uploaded(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status == "uploaded"]

    @property
    def missing(self) -> list[FileOutcome]:
        return [o for o in self.outcomes if o.status == "missing"]

    def summary(self) -> dict[str, object]:
        duration = None
        if self.started_at and self.finished_at:
            duration = round((self.finished_at - self.started_at).total_seconds(), 3)
        return {
            "total": len(self.outcomes),
            "uploaded": len(self.uploaded),
            "missing": [o.file_name for o in self.missing],
            "inspection_failures": [o.file_name for o in self.outcomes if o.inspection_error],
            "duration": duration,
        }


__all__ = [
    "DEFAULT_INSPECT_COMMAND",
    "DriverSpec",
    "SpecialDriverSpec",
    "InspectionSettings",
    "PublisherSettings",
    "UploadConfig",
    "FileOutcome",
    "RunReport",
]
