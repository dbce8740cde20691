from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from .errors import ConfigError, InspectionError
from .logger import get_logger
from .models import FileOutcome, RunReport, UploadConfig
from driver_upload.services.inspect.base import (
    IModuleInspector,
    NoOpInspector,
    inspector_from_config,
    is_kernel_module,
    module_copy,
)
from driver_upload.services.upload.base import IArtifactPublisher, publisher_from_config


ProgressCB = Callable[[str], None]

SEPARATOR = "=" * 42


class DriverUploadRunner:
    """Check, inspect and upload every configured driver file in order.

    Missing files are reported and skipped. A publish failure is not caught
    here: it aborts the run before any later file is touched.
    """

    def __init__(
        self,
        config: UploadConfig,
        publisher: IArtifactPublisher | None = None,
        inspector: IModuleInspector | None = None,
        *,
        source_dir: Path | None = None,
        progress: ProgressCB | None = None,
        logger=None,
    ) -> None:
        self.config = config
        self.logger = logger or get_logger()
        self.publisher = publisher or publisher_from_config(config.publisher, logger=self.logger)
        self.inspector = inspector or inspector_from_config(config.inspection, logger=self.logger)
        self.source_dir = Path(source_dir) if source_dir is not None else Path.cwd()
        self._progress = progress or print

    def emit(self, line: str = "") -> None:
        self._progress(line)

    def run(self, only: Iterable[str] | None = None) -> RunReport:
        selected = self._select(only)
        report = RunReport(started_at=datetime.now())
        self.logger.info(
            "run.start kernel=%s base=%s drivers=%s source=%s",
            self.config.kernel_version,
            self.config.artifactory_base,
            ",".join(sorted(selected)),
            self.source_dir,
        )

        for driver in self.config.drivers:
            if driver.name not in selected:
                continue
            remote_dir = driver.target_dir(self.config.artifactory_base)
            self._header(f"Driver: {driver.name}", remote_dir)
            for base_file in driver.files:
                outcome = self.process_file(driver.name, base_file, self.config.expected_name(base_file), remote_dir)
                report.outcomes.append(outcome)
            self.emit("")

        special_base = self.config.special_base
        for special in self.config.special_drivers:
            if special.name not in selected or not special_base:
                continue
            self._header(f"Special Driver: {special.name}", special_base)
            outcome = self.process_file(special.name, special.file, self.config.special_name(special.file), special_base)
            report.outcomes.append(outcome)
            self.emit("")

        report.finished_at = datetime.now()
        self.emit(SEPARATOR)
        self.emit("🎉 All uploads done!")
        self.logger.info("run.done %s", report.summary())
        return report

    def plan(self, only: Iterable[str] | None = None) -> list[FileOutcome]:
        """Resolve every expected file and its target without uploading."""

        selected = self._select(only)
        planned: list[FileOutcome] = []
        for name, base_file, full_name, remote_dir in self._expected(selected):
            local_path = self.source_dir / full_name
            planned.append(
                FileOutcome(
                    driver=name,
                    file_name=full_name,
                    local_path=local_path,
                    remote_dir=remote_dir,
                    status="found" if local_path.is_file() else "missing",
                )
            )
        return planned

    def _expected(self, selected: set[str]) -> Iterable[tuple[str, str, str, str]]:
        for driver in self.config.drivers:
            if driver.name in selected:
                remote_dir = driver.target_dir(self.config.artifactory_base)
                for base_file in driver.files:
                    yield driver.name, base_file, self.config.expected_name(base_file), remote_dir
        if self.config.special_base:
            for special in self.config.special_drivers:
                if special.name in selected:
                    yield special.name, special.file, self.config.special_name(special.file), self.config.special_base

    def process_file(self, driver: str, base_file: str, full_name: str, remote_dir: str) -> FileOutcome:
        local_path = self.source_dir / full_name
        outcome = FileOutcome(
            driver=driver,
            file_name=full_name,
            local_path=local_path,
            remote_dir=remote_dir,
            status="missing",
        )
        if not local_path.is_file():
            self.emit(f"   ❌ WARNING: {full_name} not found!")
            self.logger.warning("file.missing driver=%s file=%s", driver, full_name)
            return outcome

        self.emit(f"   ✔️ Found file: {full_name}")
        if is_kernel_module(base_file):
            self._inspect(base_file, local_path, outcome)

        self.emit(f"     Uploading {full_name} to {remote_dir}/")
        self.publisher.publish(local_path, remote_dir)
        outcome.status = "uploaded"
        self.logger.info("file.uploaded driver=%s file=%s target=%s", driver, full_name, remote_dir)
        return outcome

    def _inspect(self, base_file: str, local_path: Path, outcome: FileOutcome) -> None:
        enabled = not isinstance(self.inspector, NoOpInspector)
        if enabled:
            self.emit(f"     Running module inspection on {local_path.name}:")
        with module_copy(local_path, self.source_dir, base_file) as temp_path:
            try:
                details = self.inspector.inspect(temp_path)
            except InspectionError as exc:
                outcome.inspection_error = str(exc)
                self.emit(f"     ⚠️ Inspection failed: {exc}")
                self.logger.warning("inspect.failed file=%s reason=%s", local_path.name, exc)
                return
        outcome.inspected = enabled
        for line in details.splitlines():
            self.emit(f"       {line}")

    def _header(self, title: str, remote_dir: str) -> None:
        self.emit(SEPARATOR)
        self.emit(title)
        self.emit(f"Artifactory Directory: {remote_dir}")
        self.emit("Files to upload and verify:")

    def _select(self, only: Iterable[str] | None) -> set[str]:
        known = set(self.config.driver_names)
        if only is None:
            return known
        wanted = {name for name in only if name}
        if not wanted:
            return known
        unknown = sorted(wanted - known)
        if unknown:
            raise ConfigError(f"unknown driver(s): {', '.join(unknown)}")
        return wanted


__all__ = ["DriverUploadRunner", "SEPARATOR"]
