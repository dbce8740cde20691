"""Run ``modinfo`` (or a configured equivalent) against a kernel module."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Sequence

from driver_upload.core.errors import InspectionError
from driver_upload.core.logger import get_logger
from driver_upload.core.models import DEFAULT_INSPECT_COMMAND

from .base import IModuleInspector


class ModinfoInspector(IModuleInspector):
    def __init__(self, command: Sequence[str] = DEFAULT_INSPECT_COMMAND, *, timeout: float = 30, logger=None) -> None:
        self.command = tuple(command)
        self.timeout = timeout
        self.logger = logger or get_logger()

    def inspect(self, module_path: Path) -> str:
        cmd = [*self.command, str(module_path)]
        try:
            completed = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout, check=False)
        except FileNotFoundError as exc:
            raise InspectionError(f"inspection tool not found: {self.command[0]}") from exc
        except subprocess.TimeoutExpired as exc:
            raise InspectionError(f"inspection of {module_path.name} timed out") from exc
        if completed.returncode != 0:
            raise InspectionError(
                f"{self.command[0]} failed for {module_path.name} (exit {completed.returncode}): "
                f"{(completed.stderr or '').strip()}"
            )
        self.logger.info("inspect.done module=%s", module_path.name)
        return completed.stdout


__all__ = ["ModinfoInspector"]
