from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from driver_upload.core.models import InspectionSettings

KERNEL_MODULE_SUFFIX = ".ko"


class IModuleInspector(ABC):
    """Interface for read-only kernel module metadata tools."""

    @abstractmethod
    def inspect(self, module_path: Path) -> str:
        """Return human readable metadata for module_path.

        Raises InspectionError on failure.
        """


class NoOpInspector(IModuleInspector):
    def inspect(self, module_path: Path) -> str:
        return ""


def is_kernel_module(base_file: str) -> bool:
    return base_file.endswith(KERNEL_MODULE_SUFFIX)


@contextmanager
def module_copy(source: Path, work_dir: Path, name: str) -> Iterator[Path]:
    """Copy source to work_dir/<basename of name> for the duration of the block.

    The copy is removed on exit, including when the block raises.
    """

    temp_path = Path(work_dir) / Path(name).name
    shutil.copy2(source, temp_path)
    try:
        yield temp_path
    finally:
        temp_path.unlink(missing_ok=True)


def inspector_from_config(settings: InspectionSettings, logger=None) -> IModuleInspector:
    if not settings.enabled:
        return NoOpInspector()
    from .modinfo import ModinfoInspector

    return ModinfoInspector(command=settings.command, logger=logger)
