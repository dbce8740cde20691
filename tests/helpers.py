from __future__ import annotations

from pathlib import Path

KERNEL = "5.15.0-140-rubrik7-generic"
BASE = "legacy-archive-local/manufacturing/drivers"


def touch_driver(directory: Path, base_file: str, kernel: str = KERNEL, content: str = "elf") -> Path:
    path = directory / f"{base_file}.{kernel}"
    path.write_text(content)
    return path
