"""Upload artifacts through the JFrog CLI (``jfrog rt upload``)."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Sequence

from driver_upload.core.errors import PublishError
from driver_upload.core.logger import get_logger

from .base import IArtifactPublisher, PublishResult

STDERR_TAIL_CHARS = 500


class JFrogCliPublisher(IArtifactPublisher):
    """Invoke ``jfrog rt upload`` once per file.

    The CLI handles authentication and transport; any failure to start it or
    a non-zero exit becomes a ``PublishError``. There are no retries.
    Uploads are always ``--flat``: the remote object keeps the local base name.
    """

    def __init__(
        self,
        cli: str = "jfrog",
        *,
        extra_args: Sequence[str] = (),
        timeout: float | None = None,
        logger=None,
    ) -> None:
        self.cli = cli
        self.extra_args = tuple(extra_args)
        self.timeout = timeout
        self.logger = logger or get_logger()

    def build_command(self, local_path: Path, remote_dir: str) -> list[str]:
        cmd = [self.cli, "rt", "upload", "--flat"]
        cmd.extend(self.extra_args)
        cmd.extend([str(local_path), f"{remote_dir.rstrip('/')}/"])
        return cmd

    def publish(self, local_path: Path, remote_dir: str) -> PublishResult:
        cmd = self.build_command(local_path, remote_dir)
        self.logger.info("jfrog.upload start file=%s target=%s", local_path.name, remote_dir)
        try:
            completed = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise PublishError(f"JFrog CLI not found: {self.cli}") from exc
        except subprocess.TimeoutExpired as exc:
            raise PublishError(f"upload of {local_path.name} timed out after {self.timeout}s") from exc

        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout or "").strip()[-STDERR_TAIL_CHARS:]
            self.logger.error(
                "jfrog.upload failed file=%s target=%s exit=%s", local_path.name, remote_dir, completed.returncode
            )
            raise PublishError(
                f"jfrog upload of {local_path.name} to {remote_dir}/ failed (exit {completed.returncode}): {detail}"
            )

        self.logger.info("jfrog.upload done file=%s target=%s", local_path.name, remote_dir)
        return PublishResult(
            local_path=local_path,
            remote_dir=remote_dir,
            remote_name=local_path.name,
            output=(completed.stdout or "").strip(),
        )


__all__ = ["JFrogCliPublisher"]
