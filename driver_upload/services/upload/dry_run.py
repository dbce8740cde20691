from __future__ import annotations

from pathlib import Path

from driver_upload.core.logger import get_logger

from .base import IArtifactPublisher, PublishResult


class DryRunPublisher(IArtifactPublisher):
    """Record uploads without contacting Artifactory."""

    def __init__(self, logger=None) -> None:
        self.logger = logger or get_logger()
        self.published: list[PublishResult] = []

    def publish(self, local_path: Path, remote_dir: str) -> PublishResult:
        result = PublishResult(local_path=local_path, remote_dir=remote_dir, remote_name=local_path.name)
        self.published.append(result)
        self.logger.info("dry_run.upload file=%s target=%s", local_path.name, remote_dir)
        return result


__all__ = ["DryRunPublisher"]
