from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from driver_upload.core.errors import ConfigError
from driver_upload.core.models import PublisherSettings


@dataclass(slots=True)
class PublishResult:
    local_path: Path
    remote_dir: str
    remote_name: str
    output: str = ""


class IArtifactPublisher(ABC):
    """Interface for artifact repository uploaders."""

    @abstractmethod
    def publish(self, local_path: Path, remote_dir: str) -> PublishResult:
        """Upload local_path into remote_dir under its own base name.

        Raises PublishError when the upload does not succeed.
        """


def publisher_from_config(settings: PublisherSettings, logger=None) -> IArtifactPublisher:
    ptype = (settings.type or "jfrog").lower()
    if ptype in {"jfrog", "jf", "artifactory"}:
        from .jfrog import JFrogCliPublisher

        return JFrogCliPublisher(
            cli=settings.cli,
            timeout=settings.timeout_sec,
            extra_args=settings.extra_args,
            logger=logger,
        )
    if ptype in {"dry_run", "dry-run", "noop"}:
        from .dry_run import DryRunPublisher

        return DryRunPublisher(logger=logger)
    raise ConfigError(f"unknown publisher type: {ptype}")
