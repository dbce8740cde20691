"""Publishers that push local artifacts to Artifactory."""

from .base import IArtifactPublisher, PublishResult, publisher_from_config
from .dry_run import DryRunPublisher
from .jfrog import JFrogCliPublisher


__all__ = [
    "IArtifactPublisher",
    "PublishResult",
    "publisher_from_config",
    "DryRunPublisher",
    "JFrogCliPublisher",
]
