from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from driver_upload.core.logger import reset_logger


OVERRIDE_ENV_VARS = (
    "DRIVER_UPLOAD_CONFIG",
    "DRIVER_UPLOAD_KERNEL_VERSION",
    "DRIVER_UPLOAD_ARTIFACTORY_BASE",
    "DRIVER_UPLOAD_RC_NUMBER",
    "DRIVER_UPLOAD_JFROG_CLI",
)


@pytest.fixture(autouse=True)
def _isolated_logs(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch):
    """Keep log files out of the home directory and drop env overrides."""

    monkeypatch.setenv("DRIVER_UPLOAD_HOME", str(tmp_path_factory.mktemp("home")))
    for key in OVERRIDE_ENV_VARS:
        monkeypatch.delenv(key, raising=False)
    reset_logger()
    yield
    reset_logger()

