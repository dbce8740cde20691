from __future__ import annotations

from pathlib import Path

import pytest

from driver_upload.core.errors import ConfigError, InspectionError, PublishError
from driver_upload.core.models import DriverSpec, SpecialDriverSpec, UploadConfig
from driver_upload.core.runner import DriverUploadRunner
from driver_upload.services.inspect.base import IModuleInspector, NoOpInspector
from driver_upload.services.upload.base import IArtifactPublisher, PublishResult

from tests.helpers import BASE, KERNEL, touch_driver


class RecordingPublisher(IArtifactPublisher):
    def __init__(self, fail_on: set[str] | None = None):
        self.calls: list[tuple[Path, str]] = []
        self.fail_on = fail_on or set()

    def publish(self, local_path: Path, remote_dir: str) -> PublishResult:
        self.calls.append((local_path, remote_dir))
        if local_path.name in self.fail_on:
            raise PublishError(f"upload of {local_path.name} failed")
        return PublishResult(local_path=local_path, remote_dir=remote_dir, remote_name=local_path.name)


class SpyInspector(IModuleInspector):
    def __init__(self, error: Exception | None = None, output: str = ""):
        self.seen: list[Path] = []
        self.existed: list[bool] = []
        self.error = error
        self.output = output

    def inspect(self, module_path: Path) -> str:
        self.seen.append(module_path)
        self.existed.append(module_path.is_file())
        if self.error is not None:
            raise self.error
        return self.output


def _config(*drivers: DriverSpec, **kwargs) -> UploadConfig:
    return UploadConfig(kernel_version=KERNEL, artifactory_base=BASE, drivers=tuple(drivers), **kwargs)


def _runner(config, tmp_path, publisher=None, inspector=None):
    lines: list[str] = []
    runner = DriverUploadRunner(
        config,
        publisher=publisher or RecordingPublisher(),
        inspector=inspector or NoOpInspector(),
        source_dir=tmp_path,
        progress=lines.append,
    )
    return runner, lines


IGB = DriverSpec(name="igb", version_dir="igb-5.17.4", files=("igb.ko",))


def test_found_module_is_inspected_on_temp_copy_and_uploaded(tmp_path):
    local = touch_driver(tmp_path, "igb.ko")
    publisher = RecordingPublisher()
    inspector = SpyInspector(output="license: GPL")
    runner, lines = _runner(_config(IGB), tmp_path, publisher, inspector)

    report = runner.run()

    assert publisher.calls == [(local, f"{BASE}/igb-5.17.4")]
    assert inspector.seen == [tmp_path / "igb.ko"]
    assert inspector.existed == [True]
    assert not (tmp_path / "igb.ko").exists()
    assert local.exists()
    assert any(f"Found file: igb.ko.{KERNEL}" in line for line in lines)
    assert "Artifactory Directory: legacy-archive-local/manufacturing/drivers/igb-5.17.4" in lines
    assert "       license: GPL" in lines
    assert [o.status for o in report.outcomes] == ["uploaded"]
    assert report.outcomes[0].inspected is True


def test_missing_file_warns_and_is_not_uploaded(tmp_path):
    publisher = RecordingPublisher()
    runner, lines = _runner(_config(IGB), tmp_path, publisher)

    report = runner.run()

    warnings = [line for line in lines if "WARNING" in line]
    assert len(warnings) == 1
    assert f"igb.ko.{KERNEL}" in warnings[0]
    assert publisher.calls == []
    assert [o.file_name for o in report.missing] == [f"igb.ko.{KERNEL}"]
    assert lines[-1] == "🎉 All uploads done!"


def test_missing_file_does_not_stop_later_files(tmp_path):
    ice = DriverSpec(name="ice", version_dir="ice-1.14.13", files=("ice.ko", "README", "LICENSE"))
    readme = touch_driver(tmp_path, "README")
    license_file = touch_driver(tmp_path, "LICENSE")
    publisher = RecordingPublisher()
    runner, _ = _runner(_config(ice), tmp_path, publisher)

    report = runner.run()

    assert [call[0] for call in publisher.calls] == [readme, license_file]
    assert [o.status for o in report.outcomes] == ["missing", "uploaded", "uploaded"]


def test_non_module_files_skip_the_temp_copy(tmp_path):
    ice = DriverSpec(name="ice", version_dir="ice-1.14.13", files=("Module.symvers",))
    touch_driver(tmp_path, "Module.symvers")
    inspector = SpyInspector()
    runner, _ = _runner(_config(ice), tmp_path, inspector=inspector)

    runner.run()

    assert inspector.seen == []


def test_temp_copy_is_removed_when_inspection_disabled(tmp_path, monkeypatch):
    touch_driver(tmp_path, "igb.ko")
    copies: list[Path] = []

    import driver_upload.services.inspect.base as inspect_base

    real_copy = inspect_base.shutil.copy2

    def tracking_copy(src, dst):
        copies.append(Path(dst))
        return real_copy(src, dst)

    monkeypatch.setattr(inspect_base.shutil, "copy2", tracking_copy)
    runner, lines = _runner(_config(IGB), tmp_path)

    report = runner.run()

    assert copies == [tmp_path / "igb.ko"]
    assert not copies[0].exists()
    assert report.outcomes[0].inspected is False
    assert not any("inspection" in line for line in lines)


def test_inspection_failure_is_not_fatal_and_cleans_up(tmp_path):
    local = touch_driver(tmp_path, "igb.ko")
    publisher = RecordingPublisher()
    inspector = SpyInspector(error=InspectionError("modinfo failed"))
    runner, lines = _runner(_config(IGB), tmp_path, publisher, inspector)

    report = runner.run()

    assert not (tmp_path / "igb.ko").exists()
    assert publisher.calls == [(local, f"{BASE}/igb-5.17.4")]
    assert report.outcomes[0].inspection_error == "modinfo failed"
    assert any("Inspection failed" in line for line in lines)


def test_unexpected_inspector_error_propagates_after_cleanup(tmp_path):
    touch_driver(tmp_path, "igb.ko")
    publisher = RecordingPublisher()
    runner, _ = _runner(_config(IGB), tmp_path, publisher, SpyInspector(error=RuntimeError("boom")))

    with pytest.raises(RuntimeError):
        runner.run()

    assert not (tmp_path / "igb.ko").exists()
    assert publisher.calls == []


def test_publish_failure_aborts_the_run(tmp_path):
    mpt = DriverSpec(name="mpt3sas", version_dir="mpt3sas-51.00.00.00", files=("mpt3sas.ko",))
    touch_driver(tmp_path, "mpt3sas.ko")
    touch_driver(tmp_path, "igb.ko")
    publisher = RecordingPublisher(fail_on={f"mpt3sas.ko.{KERNEL}"})
    runner, lines = _runner(_config(mpt, IGB), tmp_path, publisher)

    with pytest.raises(PublishError):
        runner.run()

    assert len(publisher.calls) == 1
    assert "Driver: igb" not in lines
    assert not any("All uploads done" in line for line in lines)
    assert not (tmp_path / "mpt3sas.ko").exists()


def test_empty_file_list_emits_header_then_separator(tmp_path):
    empty = DriverSpec(name="bnxt_en", version_dir="bnxt_en-1.10.3-231.0.162.0", files=())
    publisher = RecordingPublisher()
    runner, lines = _runner(_config(empty), tmp_path, publisher)

    runner.run()

    header = lines.index("Driver: bnxt_en")
    assert lines[header + 1] == "Artifactory Directory: legacy-archive-local/manufacturing/drivers/bnxt_en-1.10.3-231.0.162.0"
    assert lines[header + 2] == "Files to upload and verify:"
    assert lines[header + 3] == ""
    assert not any("WARNING" in line for line in lines)
    assert publisher.calls == []


def test_rerun_gives_same_outcomes_and_reuploads(tmp_path):
    touch_driver(tmp_path, "igb.ko")
    mlx = DriverSpec(name="mellanox", version_dir="mlx-5.8-5.1.1.2", files=("mlx5_core.ko",))
    publisher = RecordingPublisher()
    runner, _ = _runner(_config(IGB, mlx), tmp_path, publisher)

    first = [(o.file_name, o.status) for o in runner.run().outcomes]
    second = [(o.file_name, o.status) for o in runner.run().outcomes]

    assert first == second
    assert len(publisher.calls) == 2


def test_special_drivers_use_rc_suffix_and_flat_target(tmp_path):
    special_file = tmp_path / f"jnl.ko.{KERNEL}.56"
    special_file.write_text("elf")
    config = _config(
        special_base="artifactory/files/rubrik/refs",
        rc_number="56",
        special_drivers=(SpecialDriverSpec(name="jnl", file="jnl.ko"), SpecialDriverSpec(name="ufsd", file="ufsd.ko")),
    )
    publisher = RecordingPublisher()
    runner, lines = _runner(config, tmp_path, publisher)

    report = runner.run()

    assert publisher.calls == [(special_file, "artifactory/files/rubrik/refs")]
    assert "Special Driver: jnl" in lines
    assert [o.status for o in report.outcomes] == ["uploaded", "missing"]
    assert not (tmp_path / "jnl.ko").exists()


def test_driver_filter_limits_processing(tmp_path):
    mpt = DriverSpec(name="mpt3sas", version_dir="mpt3sas-51.00.00.00", files=("mpt3sas.ko",))
    touch_driver(tmp_path, "mpt3sas.ko")
    igb_local = touch_driver(tmp_path, "igb.ko")
    publisher = RecordingPublisher()
    runner, _ = _runner(_config(mpt, IGB), tmp_path, publisher)

    runner.run(only=["igb"])

    assert publisher.calls == [(igb_local, f"{BASE}/igb-5.17.4")]


def test_unknown_driver_filter_is_rejected_before_uploads(tmp_path):
    touch_driver(tmp_path, "igb.ko")
    publisher = RecordingPublisher()
    runner, _ = _runner(_config(IGB), tmp_path, publisher)

    with pytest.raises(ConfigError, match="e1000"):
        runner.run(only=["e1000"])

    assert publisher.calls == []


def test_plan_reports_presence_without_side_effects(tmp_path):
    touch_driver(tmp_path, "igb.ko")
    ice = DriverSpec(name="ice", version_dir="ice-1.14.13", files=("ice.ko",))
    publisher = RecordingPublisher()
    inspector = SpyInspector()
    runner, lines = _runner(_config(IGB, ice), tmp_path, publisher, inspector)

    planned = runner.plan()

    assert [(p.driver, p.status, p.remote_dir) for p in planned] == [
        ("igb", "found", f"{BASE}/igb-5.17.4"),
        ("ice", "missing", f"{BASE}/ice-1.14.13"),
    ]
    assert publisher.calls == []
    assert inspector.seen == []
    assert lines == []
