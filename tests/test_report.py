"""Tests for the run report and its on-disk form."""

import json

import pytest
import yaml

from desktop_installer.lib.report import RunReport
from desktop_installer.models import Condition, HardwareProfile, InstallPath, InstallResult, KernelFlavor, PackageGroup
from desktop_installer.report_store import save_report


def _result(name, members, **kw):
    return InstallResult(group=PackageGroup(name=name, members=tuple(members)), **kw)


@pytest.fixture
def report():
    r = RunReport()
    r.add(_result("core", ["i3-wm", "xorg-xinit"], already_installed=2, succeeded=2))
    r.add(
        _result(
            "ui",
            ["rofi", "dunst"],
            attempted=("rofi", "dunst"),
            succeeded=1,
            exit_code=1,
            duration_seconds=12,
            path=InstallPath.BASE,
            condition=Condition.INSTALLER_NONZERO_EXIT,
            missing=("dunst",),
        )
    )
    r.add(_result("empty", [], exit_code=1, condition=Condition.EMPTY_GROUP))
    return r


def test_tally(report):
    assert report.passed == 1
    assert report.failed == 2
    assert report.total_duration == 12


def test_render_one_line_per_group_then_tally(report):
    report.warn("System upgrade failed, continuing")

    lines = report.render()

    assert lines[0].startswith("OK")
    assert "already=2" in lines[0]
    assert lines[1].startswith("FAIL (installer_nonzero_exit)")
    assert "installed=1/2" in lines[1]
    assert "path=base" in lines[1]
    assert "empty_group" in lines[2]
    assert lines[3] == "Groups: 1 passed, 2 failed (12s installing)"
    assert lines[4] == "WARNING System upgrade failed, continuing"


def test_partial_status():
    r = RunReport()
    r.add(_result("core", ["xorg", "i3-wm"], attempted=("xorg", "i3-wm"), succeeded=1, missing=("xorg",)))
    assert r.render()[0].startswith("PARTIAL")
    assert r.passed == 1


def test_save_json(report, tmp_path):
    report.hardware = HardwareProfile(gpu_vendor_detected=False, kernel_flavor=KernelFlavor.LTS, multilib_enabled=True)
    report.extra["nvidia"] = {"skipped": "no_hardware"}

    path = save_report(str(tmp_path / "out" / "report.json"), report)
    data = json.loads(path.read_text())

    assert data["summary"]["failed"] == 2
    assert data["results"][1]["missing"] == ["dunst"]
    assert data["hardware"]["kernel_flavor"] == "lts"
    assert data["nvidia"] == {"skipped": "no_hardware"}


def test_save_yaml(report, tmp_path):
    path = save_report(str(tmp_path / "report.yaml"), report)
    data = yaml.safe_load(path.read_text())
    assert [r["group"] for r in data["results"]] == ["core", "ui", "empty"]
    assert data["hardware"] is None


def test_unknown_extension_is_json(report, tmp_path):
    path = save_report(str(tmp_path / "report.txt"), report)
    assert json.loads(path.read_text())["summary"]["passed"] == 1
