"""Tests for hardware profile detection."""

import pytest

from desktop_installer.lib.hwdetect import (
    detect_hardware,
    detect_kernel_flavor,
    is_nvidia_device,
    multilib_enabled,
)
from desktop_installer.lib.inspector import InstalledPackage, parse_lsmod, parse_lspci, parse_pacman_q
from desktop_installer.models import KernelFlavor

from .conftest import NVIDIA_GPU

LSPCI_NN = """\
00:02.0 VGA compatible controller [0300]: Intel Corporation UHD Graphics 630 [8086:3e92]
01:00.0 VGA compatible controller [0300]: NVIDIA Corporation GA104 [GeForce RTX 3070] [10de:2484] (rev a1)
01:00.1 Audio device [0403]: NVIDIA Corporation GA104 High Definition Audio Controller [10de:228b] (rev a1)
"""


def _pkgs(*names):
    return [InstalledPackage(name=n, version="1") for n in names]


def test_parse_lspci_extracts_vendor_ids():
    devices = parse_lspci(LSPCI_NN)
    assert [d.vendor_id for d in devices] == ["8086", "10de", "10de"]
    assert devices[1].slot == "01:00.0"
    assert devices[1].description.endswith("[GeForce RTX 3070]")


def test_parse_lspci_without_ids():
    devices = parse_lspci("01:00.0 VGA compatible controller: NVIDIA Corporation TU117M\n")
    assert devices[0].vendor_id is None
    assert is_nvidia_device(devices[0])


def test_intel_gpu_is_not_nvidia():
    assert not is_nvidia_device(parse_lspci(LSPCI_NN)[0])


def test_parse_lsmod_skips_header():
    text = "Module                  Size  Used by\nnvidia_drm             86016  4\nnvidia              62771200  2 nvidia_drm\n"
    assert parse_lsmod(text) == {"nvidia_drm", "nvidia"}


def test_parse_pacman_q():
    assert parse_pacman_q("linux 6.9.7.arch1-1\nlinux-firmware 20240610\n")[0] == InstalledPackage("linux", "6.9.7.arch1-1")


@pytest.mark.parametrize(
    "names,expected",
    [
        (("linux", "linux-firmware", "linux-api-headers"), KernelFlavor.STANDARD),
        (("linux-firmware", "linux-lts", "linux-lts-headers"), KernelFlavor.LTS),
        (("linux-zen", "linux-zen-headers"), KernelFlavor.ZEN),
        (("linux-hardened",), KernelFlavor.HARDENED),
        (("linux-rt",), KernelFlavor.OTHER),
        (("linux-firmware", "vim"), KernelFlavor.STANDARD),
    ],
)
def test_kernel_flavor_from_packages(names, expected):
    assert detect_kernel_flavor(_pkgs(*names)) is expected


def test_running_kernel_breaks_ties():
    pkgs = _pkgs("linux", "linux-zen")
    assert detect_kernel_flavor(pkgs, "6.9.7-zen1-1-zen") is KernelFlavor.ZEN
    assert detect_kernel_flavor(pkgs, "6.9.7-arch1-1") is KernelFlavor.STANDARD


def test_multiple_kernels_without_release_take_first_listed():
    assert detect_kernel_flavor(_pkgs("linux-lts", "linux-zen")) is KernelFlavor.LTS


def test_multilib_requires_uncommented_section():
    assert multilib_enabled("[core]\nInclude = x\n\n[multilib]\nInclude = /etc/pacman.d/mirrorlist\n")
    assert not multilib_enabled("#[multilib]\n#Include = /etc/pacman.d/mirrorlist\n")
    assert not multilib_enabled(None)


def test_detect_hardware_builds_profile(inspector):
    inspector.pci = [NVIDIA_GPU]
    inspector.installed.update({"linux-lts", "linux-firmware"})
    inspector.files["/etc/pacman.conf"] = "[multilib]\nInclude = /etc/pacman.d/mirrorlist\n"

    profile = detect_hardware(inspector)

    assert profile.gpu_vendor_detected
    assert profile.kernel_flavor is KernelFlavor.LTS
    assert profile.multilib_enabled
    assert profile.gpu_devices == ("01:00.0 " + NVIDIA_GPU.description,)


def test_detect_hardware_without_gpu(inspector):
    profile = detect_hardware(inspector)
    assert not profile.gpu_vendor_detected
    assert not profile.multilib_enabled
