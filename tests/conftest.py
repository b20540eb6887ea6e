"""
Pytest configuration and shared fixtures for gpt-image-prep tests.

This module provides canned sgdisk output and a fake command runner so no
test ever touches qemu-img, sgdisk or a real disk image.
"""

import subprocess
import sys
from typing import List

import pytest
from loguru import logger

from gpt_image_prep.config import settings


# ==============================================================================
# sgdisk Output Fixtures
# ==============================================================================

SGDISK_PRINT_HEADER = """\
Disk /var/tmp/out.raw: 62914560 sectors, 30.0 GiB
Sector size (logical): 512 bytes
Disk identifier (GUID): 6F1C3E52-8A4B-4E0B-9C5D-2B7A1E3F4D10
Partition table holds up to 128 entries
Main partition table begins at sector 2 and ends at sector 33
First usable sector is 34, last usable sector is 62914526
Partitions will be aligned on 2048-sector boundaries
Total free space is 2014 sectors (1007.0 KiB)

Number  Start (sector)    End (sector)  Size       Code  Name
"""

FOUR_PARTITION_ROWS = """\
   1            2048         1085439   529.0 MiB   2700  Basic data partition
   2         1085440         1290239   100.0 MiB   EF00  EFI system partition
   3         1290240         1323007   16.0 MiB    0C01  Microsoft reserved ...
   4         1323008        61865983   28.9 GiB    0700  Basic data partition
"""

FIFTH_PARTITION_ROW = """\
   5        61865984        62912511   511.0 MiB   2700
"""

SGDISK_INFO_OUTPUT = """\
Partition GUID code: EBD0A0A2-B9E5-4433-87C0-68B6B72699C7 (Microsoft basic data)
Partition unique GUID: 1A2B3C4D-5E6F-4A1B-8C9D-0E1F2A3B4C5D
First sector: 1323008 (at 646.0 MiB)
Last sector: 61865983 (at 29.5 GiB)
Partition size: 60542976 sectors (28.9 GiB)
Attribute flags: 0000000000000000
Partition name: 'Basic data partition'
"""


@pytest.fixture
def sgdisk_print_four_partitions() -> str:
    """``sgdisk -p`` output of an older installer layout (4 partitions)."""
    return SGDISK_PRINT_HEADER + FOUR_PARTITION_ROWS


@pytest.fixture
def sgdisk_print_five_partitions() -> str:
    """``sgdisk -p`` output with a trailing recovery partition (5 partitions)."""
    return SGDISK_PRINT_HEADER + FOUR_PARTITION_ROWS + FIFTH_PARTITION_ROW


@pytest.fixture
def sgdisk_print_no_partitions() -> str:
    """``sgdisk -p`` output of a disk with an empty GPT."""
    return SGDISK_PRINT_HEADER


@pytest.fixture
def sgdisk_info_output() -> str:
    """``sgdisk -i 4`` output for the OS partition."""
    return SGDISK_INFO_OUTPUT


# ==============================================================================
# Command Runner Fixtures
# ==============================================================================


def make_result(command=None, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(
        command or [], returncode, stdout=stdout, stderr=stderr
    )


class FakeRunner:
    """
    Command runner double that records every command it is given.

    Responses are registered with :meth:`on` against the arguments that
    follow the tool name; the first matching rule answers. Unmatched
    commands exit 127.
    """

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self._rules = []

    def on(self, *prefix, returncode=0, stdout="", stderr=""):
        self._rules.append((list(prefix), returncode, stdout, stderr))
        return self

    def __call__(self, command):
        command = list(command)
        self.calls.append(command)
        args = command[1:]
        for prefix, returncode, stdout, stderr in self._rules:
            if args[: len(prefix)] == prefix:
                return make_result(command, returncode, stdout, stderr)
        return make_result(command, 127, stderr=f"unexpected command: {command}")

    def commands_for(self, *prefix):
        return [call for call in self.calls if call[1 : 1 + len(prefix)] == list(prefix)]


@pytest.fixture
def fake_runner() -> FakeRunner:
    """Fixture providing an empty FakeRunner."""
    return FakeRunner()


@pytest.fixture
def mock_subprocess_run(mocker):
    """
    Fixture providing a mock for subprocess.run.

    Returns:
        Mock object for subprocess.run
    """
    return mocker.patch("subprocess.run")


# ==============================================================================
# Global State Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def default_settings(monkeypatch, tmp_path):
    """
    Auto-use fixture that isolates tests from the user's settings file.

    Settings are reset to defaults and the settings path points into the
    test's temporary directory.
    """
    monkeypatch.setattr(
        "gpt_image_prep.config.settings.SETTINGS_PATH",
        tmp_path / "config" / "settings.json",
    )
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)
    yield settings.settings_store


@pytest.fixture(autouse=True)
def reset_logging():
    """Auto-use fixture that drops sinks added by a test."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="DEBUG")
