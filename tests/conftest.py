"""Shared fixtures: a fresh configuration and logging setup for every test."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from sysprobe.config import get_config


@pytest.fixture(autouse=True)
def isolate_config_and_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Clear the cached config and drop stderr handlers bound to captured streams."""
    for name in (
        "SYSPROBE_SYSTEMCTL",
        "SYSPROBE_MOUNT",
        "SYSPROBE_UNIT_PREFIX",
        "SYSPROBE_MOUNT_PREFIX",
        "SYSPROBE_LOG_LEVEL",
        "SYSPROBE_LOG_FORMAT",
    ):
        monkeypatch.delenv(name, raising=False)
    get_config.cache_clear()
    yield
    get_config.cache_clear()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if type(handler) is logging.StreamHandler:
            root.removeHandler(handler)


SYSTEMCTL_LISTING = """\
  UNIT                                   LOAD   ACTIVE   SUB     DESCRIPTION
  -.mount                                loaded active   mounted Root Mount
  boot.mount                             loaded active   mounted /boot
● check-mk-enterprise.service           loaded failed   failed  LSB: OMD sites
  cron.service                           loaded active   running Regular background program processing daemon
  nfs-server.service                     loaded inactive dead    NFS server and services
  sshd.service                           loaded active   running OpenBSD Secure Shell server

LOAD   = Reflects whether the unit definition was properly loaded.
ACTIVE = The high-level unit activation state, i.e. generalization of SUB.
SUB    = The low-level unit activation state, values depend on unit type.

6 loaded units listed.
To show all installed unit files use 'systemctl list-unit-files'.
"""

MOUNT_TABLE = """\
sysfs on /sys type sysfs (rw,nosuid,nodev,noexec,relatime)
proc on /proc type proc (rw,nosuid,nodev,noexec,relatime)
/dev/sda1 on / type ext4 (rw,relatime,errors=remount-ro)
/dev/sdb1 on /srv/data type xfs (rw,relatime,attr2,inode64)
//192.168.163.25/share on /mnt/share type cifs (rw,relatime,vers=3.0)
/dev/sdc1 on /mnt/bind type ext4 (rw,relatime)
/dev/sdc1 on /mnt/bind type ext4 (rw,relatime)
/dev/sdc1 on /mnt/bind type ext4 (rw,relatime)
"""


@pytest.fixture
def systemctl_listing() -> str:
    return SYSTEMCTL_LISTING


@pytest.fixture
def mount_table() -> str:
    return MOUNT_TABLE
