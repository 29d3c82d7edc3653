"""
Host Entropy — Machine and user identity for password-less key derivation.

Machine id resolution order:
1. ``/etc/machine-id`` or ``/var/lib/dbus/machine-id`` (Linux, systemd/dbus)
2. ``IOPlatformUUID`` reported by ``ioreg`` (macOS)
3. The hostname (always available, weaker uniqueness)
"""
import getpass
import logging
import re
import socket
import subprocess
import sys
from pathlib import Path
from typing import Optional

logger = logging.getLogger("neutron.cache")

MACHINE_ID_PATHS = (
    Path("/etc/machine-id"),
    Path("/var/lib/dbus/machine-id"),
)

IOREG_COMMAND = ("/usr/sbin/ioreg", "-rd1", "-c", "IOPlatformExpertDevice")

_PLATFORM_UUID = re.compile(r'"IOPlatformUUID"\s*=\s*"([^"]+)"')


def _read_machine_id_file() -> Optional[str]:
    for path in MACHINE_ID_PATHS:
        try:
            value = path.read_text().strip()
        except OSError:
            continue
        if value:
            return value
    return None


def parse_platform_uuid(output: str) -> Optional[str]:
    """Extract IOPlatformUUID from ``ioreg`` output."""
    match = _PLATFORM_UUID.search(output)
    return match.group(1) if match else None


def _read_platform_uuid() -> Optional[str]:
    try:
        result = subprocess.run(
            IOREG_COMMAND,
            capture_output=True,
            text=True,
            timeout=10,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as err:
        logger.debug("ioreg unavailable: %s", err)
        return None
    return parse_platform_uuid(result.stdout)


def get_machine_id() -> str:
    """Return a stable identifier for this machine."""
    machine_id = None
    if sys.platform.startswith("linux"):
        machine_id = _read_machine_id_file()
    elif sys.platform == "darwin":
        machine_id = _read_platform_uuid()
    if machine_id:
        return machine_id
    logger.debug("No machine id available, falling back to hostname")
    return socket.gethostname()


def get_username() -> str:
    """Return the login name of the current OS user ('' if it has none)."""
    try:
        return getpass.getuser()
    except (OSError, KeyError) as err:
        logger.debug("No login name for the current user: %s", err)
        return ""
