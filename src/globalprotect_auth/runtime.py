from __future__ import annotations

import os
import platform
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence


HIP_WRAPPER_ENV = "GPCLIENT_HIP_WRAPPER"


def _vpnc_script_locations() -> list[str]:
    locations = [
        "/usr/local/share/vpnc-scripts/vpnc-script",
        "/usr/local/sbin/vpnc-script",
        "/usr/share/vpnc-scripts/vpnc-script",
        "/usr/sbin/vpnc-script",
        "/etc/vpnc/vpnc-script",
        "/etc/openconnect/vpnc-script",
        "/usr/libexec/vpnc-scripts/vpnc-script",
    ]
    if sys.platform == "darwin":
        locations.append("/opt/homebrew/etc/vpnc/vpnc-script")
    return locations


def _csd_wrapper_locations() -> list[str]:
    locations = ["/usr/libexec/gpclient/hipreport.sh"]
    machine = platform.machine().lower()
    if machine in ("x86_64", "amd64"):
        locations.append("/usr/lib/x86_64-linux-gnu/openconnect/hipreport.sh")
    elif machine in ("aarch64", "arm64"):
        locations.append("/usr/lib/aarch64-linux-gnu/openconnect/hipreport.sh")
    locations += [
        "/usr/lib/openconnect/hipreport.sh",
        "/usr/libexec/openconnect/hipreport.sh",
    ]
    if sys.platform == "darwin":
        locations.append("/opt/homebrew/opt/openconnect/libexec/openconnect/hipreport.sh")
    return locations


def is_executable_file(path: str) -> bool:
    p = Path(path)
    return p.is_file() and os.access(p, os.X_OK)


def find_executable(locations: Sequence[str]) -> Optional[str]:
    for location in locations:
        if is_executable_file(location):
            return location
    return None


def find_vpnc_script() -> Optional[str]:
    return find_executable(_vpnc_script_locations())


def resolve_csd_wrapper(override_path: Optional[str], locations: Sequence[str]) -> Optional[str]:
    """
    The override wins only if it names an existing executable file; otherwise the first executable
    default location is used.
    """
    if override_path and is_executable_file(override_path):
        return override_path
    return find_executable(locations)


def find_csd_wrapper() -> Optional[str]:
    return resolve_csd_wrapper(os.getenv(HIP_WRAPPER_ENV), _csd_wrapper_locations())


def check_executable(path: str) -> None:
    """Raise `PermissionError` if `path` exists but cannot be executed. Missing files are fine."""
    p = Path(path)
    if p.exists() and not os.access(p, os.X_OK):
        raise PermissionError(f"{path} is not executable")


def detect_openconnect_version() -> Optional[str]:
    exe = shutil.which("openconnect")
    if not exe:
        return None
    try:
        out = subprocess.run([exe, "--version"], capture_output=True, text=True, timeout=10, check=False)
    except (OSError, subprocess.TimeoutExpired):
        return None
    if out.returncode != 0 or not out.stdout:
        return None
    return out.stdout.splitlines()[0].strip()
