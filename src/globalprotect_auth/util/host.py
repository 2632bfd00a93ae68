from __future__ import annotations

import platform
import socket
from pathlib import Path
from urllib.parse import urlparse


def normalize_server(server: str) -> str:
    """
    Normalize a portal/gateway address into a base URL without trailing slashes.

    - "vpn.example.com"            -> "https://vpn.example.com"
    - "https://vpn.example.com//"  -> "https://vpn.example.com"
    - "http://127.0.0.1:8080/"     -> "http://127.0.0.1:8080"  (explicit scheme is kept)
    """
    s = (server or "").strip()
    if not s:
        raise ValueError("server address is empty")

    if "://" not in s:
        s = f"https://{s}"

    parsed = urlparse(s)
    if not parsed.netloc:
        raise ValueError(f"invalid server address: {server!r}")

    # Drop any path (e.g. a pasted ".../global-protect/login.esp"), query and fragment.
    return f"{parsed.scheme}://{parsed.netloc}".rstrip("/")


def remove_url_scheme(url: str) -> str:
    s = (url or "").strip()
    if "://" in s:
        s = s.split("://", 1)[1]
    return s.rstrip("/")


def default_computer_name() -> str:
    return socket.gethostname() or "localhost"


def default_client_os() -> str:
    system = platform.system()
    if system == "Darwin":
        return "Mac"
    if system == "Windows":
        return "Windows"
    return "Linux"


def get_linux_os_string(os_release: str = "/etc/os-release") -> str:
    """
    Best-effort OS description used as `os-version`, e.g. "Linux Fedora 40".
    """
    path = Path(os_release)
    name = ""
    version = ""
    try:
        for line in path.read_text(encoding="utf-8").splitlines():
            key, _, value = line.partition("=")
            value = value.strip().strip('"')
            if key == "NAME":
                name = value
            elif key == "VERSION_ID":
                version = value
    except OSError:
        return f"{platform.system()} {platform.release()}".strip()

    parts = ["Linux", name, version]
    return " ".join(p for p in parts if p)
