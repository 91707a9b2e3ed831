"""
Runtime configuration.

Settings are read from environment variables; a ``.env`` file in the working
directory is loaded first so they can be kept there instead.

Data directory resolve order::

    $MCINSTANCE_DATA_HOME
    $XDG_DATA_HOME/mcinstance
    ~/.local/share/mcinstance
"""

from __future__ import annotations

import os
import platform
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PACKAGE_NAME = "mcinstance"
PACKAGE_VERSION = "0.1.0"


def set_data_dir(path: str | Path) -> None:
    os.environ["MCINSTANCE_DATA_HOME"] = str(path)


def get_data_dir() -> Path:
    data_home = os.environ.get("MCINSTANCE_DATA_HOME")
    if data_home:
        return Path(data_home)

    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"
    return base / PACKAGE_NAME


def get_assets_dir() -> Path:
    return get_data_dir() / "assets"


def get_libs_dir() -> Path:
    return get_data_dir() / "libraries"


def get_cache_dir() -> Path:
    return get_data_dir() / "cache"


def get_downloads_dir() -> Path:
    """Where a browser saves files the user downloads by hand."""
    downloads = os.environ.get("XDG_DOWNLOAD_DIR")
    if downloads:
        return Path(downloads)
    return Path.home() / "Downloads"


def get_curse_api_key() -> str:
    return os.environ.get("CURSEFORGE_API_KEY", "")


def get_msa_client_id() -> str:
    """Azure application id passed to the game as ``${clientid}``."""
    return os.environ.get("MSA_CLIENT_ID", "")


def get_user_name() -> str:
    """Login name, the default offline player name."""
    return os.environ.get("USER") or os.environ.get("USERNAME") or "Player"


def get_host_os() -> str:
    """Host OS name as spelled in Mojang manifests (``osx`` rather than ``macos``)."""
    if sys.platform == "darwin":
        return "osx"
    if sys.platform.startswith("win"):
        return "windows"
    return sys.platform.rstrip("0123456789") or sys.platform


def get_host_arch() -> str:
    machine = platform.machine().lower()
    if machine in ("amd64", "x86_64"):
        return "x86_64"
    if machine in ("i386", "i686", "x86"):
        return "x86"
    if machine in ("aarch64", "arm64"):
        return "arm64"
    return machine


def get_host_os_version() -> str:
    return platform.release()


def get_host_bits() -> str:
    """``64`` or ``32``, used to fill ``${arch}`` in natives classifier keys."""
    return "64" if sys.maxsize > 2**32 else "32"
