"""
mcinstance: Minecraft instance manager.

Resolve game and mod loader versions, download assets and libraries, install
modpacks, and launch the game or a dedicated server.
"""

from mcinstance.models import (
    CurseManifest,
    InstanceManifest,
    ModLoader,
    ModLoaderName,
    Modpack,
    ModpackVersionManifest,
    ServerInstanceManifest,
)
from mcinstance.manifests import AssetManifest, GameManifest, LoaderManifest
from mcinstance.api import CurseForgeAPI, ModpacksAPI
from mcinstance.client import AssetClient
from mcinstance.resolver import VersionResolver
from mcinstance.fetcher import AssetFetcher
from mcinstance.archive import PackZip
from mcinstance.installer import FileDownload, FileType, ModpackInstaller
from mcinstance.instance import Instance
from mcinstance.server import ServerInstance
from mcinstance.launch import LaunchCommand, PlayerProfile
from mcinstance.libraries import dedup_libs, name_to_path, parse_lenient
from mcinstance.mods import ModsManager, curseforge_fingerprint
from mcinstance.errors import LauncherError

__all__ = [
    "CurseManifest",
    "InstanceManifest",
    "ModLoader",
    "ModLoaderName",
    "Modpack",
    "ModpackVersionManifest",
    "ServerInstanceManifest",
    "AssetManifest",
    "GameManifest",
    "LoaderManifest",
    "CurseForgeAPI",
    "ModpacksAPI",
    "AssetClient",
    "VersionResolver",
    "AssetFetcher",
    "PackZip",
    "FileDownload",
    "FileType",
    "ModpackInstaller",
    "Instance",
    "ServerInstance",
    "LaunchCommand",
    "PlayerProfile",
    "dedup_libs",
    "name_to_path",
    "parse_lenient",
    "ModsManager",
    "curseforge_fingerprint",
    "LauncherError",
]

__version__ = "0.1.0"
