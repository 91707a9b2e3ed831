"""
URL construction for remote game files and catalog downloads.

Asset objects are content addressed on Mojang's resource CDN::

    https://resources.download.minecraft.net/{hash[:2]}/{hash}

Libraries given only as a maven name resolve against a maven repository
base (``libraries.minecraft.net`` when the manifest names none).

CurseForge files whose author disabled third-party distribution have no
download URL; the user is sent to the file's download page instead::

    {websiteUrl}/download/{fileId}
"""

from __future__ import annotations

from typing import Optional

RESOURCES_URL = "https://resources.download.minecraft.net"
MOJANG_LIBRARIES_URL = "https://libraries.minecraft.net"
VERSION_MANIFEST_URL = "https://piston-meta.mojang.com/mc/game/version_manifest_v2.json"
FORGE_INDEX_URL = "https://meta.prismlauncher.org/v1/net.minecraftforge/index.json"
NEOFORGE_INDEX_URL = "https://meta.prismlauncher.org/v1/net.neoforged/index.json"


def asset_object_url(hash_: str) -> str:
    return f"{RESOURCES_URL}/{hash_[:2]}/{hash_}"


def library_url(path: str, base_url: Optional[str] = None) -> str:
    base = (base_url or MOJANG_LIBRARIES_URL).rstrip("/")
    return f"{base}/{path}"


def loader_manifest_url(index_url: str, version: str) -> str:
    """Per-version manifest URL, a sibling of the loader's ``index.json``."""
    return index_url.replace("index.json", f"{version}.json")


def manual_download_url(website_url: str, file_id: int) -> str:
    """Page where a user can fetch a file CurseForge won't hand out to launchers."""
    return f"{website_url.rstrip('/')}/download/{file_id}"
