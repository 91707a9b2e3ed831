"""
HTTP client for game metadata and file downloads.

Fetches the Mojang version index and game manifests, the PrismLauncher
Forge / NeoForge indexes and manifests, asset indexes, and streams files to
disk. Non-2xx responses raise :class:`httpx.HTTPStatusError`; nothing is
retried.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional

import httpx

from mcinstance.errors import VersionNotFound
from mcinstance.manifests import LoaderIndex, VersionManifest
from mcinstance.models import ModLoader, ModLoaderName
from mcinstance.urls import VERSION_MANIFEST_URL, loader_manifest_url

logger = logging.getLogger(__name__)

ByteCallback = Callable[[int], None]


class AssetClient:
    """
    Usage::

        async with AssetClient() as client:
            text = await client.get_game_manifest_json("1.20.1")
    """

    def __init__(
        self,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> AssetClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ── Generic fetches ────────────────────────────────────────────

    async def fetch_json(self, url: str) -> Any:
        resp = await self._client.get(url)
        resp.raise_for_status()
        return resp.json()

    async def fetch_text(self, url: str) -> str:
        resp = await self._client.get(url)
        resp.raise_for_status()
        return resp.text

    async def download_file(
        self,
        url: str,
        target: Path,
        on_progress: Optional[ByteCallback] = None,
        on_length: Optional[ByteCallback] = None,
    ) -> None:
        """
        Stream ``url`` into ``target``, creating parent directories.

        Bytes go to ``<target>.part`` first and are renamed over ``target``
        once the body is complete, so a failed transfer never leaves a
        truncated file that later runs would take as downloaded.

        ``on_length`` receives the ``Content-Length`` when the server sends
        one; ``on_progress`` the running byte count after every chunk.
        """
        target.parent.mkdir(parents=True, exist_ok=True)
        part = target.with_name(target.name + ".part")
        try:
            async with self._client.stream("GET", url) as resp:
                resp.raise_for_status()
                length = resp.headers.get("content-length")
                if on_length and length is not None:
                    on_length(int(length))

                written = 0
                with open(part, "wb") as fp:
                    async for chunk in resp.aiter_bytes(8192):
                        fp.write(chunk)
                        written += len(chunk)
                        if on_progress:
                            on_progress(written)
        except BaseException:
            part.unlink(missing_ok=True)
            raise
        part.replace(target)
        logger.debug("Downloaded %s -> %s", url, target)

    # ── Game metadata ──────────────────────────────────────────────

    async def get_version_manifest(self) -> VersionManifest:
        return VersionManifest.model_validate(await self.fetch_json(VERSION_MANIFEST_URL))

    async def get_game_manifest_json(self, mc_version: str) -> str:
        """Raw game manifest for ``mc_version``, as served (for caching verbatim)."""
        manifest = await self.get_version_manifest()
        entry = manifest.find(mc_version)
        if entry is None:
            raise VersionNotFound("Minecraft", mc_version)
        return await self.fetch_text(entry.url)

    # ── Mod loader metadata ────────────────────────────────────────

    async def get_loader_index(self, loader: ModLoaderName) -> LoaderIndex:
        return LoaderIndex.model_validate(await self.fetch_json(loader.index_url))

    async def get_loader_manifest_json(self, mod_loader: ModLoader) -> str:
        index = await self.get_loader_index(mod_loader.name)
        if index.find(mod_loader.version) is None:
            raise VersionNotFound(mod_loader.name.value, mod_loader.version)
        url = loader_manifest_url(mod_loader.name.index_url, mod_loader.version)
        return await self.fetch_text(url)
