"""
Version catalog resolution with an on-disk cache.

Game, mod loader and asset index documents are immutable once published, so
each is fetched at most once and stored verbatim::

    <cache>/versions/<mc_version>.json           game manifest
    <cache>/versions/<loader>_<version>.json     Forge / NeoForge manifest
    <assets>/indexes/<asset_index_id>.json        asset index

A cached file is never rewritten. Static corrections (log4j pinning, FML
libraries) are applied on every load, never written back.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from mcinstance import env
from mcinstance.client import AssetClient
from mcinstance.libraries import version_key
from mcinstance.manifests import (
    AssetManifest,
    GameManifest,
    LoaderIndexEntry,
    LoaderManifest,
)
from mcinstance.models import ModLoader, ModLoaderName
from mcinstance.overrides import apply_lib_overrides, populate_fml_libs

logger = logging.getLogger(__name__)


class VersionResolver:
    """
    Usage::

        async with AssetClient() as client:
            resolver = VersionResolver(client)
            game = await resolver.resolve("1.20.1")
            assets = await resolver.resolve_assets(game)
    """

    def __init__(
        self,
        client: AssetClient,
        cache_dir: Optional[Path] = None,
        assets_dir: Optional[Path] = None,
    ):
        self.client = client
        self.cache_dir = Path(cache_dir) if cache_dir else env.get_cache_dir()
        self.assets_dir = Path(assets_dir) if assets_dir else env.get_assets_dir()

    @property
    def versions_dir(self) -> Path:
        return self.cache_dir / "versions"

    @property
    def indexes_dir(self) -> Path:
        return self.assets_dir / "indexes"

    @staticmethod
    def _write_cache(path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        logger.debug("Cached %s", path)

    # ── Game ───────────────────────────────────────────────────────

    async def resolve(self, version_id: str) -> GameManifest:
        """Game manifest for ``version_id`` with library overrides applied."""
        path = self.versions_dir / f"{version_id}.json"
        if not path.exists():
            text = await self.client.get_game_manifest_json(version_id)
            self._write_cache(path, text)

        manifest = GameManifest.model_validate_json(path.read_text(encoding="utf-8"))
        logger.info("Resolved Minecraft %s (%s)", manifest.id, manifest.release_type)
        return apply_lib_overrides(manifest)

    async def resolve_assets(self, game_manifest: GameManifest) -> AssetManifest:
        path = self.indexes_dir / f"{game_manifest.asset_index.id}.json"
        if not path.exists():
            text = await self.client.fetch_text(game_manifest.asset_index.url)
            self._write_cache(path, text)

        manifest = AssetManifest.model_validate_json(path.read_text(encoding="utf-8"))
        logger.info(
            "Resolved asset index %s (%d objects)",
            game_manifest.asset_index.id,
            len(manifest.objects),
        )
        return manifest

    # ── Mod loaders ────────────────────────────────────────────────

    async def resolve_loader(self, mod_loader: ModLoader) -> LoaderManifest:
        """Forge / NeoForge manifest, with FML libraries filled in for legacy Forge."""
        path = self.versions_dir / f"{mod_loader.name.value}_{mod_loader.version}.json"
        if not path.exists():
            text = await self.client.get_loader_manifest_json(mod_loader)
            self._write_cache(path, text)

        manifest = LoaderManifest.model_validate_json(path.read_text(encoding="utf-8"))
        logger.info(
            "Resolved %s (%s distribution)",
            mod_loader,
            "legacy" if manifest.is_legacy else "current",
        )
        return populate_fml_libs(manifest)

    async def list_loader_versions(
        self, mc_version: str, loader_name: ModLoaderName
    ) -> list[LoaderIndexEntry]:
        """Loader versions built for ``mc_version``, newest first. Never cached."""
        index = await self.client.get_loader_index(loader_name)
        versions = [v for v in index.versions if v.is_for_mc_version(mc_version)]
        versions.sort(key=lambda v: version_key(v.version), reverse=True)
        return versions
