"""
Downloads game assets and libraries into the shared data directory.

Layout::

    <assets>/objects/<hash[:2]>/<hash>        content-addressed asset objects
    <libs>/<maven path>                        libraries, natives, client jars

A file that already exists is assumed complete and never downloaded again,
except for a server jar, which is replaced on every server install.
Downloads run one after another; the first failure aborts the batch.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from mcinstance import archive, env
from mcinstance.client import AssetClient
from mcinstance.errors import (
    LibraryResolutionError,
    MinecraftServerNotFound,
    UnhandledModLoaderInstaller,
)
from mcinstance.libraries import get_client_jar_path
from mcinstance.manifests import (
    AssetManifest,
    CurrentDistribution,
    GameManifest,
    LoaderLibrary,
    LoaderManifest,
)
from mcinstance.models import ModLoader
from mcinstance.progress import NullProgress, Progress
from mcinstance.rules import RulesContext
from mcinstance.urls import asset_object_url

logger = logging.getLogger(__name__)


class AssetFetcher:
    def __init__(
        self,
        client: AssetClient,
        assets_dir: Optional[Path] = None,
        libs_dir: Optional[Path] = None,
        cache_dir: Optional[Path] = None,
        ctx: Optional[RulesContext] = None,
    ):
        self.client = client
        self.assets_dir = Path(assets_dir) if assets_dir else env.get_assets_dir()
        self.libs_dir = Path(libs_dir) if libs_dir else env.get_libs_dir()
        self.cache_dir = Path(cache_dir) if cache_dir else env.get_cache_dir()
        self.ctx = ctx

    @property
    def objects_dir(self) -> Path:
        return self.assets_dir / "objects"

    def object_path(self, hash_: str) -> Path:
        return self.objects_dir / hash_[:2] / hash_

    def virtual_assets_dir(self, asset_index_id: str) -> Path:
        return self.assets_dir / "virtual" / asset_index_id

    async def _download_missing(self, url: str, target: Path) -> bool:
        if target.exists():
            logger.debug("Skipping existing: %s", target)
            return False
        await self.client.download_file(url, target)
        return True

    # ── Assets ─────────────────────────────────────────────────────

    async def download_assets(
        self, asset_manifest: AssetManifest, progress: Optional[Progress] = None
    ) -> None:
        progress = progress or NullProgress()
        objects = list(asset_manifest.objects.values())

        progress.begin("Downloading assets", len(objects))
        fetched = 0
        for i, obj in enumerate(objects):
            progress.advance(i + 1)
            if await self._download_missing(asset_object_url(obj.hash), self.object_path(obj.hash)):
                fetched += 1
        progress.end()

        logger.info("Assets: %d downloaded, %d already present", fetched, len(objects) - fetched)

    def copy_resources(
        self,
        asset_manifest: AssetManifest,
        target_dir: Path,
        progress: Optional[Progress] = None,
    ) -> None:
        """Lay out asset objects under their resource names (pre-1.7 asset indexes)."""
        progress = progress or NullProgress()

        progress.begin("Copying resources", len(asset_manifest.objects))
        for i, (name, obj) in enumerate(asset_manifest.objects.items()):
            resource_path = Path(target_dir) / name
            if not resource_path.exists():
                resource_path.parent.mkdir(parents=True, exist_ok=True)
                shutil.copyfile(self.object_path(obj.hash), resource_path)
            progress.advance(i + 1)
        progress.end()

    # ── Libraries ──────────────────────────────────────────────────

    def game_library_downloads(self, game_manifest: GameManifest) -> list[tuple[str, str]]:
        """``(path, url)`` of the client jar and every library matching the host."""
        client = game_manifest.downloads.get("client")
        if client is None:
            raise LibraryResolutionError(game_manifest.id, "missing 'client' download")

        downloads = [(get_client_jar_path(game_manifest.id), client.url)]
        for lib in game_manifest.libraries:
            if not lib.has_rules_match(self.ctx):
                continue
            for artifact in lib.artifacts_for_download(self.ctx):
                downloads.append((artifact.path, artifact.url))
        return downloads

    async def download_libraries(
        self, game_manifest: GameManifest, progress: Optional[Progress] = None
    ) -> None:
        await self._download_libraries(
            "Downloading libraries", self.game_library_downloads(game_manifest), progress
        )

    async def download_loader_libraries(
        self, loader_manifest: LoaderManifest, progress: Optional[Progress] = None
    ) -> None:
        downloads = [(lib.asset_path(), lib.download_url()) for lib in loader_manifest.dist.downloads()]
        await self._download_libraries("Downloading mod loader libraries", downloads, progress)

    async def _download_libraries(
        self,
        label: str,
        downloads: list[tuple[str, str]],
        progress: Optional[Progress],
    ) -> None:
        progress = progress or NullProgress()

        progress.begin(label, len(downloads))
        fetched = 0
        for i, (path, url) in enumerate(downloads):
            progress.advance(i + 1)
            if await self._download_missing(url, self.libs_dir / path):
                fetched += 1
        progress.end()

        logger.info("%s: %d downloaded, %d already present", label, fetched, len(downloads) - fetched)

    def extract_natives(
        self,
        game_manifest: GameManifest,
        target_dir: Path,
        progress: Optional[Progress] = None,
    ) -> None:
        """Unpack every matching natives jar into the flat ``target_dir``."""
        progress = progress or NullProgress()
        natives = []
        for lib in game_manifest.libraries:
            if not lib.has_rules_match(self.ctx):
                continue
            artifact = lib.natives_artifact(self.ctx)
            if artifact is not None:
                natives.append(artifact)

        progress.begin("Extracting native jars", len(natives))
        for i, artifact in enumerate(natives):
            archive.extract_zip(self.libs_dir / artifact.path, target_dir)
            progress.advance(i + 1)
        progress.end()

    # ── Servers ────────────────────────────────────────────────────

    async def _download_reporting_bytes(
        self, label: str, url: str, target: Path, progress: Optional[Progress]
    ) -> None:
        progress = progress or NullProgress()
        await self.client.download_file(
            url,
            target,
            on_progress=progress.advance,
            on_length=lambda total: progress.begin(label, total),
        )
        progress.end()

    async def download_server_jar(
        self, game_manifest: GameManifest, target: Path, progress: Optional[Progress] = None
    ) -> None:
        """Download the dedicated server jar to ``target``, replacing any older one."""
        server = game_manifest.downloads.get("server")
        if server is None:
            raise MinecraftServerNotFound(game_manifest.id)
        await self._download_reporting_bytes("Downloading server jar", server.url, target, progress)
        logger.info("Downloaded Minecraft %s server jar", game_manifest.id)

    async def download_installer_jar(
        self,
        mod_loader: ModLoader,
        loader_manifest: LoaderManifest,
        progress: Optional[Progress] = None,
    ) -> Path:
        """The loader's installer jar from its ``mavenFiles``, downloaded once into the libraries dir."""
        dist = loader_manifest.dist
        maven_files = dist.maven_files if isinstance(dist, CurrentDistribution) else None
        installer = next(
            (lib for lib in maven_files or [] if lib.name.endswith(":installer")), None
        )
        if installer is None:
            raise UnhandledModLoaderInstaller(str(mod_loader))

        target = self.libs_dir / installer.asset_path()
        if target.exists():
            logger.debug("Skipping existing: %s", target)
        else:
            await self._download_reporting_bytes(
                f"Downloading {mod_loader} installer", installer.download_url(), target, progress
            )
        return target

    # ── Legacy Forge ───────────────────────────────────────────────

    def modded_jar_path(self, mod_loader: ModLoader) -> Path:
        return self.cache_dir / f"minecraft+{mod_loader}.jar"

    def make_modded_jar(
        self,
        mc_version: str,
        mod_loader: ModLoader,
        jar_mods: list[LoaderLibrary],
    ) -> Path:
        """Modded client jar for a legacy loader, built once and reused."""
        output = self.modded_jar_path(mod_loader)
        if output.exists():
            return output

        archive.make_modded_jar(
            output,
            self.libs_dir / get_client_jar_path(mc_version),
            [self.libs_dir / jar.asset_path() for jar in jar_mods],
        )
        return output
