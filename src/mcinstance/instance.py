"""
Game instances.

An instance is a directory holding a ``manifest.json`` (Minecraft version,
optional mod loader, installed modpack) next to its game directory::

    <instance>/manifest.json
    <instance>/minecraft/          game directory (saves, mods, config, ...)
    <instance>/natives/            extracted native libraries

Assets, libraries and manifests are shared between instances in the data
directory (see :mod:`mcinstance.env`).
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel

from mcinstance import env
from mcinstance.archive import copy_files, remove_diff_files
from mcinstance.errors import InstanceNotFound
from mcinstance.fetcher import AssetFetcher
from mcinstance.libraries import get_client_jar_path
from mcinstance.manifests import (
    AssetManifest,
    GameManifest,
    LegacyDistribution,
    LoaderManifest,
)
from mcinstance.launch import (
    LaunchCommand,
    PlayerProfile,
    compose_arguments,
    compose_classpath,
)
from mcinstance.models import InstanceManifest, ModLoader, Modpack, ModpackId
from mcinstance.progress import Progress
from mcinstance.resolver import VersionResolver

logger = logging.getLogger(__name__)

MANIFEST_FILE = "manifest.json"


@dataclass
class PreparedGame:
    """Everything resolved and downloaded for one launch."""

    game_manifest: GameManifest
    asset_manifest: AssetManifest
    loader_manifest: Optional[LoaderManifest] = None
    # where pre-1.7 asset indexes expect resources laid out by name
    resources_dir: Optional[Path] = None


class ManifestDir:
    """
    A directory described by a ``manifest.json``.

    Modpacks install into :attr:`pack_dir`; the manifest records which files
    the installed pack placed there so the next install can drop the stale
    ones. Subclasses set :attr:`manifest_model` and define :attr:`pack_dir`.
    """

    manifest_model: type[BaseModel] = InstanceManifest

    def __init__(self, instance_dir: str | Path, manifest):
        self.dir = Path(instance_dir).resolve()
        self.manifest = manifest

    def write_manifest(self) -> None:
        (self.dir / MANIFEST_FILE).write_text(
            self.manifest.model_dump_json(indent=2, exclude_none=True),
            encoding="utf-8",
        )

    @staticmethod
    def exists(instance_dir: str | Path) -> bool:
        instance_dir = Path(instance_dir)
        return instance_dir.is_dir() and (instance_dir / MANIFEST_FILE).exists()

    @classmethod
    def load(cls, instance_dir: str | Path):
        if not cls.exists(instance_dir):
            raise InstanceNotFound(str(instance_dir))
        text = (Path(instance_dir) / MANIFEST_FILE).read_text(encoding="utf-8")
        return cls(instance_dir, cls.manifest_model.model_validate_json(text))

    @property
    def pack_dir(self) -> Path:
        raise NotImplementedError

    # ── Manifest updates ───────────────────────────────────────────

    def set_versions(self, mc_version: str, mod_loader: Optional[ModLoader]) -> None:
        self.manifest.mc_version = mc_version
        self.manifest.mod_loader = mod_loader
        self.write_manifest()

    def set_modpack(self, modpack: Modpack) -> None:
        self.manifest.modpack = modpack
        self.write_manifest()

    def remove_old_modpack_files(self, new_files: Iterable[str]) -> list[str]:
        """Delete files of the installed modpack that ``new_files`` no longer lists."""
        if self.manifest.modpack is None:
            return []

        removed = remove_diff_files(self.pack_dir, self.manifest.modpack.files, new_files)
        logger.info("Removed %d files of the previous modpack", len(removed))
        return removed

    def record_modpack(self, modpack_id: ModpackId, installed: list[str]) -> list[str]:
        """
        Make ``installed`` the file set of the instance's modpack.

        Files the previous install placed that ``installed`` does not list are
        deleted from :attr:`pack_dir`, then the new set is persisted.

        Returns:
            The deleted paths, relative to :attr:`pack_dir`.
        """
        removed = self.remove_old_modpack_files(installed)
        self.set_modpack(Modpack(id=modpack_id, files=list(installed)))
        return removed


class Instance(ManifestDir):
    manifest_model = InstanceManifest

    @classmethod
    async def create(
        cls,
        instance_dir: str | Path,
        mc_version: str,
        mod_loader: Optional[ModLoader],
        resolver: VersionResolver,
    ) -> Instance:
        """Create an instance after checking the versions exist upstream."""
        await resolver.resolve(mc_version)
        if mod_loader is not None:
            await resolver.resolve_loader(mod_loader)

        instance_dir = Path(instance_dir)
        instance_dir.mkdir(parents=True, exist_ok=True)

        instance = cls(
            instance_dir,
            InstanceManifest(mc_version=mc_version, mod_loader=mod_loader),
        )
        instance.write_manifest()
        logger.info("Created instance %s (Minecraft %s)", instance.dir, mc_version)
        return instance

    # ── Directories ────────────────────────────────────────────────

    @property
    def game_dir(self) -> Path:
        return self.dir / self.manifest.game_dir

    @property
    def pack_dir(self) -> Path:
        return self.game_dir

    @property
    def fml_libs_dir(self) -> Path:
        return self.game_dir / "lib"

    @property
    def mods_dir(self) -> Path:
        return self.game_dir / "mods"

    @property
    def resources_dir(self) -> Path:
        return self.game_dir / "resources"

    @property
    def natives_dir(self) -> Path:
        return self.dir / "natives"

    # ── Launch ─────────────────────────────────────────────────────

    async def prepare(
        self,
        resolver: VersionResolver,
        fetcher: AssetFetcher,
        progress: Optional[Progress] = None,
    ) -> PreparedGame:
        """Resolve manifests and download everything the game needs to start."""
        game_manifest = await resolver.resolve(self.manifest.mc_version)
        asset_manifest = await resolver.resolve_assets(game_manifest)
        loader_manifest = None
        if self.manifest.mod_loader is not None:
            loader_manifest = await resolver.resolve_loader(self.manifest.mod_loader)

        await fetcher.download_assets(asset_manifest, progress)
        await fetcher.download_libraries(game_manifest, progress)
        if loader_manifest is not None:
            await fetcher.download_loader_libraries(loader_manifest, progress)

        resources_dir = None
        if asset_manifest.is_virtual:
            resources_dir = fetcher.virtual_assets_dir(game_manifest.asset_index.id)
        elif asset_manifest.map_to_resources:
            resources_dir = self.resources_dir
        if resources_dir is not None:
            fetcher.copy_resources(asset_manifest, resources_dir, progress)

        fetcher.extract_natives(game_manifest, self.natives_dir, progress)

        return PreparedGame(game_manifest, asset_manifest, loader_manifest, resources_dir)

    def build_launch_command(
        self,
        prepared: PreparedGame,
        fetcher: AssetFetcher,
        profile: PlayerProfile,
    ) -> LaunchCommand:
        game_manifest = prepared.game_manifest
        loader_manifest = prepared.loader_manifest

        if self.manifest.custom_jar:
            main_jar = str(self.dir / self.manifest.custom_jar)
        else:
            main_jar = get_client_jar_path(game_manifest.id)

        if loader_manifest is not None and isinstance(loader_manifest.dist, LegacyDistribution):
            # legacy forge patches minecraft.jar itself
            main_jar = str(
                fetcher.make_modded_jar(
                    game_manifest.id, self.manifest.mod_loader, loader_manifest.dist.jar_mods
                )
            )
            # forge fails on startup trying to download these (404) unless present
            if loader_manifest.dist.fml_libs:
                copy_files(
                    (fetcher.libs_dir / lib.asset_path() for lib in loader_manifest.dist.fml_libs),
                    self.fml_libs_dir,
                )

        classpath = compose_classpath(
            main_jar, game_manifest, loader_manifest, fetcher.libs_dir, fetcher.ctx
        )

        cmd = LaunchCommand(
            self.game_dir,
            java_path=self.manifest.java_path,
            java_args=self.manifest.java_args,
        )
        cmd.args(compose_arguments(game_manifest, loader_manifest, fetcher.ctx))

        context = {
            "version_name": self.manifest.mc_version,
            "version_type": game_manifest.release_type,
            "game_directory": str(self.game_dir),
            "assets_root": str(fetcher.assets_dir),
            "assets_index_name": game_manifest.asset_index.id,
            "classpath": classpath,
            "natives_directory": str(self.natives_dir),
            "user_type": "msa",
            "clientid": env.get_msa_client_id(),
            "auth_access_token": profile.access_token,
            "auth_session": f"token:{profile.access_token}:{profile.uuid}",
            "auth_player_name": profile.name,
            "auth_uuid": profile.uuid,
            "launcher_name": env.PACKAGE_NAME,
            "launcher_version": env.PACKAGE_VERSION,
            # the game refuses to start unless this is an empty json object
            "user_properties": "{}",
        }
        if prepared.resources_dir is not None:
            context["game_assets"] = str(prepared.resources_dir)
        for key, value in context.items():
            cmd.arg_ctx(key, value)

        return cmd

    async def launch(
        self,
        profile: PlayerProfile,
        resolver: VersionResolver,
        fetcher: AssetFetcher,
        progress: Optional[Progress] = None,
    ) -> subprocess.Popen:
        prepared = await self.prepare(resolver, fetcher, progress)
        return self.build_launch_command(prepared, fetcher, profile).spawn()
