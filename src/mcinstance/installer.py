"""
Modpack installer.

Reconciles a declared modpack file list with the game directory:

  1. Copy pack overrides (or direct-download assets) into the game directory
  2. Resolve CurseForge file / mod pairs in two batch requests
  3. Download every file the catalog hands out a URL for
  4. Report the rest as *blocked*: their authors disabled third-party
     distribution and the user has to fetch them from the browser

Every path placed by an install is returned relative to the game directory so
the next install can delete files the new version no longer declares
(:meth:`mcinstance.instance.Instance.record_modpack`).
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from mcinstance.api import CurseForgeAPI
from mcinstance.archive import PackZip
from mcinstance.client import AssetClient
from mcinstance.errors import CurseFileListMismatch, UnknownClassId
from mcinstance.models import (
    SECTION_DATA_PACK,
    SECTION_MOD,
    SECTION_RESOURCE_PACK,
    SECTION_SHADER_PACK,
    AddonFile,
    CurseAddon,
    ModpackVersionManifest,
)
from mcinstance.progress import NullProgress, Progress
from mcinstance.urls import manual_download_url

logger = logging.getLogger(__name__)


class FileType(str, Enum):
    """Destination of a catalog file; the value is its directory in the game dir."""

    MOD = "mods"
    RESOURCE = "resourcepacks"
    SHADERS = "shaderpacks"
    DATAPACK = "config/openloader/data"

    @classmethod
    def from_class_id(cls, class_id: int, file_name: str = "") -> FileType:
        # the classId of the parent project is the only thing telling these apart
        mapping = {
            SECTION_MOD: cls.MOD,
            SECTION_RESOURCE_PACK: cls.RESOURCE,
            SECTION_SHADER_PACK: cls.SHADERS,
            SECTION_DATA_PACK: cls.DATAPACK,
        }
        try:
            return mapping[class_id]
        except KeyError:
            raise UnknownClassId(class_id, file_name) from None


@dataclass
class FileDownload:
    file_name: str
    file_size: int
    file_type: FileType
    can_auto_download: bool
    # download URL, or the page to fetch it by hand when blocked
    url: str

    @classmethod
    def from_catalog(cls, file: AddonFile, mod: CurseAddon) -> FileDownload:
        return cls(
            file_name=file.file_name,
            file_size=file.file_length,
            file_type=FileType.from_class_id(mod.class_id, file.file_name),
            can_auto_download=file.download_url is not None,
            url=file.download_url or manual_download_url(mod.links.website_url, file.id),
        )


class ModpackInstaller:
    """
    Install modpacks into a game directory.

    Usage::

        async with CurseForgeAPI() as api, AssetClient() as client:
            installer = ModpackInstaller(game_dir, api, client)
            with PackZip("modpack.zip") as pack:
                installed, blocked = await installer.install_pack_zip(pack)
    """

    def __init__(self, dest_dir: str | Path, curse_api: CurseForgeAPI, client: AssetClient):
        self.dest_dir = Path(dest_dir)
        self.curse_api = curse_api
        self.client = client

    # ── Destination paths ──────────────────────────────────────────

    @property
    def mods_dir(self) -> Path:
        return self.dest_dir / FileType.MOD.value

    def get_file_type_dir(self, file_type: FileType) -> Path:
        return self.dest_dir / file_type.value

    def get_file_path(self, file: FileDownload) -> Path:
        return self.get_file_type_dir(file.file_type) / file.file_name

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.dest_dir).as_posix()

    # ── Public entry points ────────────────────────────────────────

    async def install_pack_zip(
        self, pack: PackZip, progress: Optional[Progress] = None
    ) -> tuple[list[str], list[FileDownload]]:
        """
        Install a CurseForge modpack zip.

        Returns:
            ``(installed, blocked)``: every path placed, relative to the game
            directory (blocked files included), and the files the user has to
            download manually.
        """
        logger.info(
            "Modpack: %s v%s by %s (%d files)",
            pack.manifest.name,
            pack.manifest.version,
            pack.manifest.author,
            len(pack.manifest.files),
        )

        pack.copy_game_data(self.dest_dir)
        installed = pack.list_overrides()

        return await self._download_curseforge_files(
            pack.manifest.get_file_ids(),
            pack.manifest.get_project_ids(),
            installed,
            progress,
        )

    async def install_pack(
        self,
        pack: ModpackVersionManifest,
        is_server: bool = False,
        progress: Optional[Progress] = None,
    ) -> tuple[list[str], list[FileDownload]]:
        """
        Install a modpacks.ch / FTB pack version.

        Files with a ``url`` are downloaded straight to ``<path>/<name>``; files
        referencing CurseForge are resolved through the catalog afterwards.
        Server installs leave out ``clientonly`` files.
        """
        progress = progress or NullProgress()
        pack_files = [f for f in pack.files if not (is_server and f.clientonly)]
        assets = [f for f in pack_files if f.url is not None]
        installed: list[str] = []

        logger.info(
            "Pack %s: %d direct files, %d catalog files",
            pack.name,
            len(assets),
            sum(1 for f in pack_files if f.curseforge is not None),
        )

        # curse packs from modpacks.ch may carry the whole curse zip as a
        # single asset; its overrides get merged in
        for f in assets:
            if f.file_type == "cf-extract":
                installed.extend(await self._install_nested_pack(f.url, f.name, progress))
        direct = [f for f in assets if f.file_type != "cf-extract"]

        progress.begin("Downloading assets", len(direct))
        for i, f in enumerate(direct):
            rel_path = (Path(f.path) / f.name).as_posix()
            target = self.dest_dir / rel_path
            if target.exists():
                logger.debug("Skipping existing: %s", rel_path)
            else:
                await self.client.download_file(f.url, target)
            installed.append(rel_path)
            progress.advance(i + 1)
        progress.end()

        mods = [f.curseforge for f in pack_files if f.curseforge is not None]
        return await self._download_curseforge_files(
            [m.file_id for m in mods],
            [m.project_id for m in mods],
            installed,
            progress,
        )

    async def install_curseforge_file(
        self, mod_id: int, file_id: int, progress: Optional[Progress] = None
    ) -> list[FileDownload]:
        """Install one catalog file; returns it as blocked if it needs a manual download."""
        _, blocked = await self._download_curseforge_files([file_id], [mod_id], [], progress)
        return blocked

    def install_file(self, file: FileDownload, src_path: str | Path) -> Path:
        """Copy a manually downloaded file into its destination directory."""
        dest = self.get_file_path(file)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src_path, dest)
        logger.info("Installed %s", self._relative(dest))
        return dest

    # ── Internals ──────────────────────────────────────────────────

    async def _install_nested_pack(self, url: str, name: str, progress: Progress) -> list[str]:
        with tempfile.TemporaryDirectory() as tmp:
            zip_path = Path(tmp) / name
            await self.client.download_file(
                url,
                zip_path,
                on_progress=progress.advance,
                on_length=lambda total: progress.begin(f"Downloading {name}", total),
            )
            progress.end()
            with PackZip(zip_path) as nested:
                nested.copy_game_data(self.dest_dir)
                return nested.list_overrides()

    async def _download_curseforge_files(
        self,
        file_ids: list[int],
        project_ids: list[int],
        installed: list[str],
        progress: Optional[Progress] = None,
    ) -> tuple[list[str], list[FileDownload]]:
        progress = progress or NullProgress()

        file_list = await self.curse_api.get_files(file_ids)
        mod_list = await self.curse_api.get_mods(project_ids)
        if len(file_list) != len(mod_list):
            raise CurseFileListMismatch(len(file_list), len(mod_list))

        # pair files with their mods by sorting both on mod id
        file_list.sort(key=lambda f: f.mod_id)
        mod_list.sort(key=lambda m: m.id)
        file_downloads = [
            FileDownload.from_catalog(f, m) for f, m in zip(file_list, mod_list)
        ]

        downloads = [f for f in file_downloads if f.can_auto_download]
        blocked = [f for f in file_downloads if not f.can_auto_download]

        # blocked files alone still need somewhere to go
        self.mods_dir.mkdir(parents=True, exist_ok=True)

        progress.begin("Downloading mods", len(downloads))
        for i, f in enumerate(downloads):
            dest = self.get_file_path(f)
            if dest.exists():
                logger.debug("Skipping existing: %s", f.file_name)
            else:
                await self.client.download_file(f.url, dest)
            progress.advance(i + 1)
        progress.end()

        installed = [*installed, *(self._relative(self.get_file_path(f)) for f in file_downloads)]

        logger.info("Downloaded %d catalog files, %d blocked", len(downloads), len(blocked))
        for f in blocked:
            logger.warning("Manual download required: %s (%s)", f.file_name, f.url)

        return installed, blocked
