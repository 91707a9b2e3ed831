"""
Pydantic models for modpack catalogs and the instance manifest.

* CurseForge modpack zip ``manifest.json`` and the v1 API ``File`` / ``Mod``
  objects (only the fields the installer consumes).
* modpacks.ch / FTB pack, version and search documents.
* The per-instance ``manifest.json`` written by :mod:`mcinstance.instance`
  and :mod:`mcinstance.server`.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from mcinstance.errors import (
    InvalidModLoaderId,
    InvalidModLoaderName,
    MinecraftTargetNotFound,
)
from mcinstance.urls import FORGE_INDEX_URL, NEOFORGE_INDEX_URL


# ── Mod loader selection ───────────────────────────────────────────


class ModLoaderName(str, Enum):
    FORGE = "forge"
    NEOFORGE = "neoforge"

    @classmethod
    def parse(cls, name: str) -> ModLoaderName:
        try:
            return cls(name.lower())
        except ValueError:
            raise InvalidModLoaderName(name) from None

    @property
    def index_url(self) -> str:
        return FORGE_INDEX_URL if self is ModLoaderName.FORGE else NEOFORGE_INDEX_URL


class ModLoader(BaseModel):
    """A mod loader and its version, e.g. ``forge`` ``47.2.0``."""

    name: ModLoaderName
    version: str

    @classmethod
    def parse(cls, loader_id: str) -> ModLoader:
        """Parse ids like ``forge-47.2.0`` or ``neoforge-21.1.90``."""
        name, sep, version = loader_id.partition("-")
        if not sep or not name or not version:
            raise InvalidModLoaderId(loader_id)
        return cls(name=ModLoaderName.parse(name), version=version)

    def __str__(self) -> str:
        return f"{self.name.value}-{self.version}"


# ── CurseForge modpack zip manifest ────────────────────────────────


class CurseManifestLoader(BaseModel):
    """A mod loader entry inside the manifest (e.g. ``forge-47.2.0``)."""

    id: str
    primary: bool = False


class CurseManifestMinecraft(BaseModel):
    version: str = ""
    mod_loaders: list[CurseManifestLoader] = Field(default_factory=list, alias="modLoaders")

    model_config = {"populate_by_name": True}

    def get_mod_loader(self) -> Optional[ModLoader]:
        primary = next((loader for loader in self.mod_loaders if loader.primary), None)
        return ModLoader.parse(primary.id) if primary else None


class CurseManifestFile(BaseModel):
    project_id: int = Field(alias="projectID")
    file_id: int = Field(alias="fileID")
    required: bool = True

    model_config = {"populate_by_name": True}


class CurseManifest(BaseModel):
    """Top-level CurseForge modpack manifest (``manifest.json``)."""

    manifest_type: str = Field(default="minecraftModpack", alias="manifestType")
    manifest_version: int = Field(default=1, alias="manifestVersion")
    name: str = ""
    version: str = ""
    author: str = ""
    overrides: str = "overrides"
    minecraft: CurseManifestMinecraft = Field(default_factory=CurseManifestMinecraft)
    files: list[CurseManifestFile] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    def get_file_ids(self) -> list[int]:
        return [f.file_id for f in self.files]

    def get_project_ids(self) -> list[int]:
        return [f.project_id for f in self.files]


# ── CurseForge API objects ─────────────────────────────────────────


class AddonLinks(BaseModel):
    website_url: str = Field(default="", alias="websiteUrl")
    wiki_url: Optional[str] = Field(default=None, alias="wikiUrl")
    issues_url: Optional[str] = Field(default=None, alias="issuesUrl")
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")

    model_config = {"populate_by_name": True}


class AddonFileHash(BaseModel):
    value: str = ""
    algo: int = 0  # 1=sha1, 2=md5


class AddonFile(BaseModel):
    """A specific file of a CurseForge project (API ``File`` object)."""

    id: int = 0
    mod_id: int = Field(default=0, alias="modId")
    display_name: str = Field(default="", alias="displayName")
    file_name: str = Field(default="", alias="fileName")
    file_length: int = Field(default=0, alias="fileLength")
    download_url: Optional[str] = Field(default=None, alias="downloadUrl")
    hashes: list[AddonFileHash] = Field(default_factory=list)
    file_fingerprint: int = Field(default=0, alias="fileFingerprint")

    model_config = {"populate_by_name": True}


class CurseAddon(BaseModel):
    """CurseForge project metadata (API ``Mod`` object)."""

    id: int = 0
    name: str = ""
    slug: str = ""
    links: AddonLinks = Field(default_factory=AddonLinks)
    class_id: int = Field(default=0, alias="classId")
    main_file_id: int = Field(default=0, alias="mainFileId")
    allow_mod_distribution: Optional[bool] = Field(
        default=None, alias="allowModDistribution"
    )

    model_config = {"populate_by_name": True}


class FingerprintMatch(BaseModel):
    id: int = 0
    file: AddonFile


class FingerprintMatches(BaseModel):
    is_cache_built: bool = Field(default=False, alias="isCacheBuilt")
    exact_matches: list[FingerprintMatch] = Field(default_factory=list, alias="exactMatches")
    exact_fingerprints: list[int] = Field(default_factory=list, alias="exactFingerprints")

    model_config = {"populate_by_name": True}


# ── Section / classId constants ────────────────────────────────────

SECTION_MOD = 6
SECTION_RESOURCE_PACK = 12
SECTION_MODPACK = 4471
SECTION_SHADER_PACK = 6552
SECTION_DATA_PACK = 6945


# ── modpacks.ch / FTB ──────────────────────────────────────────────


class ModpackSearch(BaseModel):
    pack_ids: list[int] = Field(default_factory=list, alias="packs")
    curseforge_ids: list[int] = Field(default_factory=list, alias="curseforge")
    total: int = 0
    limit: int = 0
    refreshed: int = 0

    model_config = {"populate_by_name": True}


class ModpackAuthor(BaseModel):
    id: int = 0
    name: str = ""
    website: Optional[str] = None
    author_type: str = Field(default="", alias="type")

    model_config = {"populate_by_name": True}


class ModpackVersionTarget(BaseModel):
    id: int = 0
    name: str
    version: str
    target_type: str = Field(default="", alias="type")
    updated: int = 0

    model_config = {"populate_by_name": True}


class ModpackVersion(BaseModel):
    version_id: int = Field(alias="id")
    name: str = ""
    release_type: str = Field(default="", alias="type")
    updated: int = 0
    private: Optional[bool] = None
    targets: list[ModpackVersionTarget] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class ModpackManifest(BaseModel):
    """A pack and its versions (``modpack/{id}`` or ``curseforge/{id}``)."""

    pack_id: int = Field(alias="id")
    name: str = ""
    synopsis: str = ""
    description: str = ""
    authors: list[ModpackAuthor] = Field(default_factory=list)
    versions: list[ModpackVersion] = Field(default_factory=list)
    release_type: str = Field(default="", alias="type")
    provider: str = ""

    model_config = {"populate_by_name": True}


class ModpackFileCurseforge(BaseModel):
    project_id: int = Field(alias="project")
    file_id: int = Field(alias="file")

    model_config = {"populate_by_name": True}


class ModpackFile(BaseModel):
    """
    One declared file of a pack version.

    Either a direct download (``url`` set) placed at ``path/name`` in the game
    directory, or a CurseForge reference resolved through the catalog.
    ``type == "cf-extract"`` marks a nested CurseForge pack zip whose
    overrides are merged into the game directory.
    """

    id: int = 0
    name: str
    file_type: str = Field(default="", alias="type")
    path: str = ""
    url: Optional[str] = None
    sha1: str = ""
    size: int = 0
    clientonly: bool = False
    serveronly: bool = False
    optional: bool = False
    updated: int = 0
    curseforge: Optional[ModpackFileCurseforge] = None

    model_config = {"populate_by_name": True}

    @field_validator("url", mode="before")
    @classmethod
    def _empty_url_is_none(cls, value):
        return value or None


class ModpackVersionManifest(BaseModel):
    """A single installable pack version (``modpack/{id}/{version}``)."""

    version_id: int = Field(alias="id")
    pack_id: int = Field(default=0, alias="parent")
    name: str = ""
    files: list[ModpackFile] = Field(default_factory=list)
    targets: list[ModpackVersionTarget] = Field(default_factory=list)
    release_type: str = Field(default="", alias="type")

    model_config = {"populate_by_name": True}

    def get_minecraft_version(self) -> str:
        for target in self.targets:
            if target.name == "minecraft":
                return target.version
        raise MinecraftTargetNotFound(self.name)

    def get_mod_loader(self) -> Optional[ModLoader]:
        for target in self.targets:
            if target.target_type == "modloader":
                return ModLoader(
                    name=ModLoaderName.parse(target.name), version=target.version
                )
        return None


# ── Instance manifest ──────────────────────────────────────────────


class CurseForgePackId(BaseModel):
    type: Literal["curseforge"] = "curseforge"
    mod_id: int
    version: str


class FtbPackId(BaseModel):
    type: Literal["ftb"] = "ftb"
    pack_id: int
    version: str


class CurseZipPackId(BaseModel):
    type: Literal["curse_zip"] = "curse_zip"
    file_name: str


ModpackId = Annotated[
    Union[CurseForgePackId, FtbPackId, CurseZipPackId], Field(discriminator="type")
]


class Modpack(BaseModel):
    """The installed pack and every file it placed, relative to the game dir."""

    id: ModpackId
    files: list[str] = Field(default_factory=list)


class InstanceManifest(BaseModel):
    mc_version: str
    # relative to the instance directory
    game_dir: str = "minecraft"
    java_path: Optional[str] = None
    java_args: Optional[list[str]] = None
    mod_loader: Optional[ModLoader] = None
    # alternate minecraft.jar, relative to the instance directory
    custom_jar: Optional[str] = None
    modpack: Optional[Modpack] = None


class ServerInstanceManifest(BaseModel):
    mc_version: str
    # relative to the instance directory
    server_dir: str = "server"
    java_path: Optional[str] = None
    java_args: Optional[list[str]] = None
    java_env: Optional[dict[str, str]] = None
    mod_loader: Optional[ModLoader] = None
    modpack: Optional[Modpack] = None
