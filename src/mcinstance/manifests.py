"""
Pydantic models for game and mod loader metadata.

Covers the Mojang version manifest (``version_manifest_v2.json``), the
per-version game manifest, asset indexes, and the PrismLauncher meta format
used for Forge and NeoForge (index + per-version manifests).

Several documents mix shapes in one field (plain strings next to rule-gated
objects in ``arguments``, "current" vs "legacy" loader distributions, loader
libraries with or without a ``downloads`` block). These are normalized at
validation time by probing which fields are present.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator

from mcinstance import env
from mcinstance.errors import LibraryResolutionError, LoaderRequiresNotFound
from mcinstance.libraries import name_to_path
from mcinstance.rules import (
    RulesContext,
    matches_argument_rules,
    matches_library_rules,
)
from mcinstance.urls import library_url


# ── Shared pieces ──────────────────────────────────────────────────


class AssetDownload(BaseModel):
    sha1: str = ""
    size: int = 0
    url: str


class OsProperties(BaseModel):
    name: Optional[str] = None
    version: Optional[str] = None
    arch: Optional[str] = None


class Rule(BaseModel):
    """A single ``allow``/``disallow`` entry of a library or argument rule list."""

    action: Literal["allow", "disallow"]
    os: Optional[OsProperties] = None
    features: Optional[dict[str, bool]] = None


# ── Version manifest (index of game versions) ──────────────────────


class VersionManifestEntry(BaseModel):
    id: str
    release_type: str = Field(default="release", alias="type")
    url: str
    time: str = ""
    release_time: str = Field(default="", alias="releaseTime")
    sha1: str = ""
    compliance_level: int = Field(default=0, alias="complianceLevel")

    model_config = {"populate_by_name": True}


class VersionManifest(BaseModel):
    versions: list[VersionManifestEntry] = Field(default_factory=list)

    def find(self, version_id: str) -> Optional[VersionManifestEntry]:
        return next((v for v in self.versions if v.id == version_id), None)


# ── Game manifest ──────────────────────────────────────────────────


class GameArg(BaseModel):
    value: Union[str, list[str]]
    rules: list[Rule] = Field(default_factory=list)

    def values(self) -> list[str]:
        return [self.value] if isinstance(self.value, str) else list(self.value)


class GameArgsIndex(BaseModel):
    game: list[GameArg] = Field(default_factory=list)
    jvm: list[GameArg] = Field(default_factory=list)

    @field_validator("game", "jvm", mode="before")
    @classmethod
    def _wrap_plain_strings(cls, value):
        # plain string arguments are unconditional
        return [{"value": v} if isinstance(v, str) else v for v in value]

    @staticmethod
    def matched(args: list[GameArg], ctx: Optional[RulesContext] = None) -> list[str]:
        result: list[str] = []
        for arg in args:
            if matches_argument_rules(arg.rules, ctx):
                result.extend(arg.values())
        return result


class GameAssetIndex(AssetDownload):
    id: str
    total_size: int = Field(default=0, alias="totalSize")

    model_config = {"populate_by_name": True}


class GameJavaVersion(BaseModel):
    component: str = ""
    major_version: int = Field(default=8, alias="majorVersion")

    model_config = {"populate_by_name": True}


class GameLibraryArtifact(AssetDownload):
    path: str


class GameLibraryDownloads(BaseModel):
    artifact: Optional[GameLibraryArtifact] = None
    classifiers: Optional[dict[str, GameLibraryArtifact]] = None


class GameLibraryExtract(BaseModel):
    exclude: list[str] = Field(default_factory=list)


class GameLibrary(BaseModel):
    """
    A library entry of the game manifest.

    ``rules`` absent means the library always applies; ``natives`` maps an OS
    name to a key in ``downloads.classifiers``.
    """

    name: str
    downloads: GameLibraryDownloads = Field(default_factory=GameLibraryDownloads)
    extract: Optional[GameLibraryExtract] = None
    natives: Optional[dict[str, str]] = None
    rules: Optional[list[Rule]] = None

    def has_rules_match(self, ctx: Optional[RulesContext] = None) -> bool:
        if self.rules is None:
            return True
        return matches_library_rules(self.rules, ctx)

    def natives_artifact(
        self, ctx: Optional[RulesContext] = None
    ) -> Optional[GameLibraryArtifact]:
        if self.natives is None:
            return None

        ctx = ctx or RulesContext.host()
        natives_key = self.natives.get(ctx.os_name)
        if natives_key is None:
            raise LibraryResolutionError(
                self.name, f"OS name '{ctx.os_name}' not found in natives"
            )
        natives_key = natives_key.replace("${arch}", env.get_host_bits())

        classifiers = self.downloads.classifiers
        if classifiers is None:
            raise LibraryResolutionError(self.name, "missing 'classifiers' object")

        artifact = classifiers.get(natives_key)
        if artifact is None:
            raise LibraryResolutionError(
                self.name, f"expected key '{natives_key}' in classifiers"
            )
        return artifact

    def artifacts_for_download(
        self, ctx: Optional[RulesContext] = None
    ) -> list[GameLibraryArtifact]:
        artifacts = [
            a for a in (self.downloads.artifact, self.natives_artifact(ctx)) if a
        ]
        if not artifacts:
            raise LibraryResolutionError(self.name, "unhandled download")
        return artifacts


class GameLoggingArtifact(AssetDownload):
    id: str


class GameLoggingClient(BaseModel):
    argument: str
    file: GameLoggingArtifact
    file_type: str = Field(default="", alias="type")

    model_config = {"populate_by_name": True}


class GameLogging(BaseModel):
    client: Optional[GameLoggingClient] = None


class GameManifest(BaseModel):
    """
    Per-version game descriptor.

    Exactly one of ``arguments`` (1.13+) or ``minecraft_arguments`` (older
    versions) is present.
    """

    id: str
    arguments: Optional[GameArgsIndex] = None
    minecraft_arguments: Optional[str] = Field(default=None, alias="minecraftArguments")
    asset_index: GameAssetIndex = Field(alias="assetIndex")
    assets: str = ""
    compliance_level: Optional[int] = Field(default=None, alias="complianceLevel")
    downloads: dict[str, AssetDownload] = Field(default_factory=dict)
    java_version: Optional[GameJavaVersion] = Field(default=None, alias="javaVersion")
    libraries: list[GameLibrary] = Field(default_factory=list)
    logging: Optional[GameLogging] = None
    main_class: str = Field(alias="mainClass")
    minimum_launcher_version: int = Field(default=0, alias="minimumLauncherVersion")
    release_time: str = Field(default="", alias="releaseTime")
    time: str = ""
    release_type: str = Field(default="release", alias="type")

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def _one_argument_form(self) -> GameManifest:
        if (self.arguments is None) == (self.minecraft_arguments is None):
            raise ValueError(
                f"game manifest {self.id} must define exactly one of "
                "'arguments' or 'minecraftArguments'"
            )
        return self


# ── Asset index ────────────────────────────────────────────────────


class AssetObject(BaseModel):
    hash: str
    size: int = 0


class AssetManifest(BaseModel):
    objects: dict[str, AssetObject] = Field(default_factory=dict)
    map_to_resources: Optional[bool] = None
    is_virtual: Optional[bool] = Field(default=None, alias="virtual")

    model_config = {"populate_by_name": True}


# ── Mod loader (PrismLauncher meta) ────────────────────────────────


class LoaderRequires(BaseModel):
    uid: str
    equals: Optional[str] = None


class LoaderIndexEntry(BaseModel):
    version: str
    recommended: bool = False
    release_time: str = Field(default="", alias="releaseTime")
    requires: list[LoaderRequires] = Field(default_factory=list)
    sha256: str = ""

    model_config = {"populate_by_name": True}

    def is_for_mc_version(self, mc_version: str) -> bool:
        return any(r.equals == mc_version for r in self.requires)


class LoaderIndex(BaseModel):
    versions: list[LoaderIndexEntry] = Field(default_factory=list)

    def find(self, version: str) -> Optional[LoaderIndexEntry]:
        return next((v for v in self.versions if v.version == version), None)


class LoaderArtifact(AssetDownload):
    # some artifacts (ForgeWrapper, forge installer jars) ship without a path
    path: Optional[str] = None

    def asset_path(self) -> str:
        if self.path:
            return self.path
        url_path = urlparse(self.url).path
        if url_path.startswith("/maven/"):
            return url_path[len("/maven/"):]
        return url_path.lstrip("/")


class LoaderDownloads(BaseModel):
    artifact: LoaderArtifact


class LoaderLibrary(BaseModel):
    """
    A loader library in either of its two forms.

    * downloads form: ``{"name", "downloads": {"artifact": {...}}}``
    * url form: ``{"name", "url"?}``, path derived from the maven name
    """

    name: str
    downloads: Optional[LoaderDownloads] = None
    url: Optional[str] = None

    def asset_path(self) -> str:
        if self.downloads is not None:
            return self.downloads.artifact.asset_path()
        return name_to_path(self.name)

    def download_url(self) -> str:
        if self.downloads is not None:
            return self.downloads.artifact.url
        return library_url(self.asset_path(), self.url)


class CurrentDistribution(BaseModel):
    kind: Literal["current"] = "current"
    libraries: list[LoaderLibrary] = Field(default_factory=list)
    main_class: str = Field(alias="mainClass")
    maven_files: Optional[list[LoaderLibrary]] = Field(default=None, alias="mavenFiles")
    minecraft_arguments: Optional[str] = Field(default=None, alias="minecraftArguments")

    model_config = {"populate_by_name": True}

    def downloads(self) -> list[LoaderLibrary]:
        return [*self.libraries, *(self.maven_files or [])]


class LegacyDistribution(BaseModel):
    kind: Literal["legacy"] = "legacy"
    jar_mods: list[LoaderLibrary] = Field(alias="jarMods")
    fml_libs: Optional[list[LoaderLibrary]] = None

    model_config = {"populate_by_name": True}

    def downloads(self) -> list[LoaderLibrary]:
        return [*self.jar_mods, *(self.fml_libs or [])]


_CURRENT_FIELDS = ("libraries", "mainClass", "mavenFiles", "minecraftArguments")
_LEGACY_FIELDS = ("jarMods", "fml_libs")


class LoaderManifest(BaseModel):
    uid: str = ""
    name: str = ""
    version: str
    release_time: str = Field(default="", alias="releaseTime")
    requires: list[LoaderRequires] = Field(default_factory=list)
    traits: Optional[list[str]] = Field(default=None, alias="+traits")
    tweakers: Optional[list[str]] = Field(default=None, alias="+tweakers")
    dist: Annotated[
        Union[CurrentDistribution, LegacyDistribution], Field(discriminator="kind")
    ]

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _detect_distribution(cls, data):
        if not isinstance(data, dict) or "dist" in data:
            return data
        data = dict(data)
        if "jarMods" in data:
            fields, kind = _LEGACY_FIELDS, "legacy"
        else:
            fields, kind = _CURRENT_FIELDS, "current"
        dist = {"kind": kind}
        for key in fields:
            if key in data:
                dist[key] = data.pop(key)
        data["dist"] = dist
        return data

    @property
    def is_legacy(self) -> bool:
        return isinstance(self.dist, LegacyDistribution)

    def get_minecraft_version(self) -> str:
        for req in self.requires:
            if req.uid == "net.minecraft" and req.equals:
                return req.equals
        raise LoaderRequiresNotFound(self.uid or self.name)
