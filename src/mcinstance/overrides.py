"""
Fixed corrections applied to manifests after they are loaded.

* **log4j**: game manifests referencing ``log4j-api`` / ``log4j-core`` in the
  vulnerable range ``(2.0.0, 2.17.1)`` get the 2.17.1 artifacts instead,
  whatever upstream says. Same policy as the PrismLauncher meta generator.
* **FML libraries**: legacy Forge for Minecraft 1.3 - 1.5 downloads extra
  libraries at startup from URLs that no longer exist. None of the meta
  manifests list them, so they come from the tables below.
"""

from __future__ import annotations

import logging

import semver

from mcinstance.errors import InvalidLibraryName, VersionNotFound
from mcinstance.libraries import parse_lenient
from mcinstance.manifests import (
    GameLibrary,
    GameManifest,
    LegacyDistribution,
    LoaderLibrary,
    LoaderManifest,
)

logger = logging.getLogger(__name__)

LOG4J_GROUP = "org.apache.logging.log4j"
LOG4J_MIN_EXCLUSIVE = semver.Version(2, 0, 0)
LOG4J_MAX_EXCLUSIVE = semver.Version(2, 17, 1)


def _log4j(artifact: str, sha1: str, size: int) -> GameLibrary:
    path = f"org/apache/logging/log4j/{artifact}/2.17.1/{artifact}-2.17.1.jar"
    return GameLibrary.model_validate(
        {
            "name": f"{LOG4J_GROUP}:{artifact}:2.17.1",
            "downloads": {
                "artifact": {
                    "path": path,
                    "sha1": sha1,
                    "size": size,
                    "url": f"https://repo1.maven.org/maven2/{path}",
                }
            },
        }
    )


LOG4J_REPLACEMENTS = {
    "log4j-api": _log4j("log4j-api", "d771af8e336e372fb5399c99edabe0919aeaf5b2", 301872),
    "log4j-core": _log4j("log4j-core", "779f60f3844dadc3ef597976fcb1e5127b1f343d", 1790452),
}


def _fml(name: str, file_name: str, sha1: str, size: int) -> LoaderLibrary:
    return LoaderLibrary.model_validate(
        {
            "name": f"fmllibs:{name}",
            "downloads": {
                "artifact": {
                    "path": f"fmllibs/{file_name}",
                    "sha1": sha1,
                    "size": size,
                    "url": f"https://files.prismlauncher.org/fmllibs/{file_name}",
                }
            },
        }
    )


_ARGO_2_25 = _fml("argo:2.25", "argo-2.25.jar", "bb672829fde76cb163004752b86b0484bd0a7f4b", 123642)
_GUAVA_12 = _fml("guava:12.0.1", "guava-12.0.1.jar", "b8e78b9af7bf45900e14c6f958486b6ca682195f", 1795932)
_ASM_ALL_4_0 = _fml("asm-all:4.0", "asm-all-4.0.jar", "98308890597acb64047f7e896638e0d98753ae82", 212767)

FML_LIBS_1_3 = (_ARGO_2_25, _GUAVA_12, _ASM_ALL_4_0)

FML_LIBS_1_4 = FML_LIBS_1_3 + (
    _fml("bcprov-jdk15on:147", "bcprov-jdk15on-147.jar", "b6f5d9926b0afbde9f4dbe3db88c5247be7794bb", 1997327),
)

FML_LIBS_1_5 = (
    _fml("argo-small:3.2", "argo-small-3.2.jar", "58912ea2858d168c50781f956fa5b59f0f7c6b51", 91333),
    _fml("guava:14.0:rc3", "guava-14.0-rc3.jar", "931ae21fa8014c3ce686aaa621eae565fefb1a6a", 2189140),
    _fml("asm-all:4.1", "asm-all-4.1.jar", "054986e962b88d8660ae4566475658469595ef58", 214592),
    _fml("bcprov-jdk15on:148", "bcprov-jdk15on-148.jar", "960dea7c9181ba0b17e8bab0c06a43f0a5f04e65", 2318161),
    _fml("scala-library", "scala-library.jar", "458d046151ad179c85429ed7420ffb1eaf6ddf85", 7114640),
)

FML_DEOBFUSCATION_DATA = {
    "1.5": _fml(
        "deobfuscation_data:1.5", "deobfuscation_data_1.5.zip",
        "5f7c142d53776f16304c0bbe10542014abad6af8", 200547,
    ),
    "1.5.1": _fml(
        "deobfuscation_data:1.5.1", "deobfuscation_data_1.5.1.zip",
        "22e221a0d89516c1f721d6cab056a7e37471d0a6", 200886,
    ),
    "1.5.2": _fml(
        "deobfuscation_data:1.5.2", "deobfuscation_data_1.5.2.zip",
        "446e55cd986582c70fcf12cb27bc00114c5adfd9", 201404,
    ),
}


def apply_lib_overrides(game_manifest: GameManifest) -> GameManifest:
    """Swap vulnerable log4j libraries for the pinned 2.17.1 release, in place."""
    for i, lib in enumerate(game_manifest.libraries):
        parts = lib.name.split(":")
        if len(parts) < 3:
            raise InvalidLibraryName(lib.name)

        group_id, artifact_id, sversion = parts[:3]
        if group_id != LOG4J_GROUP:
            continue

        version = parse_lenient(sversion)
        if artifact_id not in LOG4J_REPLACEMENTS:
            continue
        if LOG4J_MIN_EXCLUSIVE < version < LOG4J_MAX_EXCLUSIVE:
            logger.info("Replacing %s with %s 2.17.1", lib.name, artifact_id)
            game_manifest.libraries[i] = LOG4J_REPLACEMENTS[artifact_id].model_copy(deep=True)

    return game_manifest


def fml_libs_for(mc_version: str) -> list[LoaderLibrary] | None:
    """Auxiliary FML libraries for a legacy Forge Minecraft version, if any."""
    if mc_version == "1.3.2":
        return list(FML_LIBS_1_3)

    version = parse_lenient(mc_version)
    if version.major != 1:
        return None
    if version.minor == 4:
        return list(FML_LIBS_1_4)
    if version.minor == 5:
        deobf = FML_DEOBFUSCATION_DATA.get(mc_version)
        if deobf is None:
            raise VersionNotFound("FML deobfuscation data", mc_version)
        return [*FML_LIBS_1_5, deobf]
    return None


def populate_fml_libs(loader_manifest: LoaderManifest) -> LoaderManifest:
    """Fill in ``fml_libs`` of a legacy loader manifest, in place."""
    if not isinstance(loader_manifest.dist, LegacyDistribution):
        return loader_manifest

    fml_libs = fml_libs_for(loader_manifest.get_minecraft_version())
    if fml_libs is not None:
        loader_manifest.dist.fml_libs = fml_libs
    return loader_manifest
