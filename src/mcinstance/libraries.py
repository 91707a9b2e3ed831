"""
Library coordinates, lenient versions and classpath deduplication.

Game, Forge and NeoForge manifests regularly list the same artifact at
different versions (e.g. ``asm-9.3`` from vanilla and ``asm-9.5`` from the
loader). :func:`dedup_libs` collapses those to the highest version before the
classpath is built.

Maven versions are only loosely semver, so :func:`parse_lenient` accepts
missing minor/patch numbers, extra numeric components, qualifiers glued on
with ``-`` or ``_`` and date-like versions::

    parse_lenient("1.5")                          -> 1.5.0
    parse_lenient("14.0-rc3")                     -> 14.0.0-rc3
    parse_lenient("1.2.3.4")                      -> 1.2.3+4
    parse_lenient("1.7.10-10.13.4.1566-1.7.10")   -> 1.7.10-10.13.4.1566-1.7.10
"""

from __future__ import annotations

import logging
import re
from typing import Iterable

import semver

from mcinstance.errors import InvalidLibraryName, InvalidLibraryPath, VersionParseError

logger = logging.getLogger(__name__)

# wins against any real version so unversioned paths are always kept
SENTINEL_VERSION = semver.Version(9, 9, 9)

_VERSION_RE = re.compile(
    r"^[vV]?(?P<major>\d+)(?:\.(?P<minor>\d+))?(?:\.(?P<patch>\d+))?"
    r"(?P<extra>(?:\.\d+)*)(?P<rest>.*)$"
)
_BAD_IDENT_CHARS = re.compile(r"[^0-9A-Za-z-]")


def _identifiers(text: str) -> str | None:
    parts = []
    for ident in text.split("."):
        ident = _BAD_IDENT_CHARS.sub("-", ident)
        if not ident:
            continue
        if ident.isdigit():
            ident = str(int(ident))
        parts.append(ident)
    return ".".join(parts) or None


def parse_lenient(version: str) -> semver.Version:
    """Parse ``version`` into a :class:`semver.Version`, filling in what's missing."""
    match = _VERSION_RE.match(version.strip())
    if match is None:
        raise VersionParseError(version)

    rest, _, build = match.group("rest").partition("+")
    prerelease = rest.lstrip("-_.")
    extra = match.group("extra").lstrip(".")
    if extra:
        build = f"{extra}.{build}" if build else extra

    return semver.Version(
        int(match.group("major")),
        int(match.group("minor") or 0),
        int(match.group("patch") or 0),
        prerelease=_identifiers(prerelease),
        build=_identifiers(build),
    )


def version_key(version: str) -> tuple[semver.Version, tuple[int, ...]]:
    """
    Sort key for maven versions.

    semver ignores build metadata, so ``1.2.3.4`` and ``1.2.3.5`` (both
    ``1.2.3+...``) tie; every number in the version breaks the tie.
    Unparseable versions sort as :data:`SENTINEL_VERSION`.
    """
    try:
        parsed = parse_lenient(version)
    except VersionParseError:
        logger.debug("Unparseable version '%s'", version)
        parsed = SENTINEL_VERSION
    return parsed, tuple(int(n) for n in re.findall(r"\d+", version))


def dedup_libs(paths: Iterable[str]) -> list[str]:
    """
    Keep only the highest version of every artifact in ``paths``.

    Paths are maven-style relative paths such as
    ``org/ow2/asm/asm/9.5/asm-9.5.jar``; the artifact is identified by
    everything before the version segment.

    Natives jars share their coordinate with the companion jar, so any path
    containing ``natives`` bypasses deduplication and is always kept.
    """
    paths = list(paths)
    natives = [p for p in paths if "natives" in p]
    kept: dict[str, tuple[tuple, str]] = {}

    for path in paths:
        if "natives" in path:
            continue

        parts = path.rsplit("/", 2)
        if len(parts) < 3:
            raise InvalidLibraryPath(path)
        artifact_id, sversion, _ = parts

        # e.g. io/github/zekerzhayard/ForgeWrapper/mmc2/ForgeWrapper-mmc2.jar sorts as the sentinel
        key = version_key(sversion)

        existing = kept.get(artifact_id)
        if existing is None or key >= existing[0]:
            kept[artifact_id] = (key, path)

    return [path for _, path in kept.values()] + natives


def name_to_path(name: str) -> str:
    """
    Turn a maven coordinate into a library path.

    ``net.minecraftforge:forge:1.19.4-45.1.0:universal`` becomes
    ``net/minecraftforge/forge/1.19.4-45.1.0/forge-1.19.4-45.1.0-universal.jar``.
    """
    parts = name.split(":")
    if len(parts) < 3:
        raise InvalidLibraryName(name)

    group_id, artifact_id, version = parts[:3]
    classifier = f"-{parts[3]}" if len(parts) > 3 else ""
    file_name = f"{artifact_id}-{version}{classifier}.jar"

    return "/".join([*group_id.split("."), artifact_id, version, file_name])


def get_client_jar_path(mc_version: str) -> str:
    """Path of the vanilla client jar, relative to the shared libraries dir."""
    return f"com/mojang/minecraft/{mc_version}/minecraft-{mc_version}-client.jar"
