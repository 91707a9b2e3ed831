"""
Error taxonomy for mcinstance.

Every error raised by the launcher engine derives from :class:`LauncherError`
and carries the ids, paths or lengths needed to diagnose it. Network, I/O and
JSON validation failures are not wrapped; ``httpx.HTTPError``, ``OSError`` and
``pydantic.ValidationError`` propagate to the caller unchanged.
"""

from __future__ import annotations


class LauncherError(Exception):
    """Base class for all mcinstance errors."""


# ── Not found ──────────────────────────────────────────────────────


class VersionNotFound(LauncherError):
    """A version or mod loader id is absent from its remote index."""

    def __init__(self, kind: str, version_id: str):
        self.kind = kind
        self.version_id = version_id
        super().__init__(f"{kind} version '{version_id}' not found")


class InstanceNotFound(LauncherError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Instance directory '{path}' not found or doesn't contain manifest.json file"
        )


class LoaderRequiresNotFound(LauncherError):
    def __init__(self, loader_uid: str):
        self.loader_uid = loader_uid
        super().__init__(f"Missing 'net.minecraft' in {loader_uid} manifest requires list")


class MinecraftTargetNotFound(LauncherError):
    def __init__(self, pack_name: str):
        self.pack_name = pack_name
        super().__init__(f"Missing 'minecraft' target in modpack manifest '{pack_name}'")


class MinecraftServerNotFound(LauncherError):
    def __init__(self, mc_version: str):
        self.mc_version = mc_version
        super().__init__(f"Minecraft version '{mc_version}' does not include server download")


# ── Malformed upstream data ────────────────────────────────────────


class MalformedUpstreamData(LauncherError):
    """Remote data did not have the expected shape (likely API drift)."""


class InvalidLibraryName(MalformedUpstreamData):
    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"Expected library name '{name}' in format "
            "'<group_id>:<artifact_id>:<version>:[classifier]'"
        )


class InvalidLibraryPath(MalformedUpstreamData):
    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Expected library path '{path}' in format '<_>/<version>/<artifact>'"
        )


class LibraryResolutionError(MalformedUpstreamData):
    """A rule-matching library could not be turned into downloads."""

    def __init__(self, lib_name: str, reason: str):
        self.lib_name = lib_name
        self.reason = reason
        super().__init__(f"Library {lib_name}: {reason}")


class UnknownClassId(MalformedUpstreamData):
    def __init__(self, class_id: int, file_name: str = ""):
        self.class_id = class_id
        self.file_name = file_name
        super().__init__(f"Unimplemented CurseForge class id {class_id} ({file_name})")


class CurseFileListMismatch(MalformedUpstreamData):
    """The catalog file list and mod list cannot be paired one to one."""

    def __init__(self, file_list_len: int, mod_list_len: int):
        self.file_list_len = file_list_len
        self.mod_list_len = mod_list_len
        super().__init__(
            f"CurseForge file results({file_list_len}) do not match "
            f"mod results({mod_list_len})"
        )


class InvalidModLoaderId(MalformedUpstreamData):
    def __init__(self, loader_id: str):
        self.loader_id = loader_id
        super().__init__(
            f"Invalid mod loader ID format '{loader_id}'; expected [name]-[version]"
        )


class InvalidModLoaderName(MalformedUpstreamData):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid mod loader name '{name}'")


class UnhandledModLoaderInstaller(MalformedUpstreamData):
    """The loader manifest lists no installer jar to set up a server with."""

    def __init__(self, loader_id: str):
        self.loader_id = loader_id
        super().__init__(f"Unhandled modloader installer download for {loader_id}")


class MissingFingerprint(MalformedUpstreamData):
    def __init__(self, file_name: str, fingerprint: int):
        self.file_name = file_name
        self.fingerprint = fingerprint
        super().__init__(
            f"No CurseForge match for '{file_name}' (fingerprint {fingerprint})"
        )


# ── Degraded parsing ───────────────────────────────────────────────


class VersionParseError(LauncherError, ValueError):
    """A version string could not be read even by the lenient parser."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Unable to parse '{version}' as a semantic version")
