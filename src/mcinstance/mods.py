"""
Identify and replace mods already sitting in a mods directory.

CurseForge identifies files by a **MurmurHash2** (32-bit, seed 1) of their
content with whitespace bytes (tab, LF, CR, space) removed. Every file in
the directory is fingerprinted and matched through
``POST /v1/fingerprints/432`` to learn which project it belongs to.
"""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from mcinstance.api import CurseForgeAPI
from mcinstance.errors import MissingFingerprint
from mcinstance.installer import FileDownload, ModpackInstaller
from mcinstance.progress import Progress

logger = logging.getLogger(__name__)

_WHITESPACE = b"\t\n\r "
_M = 0x5BD1E995
_MASK = 0xFFFFFFFF


def murmur_hash2(data: bytes, seed: int = 1) -> int:
    """Unsigned 32-bit MurmurHash2 of ``data``."""
    length = len(data)
    h = (seed ^ length) & _MASK

    body_len = length - length % 4
    for (k,) in struct.iter_unpack("<I", data[:body_len]):
        k = (k * _M) & _MASK
        k ^= k >> 24
        k = (k * _M) & _MASK
        h = ((h * _M) & _MASK) ^ k

    tail = data[body_len:]
    if tail:
        h ^= int.from_bytes(tail, "little")
        h = (h * _M) & _MASK

    h ^= h >> 13
    h = (h * _M) & _MASK
    h ^= h >> 15
    return h


def curseforge_fingerprint(data: bytes) -> int:
    return murmur_hash2(data.translate(None, _WHITESPACE))


def file_fingerprint(path: str | Path) -> int:
    return curseforge_fingerprint(Path(path).read_bytes())


@dataclass
class InstalledMod:
    file_name: str
    mod_id: int


class ModsManager:
    """
    Usage::

        async with CurseForgeAPI() as api:
            manager = await ModsManager.load_curseforge_mods(instance.mods_dir, api)
            blocked = await manager.install_mod(mod_id, file_id, installer)
    """

    def __init__(self, mods_dir: str | Path, mods: list[InstalledMod]):
        self.mods_dir = Path(mods_dir)
        self.mods = mods

    @classmethod
    async def load_curseforge_mods(
        cls, mods_dir: str | Path, curse_api: CurseForgeAPI
    ) -> ModsManager:
        """
        Match every file of ``mods_dir`` against CurseForge.

        Raises:
            MissingFingerprint: a file is unknown to CurseForge.
        """
        mods_dir = Path(mods_dir)
        hashes = [
            (path.name, file_fingerprint(path))
            for path in sorted(mods_dir.iterdir())
            if path.is_file()
        ]
        logger.info("Fingerprinted %d files in %s", len(hashes), mods_dir)
        if not hashes:
            return cls(mods_dir, [])

        results = await curse_api.get_fingerprint_matches([h for _, h in hashes])
        by_fingerprint = {m.file.file_fingerprint: m.file.mod_id for m in results.exact_matches}

        mods = []
        for file_name, fingerprint in hashes:
            mod_id = by_fingerprint.get(fingerprint)
            if mod_id is None:
                raise MissingFingerprint(file_name, fingerprint)
            mods.append(InstalledMod(file_name=file_name, mod_id=mod_id))
        return cls(mods_dir, mods)

    def find(self, mod_id: int) -> Optional[InstalledMod]:
        return next((m for m in self.mods if m.mod_id == mod_id), None)

    async def install_mod(
        self,
        mod_id: int,
        file_id: int,
        installer: ModpackInstaller,
        progress: Optional[Progress] = None,
    ) -> list[FileDownload]:
        """Replace the installed file of ``mod_id`` (if any) with ``file_id``."""
        existing = self.find(mod_id)
        if existing is not None:
            (self.mods_dir / existing.file_name).unlink()
            self.mods.remove(existing)
            logger.info("Removed %s", existing.file_name)

        return await installer.install_curseforge_file(mod_id, file_id, progress)
