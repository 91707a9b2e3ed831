"""
Zip and file tree helpers.

* :func:`extract_zip` / :func:`create_zip` for whole archives.
* :func:`make_modded_jar` layers legacy Forge jar mods over the vanilla
  client jar.
* :class:`PackZip` reads a CurseForge modpack zip (``manifest.json`` plus an
  ``overrides`` folder) without unpacking the rest of it.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
import zipfile
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

from mcinstance.models import CurseManifest

logger = logging.getLogger(__name__)


def _enclosed_name(name: str) -> Optional[PurePosixPath]:
    """Entry name as a relative path, or None if it would escape the target."""
    path = PurePosixPath(name.replace("\\", "/"))
    if path.is_absolute() or ".." in path.parts:
        return None
    return path


def extract_zip(zip_path: str | Path, target_dir: str | Path) -> None:
    """Extract every entry of ``zip_path`` into ``target_dir``, overwriting files."""
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    with zipfile.ZipFile(zip_path, "r") as zf:
        for info in zf.infolist():
            rel_path = _enclosed_name(info.filename)
            if rel_path is None:
                logger.warning("Skipping unsafe zip entry %s", info.filename)
                continue

            target = target_dir / rel_path
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue

            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)


def create_zip(src_dir: str | Path, output: str | Path) -> None:
    """Zip the contents of ``src_dir`` (not the directory itself) into ``output``."""
    src_dir = Path(src_dir)
    with zipfile.ZipFile(output, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for path in sorted(src_dir.rglob("*")):
            name = path.relative_to(src_dir).as_posix()
            if path.is_dir():
                # explicit directory entries, some unzip tools need them
                zf.writestr(name + "/", b"")
            else:
                zf.write(path, name)


def make_modded_jar(
    output_jar: str | Path, mc_jar: str | Path, jar_mods: Iterable[str | Path]
) -> None:
    """
    Build a legacy modded client jar.

    The vanilla jar is unpacked, its ``META-INF`` signatures dropped, then
    each jar mod is unpacked on top in order (later mods overwrite earlier
    files) and the result re-zipped to ``output_jar``.
    """
    with tempfile.TemporaryDirectory(prefix="minecraft_jar") as tmp:
        work_dir = Path(tmp)
        extract_zip(mc_jar, work_dir)

        meta_inf = work_dir / "META-INF"
        if meta_inf.exists():
            shutil.rmtree(meta_inf)

        for jar_path in jar_mods:
            extract_zip(jar_path, work_dir)

        Path(output_jar).parent.mkdir(parents=True, exist_ok=True)
        create_zip(work_dir, output_jar)

    logger.info("Built modded jar %s", output_jar)


def copy_files(src_files: Iterable[str | Path], dst: str | Path) -> None:
    """Copy each file into the flat directory ``dst``."""
    dst = Path(dst)
    dst.mkdir(parents=True, exist_ok=True)
    for src in src_files:
        src = Path(src)
        shutil.copyfile(src, dst / src.name)


def remove_diff_files(
    base_dir: str | Path, old_files: Iterable[str], new_files: Iterable[str]
) -> list[str]:
    """Delete ``old_files - new_files`` under ``base_dir``; already missing files are fine."""
    base_dir = Path(base_dir)
    keep = set(new_files)
    removed = []
    for rel_path in old_files:
        if rel_path in keep:
            continue
        (base_dir / rel_path).unlink(missing_ok=True)
        removed.append(rel_path)
    return removed


class PackZip:
    """
    A CurseForge modpack zip.

    Usage::

        with PackZip("modpack.zip") as pack:
            print(pack.manifest.name, pack.manifest.minecraft.version)
            pack.copy_game_data(game_dir)
            installed = pack.list_overrides()
    """

    def __init__(self, zip_path: str | Path):
        self.zip_path = Path(zip_path)
        self._zf = zipfile.ZipFile(self.zip_path, "r")
        try:
            self.manifest = self._parse_manifest()
        except Exception:
            self._zf.close()
            raise

    def __enter__(self) -> PackZip:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self._zf.close()

    def _parse_manifest(self) -> CurseManifest:
        # manifest.json is usually at the root of the zip
        for name in self._zf.namelist():
            if name == "manifest.json" or name.endswith("/manifest.json"):
                return CurseManifest.model_validate(json.loads(self._zf.read(name)))
        raise FileNotFoundError(f"No manifest.json found in {self.zip_path}")

    def _override_entries(self) -> list[tuple[zipfile.ZipInfo, PurePosixPath]]:
        prefix = self.manifest.overrides.rstrip("/") + "/"
        infos = [info for info in self._zf.infolist() if info.filename.startswith(prefix)]
        if not infos:
            raise FileNotFoundError(f"No '{prefix}' directory in {self.zip_path}")

        entries = []
        for info in infos:
            if info.is_dir():
                continue
            rel_path = _enclosed_name(info.filename[len(prefix):])
            if rel_path is None or not rel_path.parts:
                continue
            entries.append((info, rel_path))
        return entries

    def list_overrides(self) -> list[str]:
        """Override files as paths relative to the game directory."""
        return [rel_path.as_posix() for _, rel_path in self._override_entries()]

    def copy_game_data(self, game_dir: str | Path) -> int:
        """
        Extract the overrides folder into ``game_dir``, overwriting files.

        Raises:
            FileNotFoundError: the zip has no overrides folder.
        """
        game_dir = Path(game_dir)
        count = 0
        for info, rel_path in self._override_entries():
            target = game_dir / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            with self._zf.open(info) as src, open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            count += 1
        logger.info("Extracted %d override files", count)
        return count
