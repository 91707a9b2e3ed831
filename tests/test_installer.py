"""Tests for modpack installation and catalog file reconciliation."""

import asyncio
import json

import httpx
import pytest

from conftest import make_zip
from mcinstance.api import CurseForgeAPI
from mcinstance.archive import PackZip
from mcinstance.client import AssetClient
from mcinstance.errors import CurseFileListMismatch, UnknownClassId
from mcinstance.installer import FileDownload, FileType, ModpackInstaller
from mcinstance.models import AddonFile, CurseAddon, ModpackVersionManifest

FILES_URL = "https://api.curseforge.com/v1/mods/files"
MODS_URL = "https://api.curseforge.com/v1/mods"
JEI_URL = "https://edge.forgecdn.net/files/5000/1/jei.jar"


def _file(file_id, mod_id, name, url=None):
    return {"id": file_id, "modId": mod_id, "fileName": name, "fileLength": 3, "downloadUrl": url}


def _mod(mod_id, class_id=6, slug="mod"):
    return {
        "id": mod_id,
        "name": slug,
        "slug": slug,
        "classId": class_id,
        "links": {"websiteUrl": f"https://www.curseforge.com/minecraft/mc-mods/{slug}"},
    }


def _serve_catalog(http, files, mods):
    http.routes[FILES_URL] = {"data": files}
    http.routes[MODS_URL] = {"data": mods}


def _install(http, tmp_path, method, *args, **kwargs):
    async def go():
        async with CurseForgeAPI(api_key="key", transport=http.transport()) as api, AssetClient(
            transport=http.transport()
        ) as client:
            installer = ModpackInstaller(tmp_path / "game", api, client)
            return await getattr(installer, method)(*args, **kwargs)

    return asyncio.run(go())


def _pack_zip(tmp_path, files):
    manifest = {
        "name": "Pack",
        "version": "1.0",
        "minecraft": {"version": "1.20.1"},
        "files": [{"projectID": p, "fileID": f} for p, f in files],
    }
    path = tmp_path / "pack.zip"
    path.write_bytes(
        make_zip({"manifest.json": json.dumps(manifest), "overrides/config/a.toml": "a = 1"})
    )
    return path


class _RecordingProgress:
    def __init__(self):
        self.events = []

    def begin(self, label, total):
        self.events.append(("begin", label, total))

    def advance(self, current):
        self.events.append(("advance", current))

    def end(self):
        self.events.append(("end",))


class TestFileDownload:
    def test_auto_download(self):
        f = FileDownload.from_catalog(
            AddonFile.model_validate(_file(1, 10, "jei.jar", JEI_URL)),
            CurseAddon.model_validate(_mod(10)),
        )
        assert f.can_auto_download
        assert f.url == JEI_URL
        assert f.file_type is FileType.MOD
        assert f.file_size == 3

    def test_blocked_gets_manual_url(self):
        f = FileDownload.from_catalog(
            AddonFile.model_validate(_file(4242, 10, "optifine.jar")),
            CurseAddon.model_validate(_mod(10, slug="optifine")),
        )
        assert not f.can_auto_download
        assert f.url == "https://www.curseforge.com/minecraft/mc-mods/optifine/download/4242"

    @pytest.mark.parametrize(
        "class_id, file_type",
        [(6, FileType.MOD), (12, FileType.RESOURCE), (6552, FileType.SHADERS), (6945, FileType.DATAPACK)],
    )
    def test_class_ids(self, class_id, file_type):
        assert FileType.from_class_id(class_id) is file_type

    def test_datapack_dir(self):
        assert FileType.DATAPACK.value == "config/openloader/data"

    def test_unknown_class_id(self):
        with pytest.raises(UnknownClassId) as exc:
            FileType.from_class_id(4471, "pack.zip")
        assert exc.value.class_id == 4471


class TestInstallPackZip:
    def test_overrides_downloads_and_blocked(self, http, tmp_path):
        _serve_catalog(
            http,
            files=[_file(2, 20, "blocked.jar"), _file(1, 10, "jei.jar", JEI_URL)],
            mods=[_mod(10, slug="jei"), _mod(20, slug="blocked")],
        )
        http.routes[JEI_URL] = b"jei"

        with PackZip(_pack_zip(tmp_path, [(10, 1), (20, 2)])) as pack:
            installed, blocked = _install(http, tmp_path, "install_pack_zip", pack)

        game = tmp_path / "game"
        assert (game / "config" / "a.toml").read_text() == "a = 1"
        assert (game / "mods" / "jei.jar").read_bytes() == b"jei"
        assert sorted(installed) == ["config/a.toml", "mods/blocked.jar", "mods/jei.jar"]
        assert [b.file_name for b in blocked] == ["blocked.jar"]
        assert blocked[0].url.endswith("/blocked/download/2")

    def test_catalog_request_bodies(self, http, tmp_path):
        _serve_catalog(http, files=[_file(1, 10, "jei.jar", JEI_URL)], mods=[_mod(10)])
        http.routes[JEI_URL] = b"jei"

        with PackZip(_pack_zip(tmp_path, [(10, 1)])) as pack:
            _install(http, tmp_path, "install_pack_zip", pack)

        files_req, mods_req = http.requests[:2]
        assert json.loads(files_req.content) == {"fileIds": [1]}
        assert json.loads(mods_req.content) == {"modIds": [10]}
        assert files_req.headers["x-api-key"] == "key"

    def test_all_blocked_still_creates_mods_dir(self, http, tmp_path):
        _serve_catalog(http, files=[_file(1, 10, "a.jar")], mods=[_mod(10)])
        with PackZip(_pack_zip(tmp_path, [(10, 1)])) as pack:
            _, blocked = _install(http, tmp_path, "install_pack_zip", pack)
        assert len(blocked) == 1
        assert (tmp_path / "game" / "mods").is_dir()

    def test_list_length_mismatch(self, http, tmp_path):
        _serve_catalog(http, files=[_file(1, 10, "a.jar", JEI_URL)], mods=[])
        with PackZip(_pack_zip(tmp_path, [(10, 1)])) as pack:
            with pytest.raises(CurseFileListMismatch):
                _install(http, tmp_path, "install_pack_zip", pack)

    def test_unknown_class_id(self, http, tmp_path):
        _serve_catalog(http, files=[_file(1, 10, "a.zip", JEI_URL)], mods=[_mod(10, class_id=4471)])
        with PackZip(_pack_zip(tmp_path, [(10, 1)])) as pack:
            with pytest.raises(UnknownClassId):
                _install(http, tmp_path, "install_pack_zip", pack)

    def test_existing_files_not_downloaded(self, http, tmp_path):
        _serve_catalog(http, files=[_file(1, 10, "jei.jar", JEI_URL)], mods=[_mod(10)])
        existing = tmp_path / "game" / "mods" / "jei.jar"
        existing.parent.mkdir(parents=True)
        existing.write_bytes(b"old")

        with PackZip(_pack_zip(tmp_path, [(10, 1)])) as pack:
            installed, _ = _install(http, tmp_path, "install_pack_zip", pack)
        assert JEI_URL not in http.urls
        assert "mods/jei.jar" in installed


class TestInstallPack:
    def _version(self, files):
        return ModpackVersionManifest.model_validate(
            {
                "id": 100,
                "parent": 1,
                "name": "1.0.0",
                "targets": [{"name": "minecraft", "version": "1.20.1", "type": "game"}],
                "files": files,
            }
        )

    def test_direct_and_catalog_files(self, http, tmp_path):
        version = self._version(
            [
                {"name": "options.txt", "path": "./", "url": "https://cdn/options.txt"},
                {"name": "server.dat", "path": "./", "url": "https://cdn/server.dat", "clientonly": True},
                {"name": "jei.jar", "path": "./mods/", "url": "", "curseforge": {"project": 10, "file": 1}},
            ]
        )
        http.routes["https://cdn/options.txt"] = b"fov:90"
        http.routes["https://cdn/server.dat"] = b"servers"
        http.routes[JEI_URL] = b"jei"
        _serve_catalog(http, files=[_file(1, 10, "jei.jar", JEI_URL)], mods=[_mod(10)])

        installed, blocked = _install(http, tmp_path, "install_pack", version)
        game = tmp_path / "game"
        assert (game / "options.txt").read_bytes() == b"fov:90"
        assert (game / "server.dat").exists()
        assert (game / "mods" / "jei.jar").read_bytes() == b"jei"
        assert installed == ["options.txt", "server.dat", "mods/jei.jar"]
        assert blocked == []

    def test_server_skips_clientonly(self, http, tmp_path):
        version = self._version(
            [
                {"name": "options.txt", "path": "./", "url": "https://cdn/options.txt", "clientonly": True},
                {"name": "server.properties", "path": "./", "url": "https://cdn/server.properties"},
            ]
        )
        http.routes["https://cdn/server.properties"] = b"motd=hi"

        installed, _ = _install(http, tmp_path, "install_pack", version, is_server=True)
        assert installed == ["server.properties"]
        assert "https://cdn/options.txt" not in http.urls

    def test_no_catalog_files_no_catalog_requests(self, http, tmp_path):
        version = self._version([{"name": "a.txt", "path": "config", "url": "https://cdn/a.txt"}])
        http.routes["https://cdn/a.txt"] = b"a"

        installed, blocked = _install(http, tmp_path, "install_pack", version)
        assert installed == ["config/a.txt"]
        assert http.urls == ["https://cdn/a.txt"]

    def test_existing_direct_file_skipped(self, http, tmp_path):
        version = self._version([{"name": "a.txt", "path": "config", "url": "https://cdn/a.txt"}])
        target = tmp_path / "game" / "config" / "a.txt"
        target.parent.mkdir(parents=True)
        target.write_bytes(b"mine")

        installed, _ = _install(http, tmp_path, "install_pack", version)
        assert installed == ["config/a.txt"]
        assert target.read_bytes() == b"mine"
        assert http.requests == []

    def test_nested_curse_pack(self, http, tmp_path):
        nested = make_zip(
            {
                "manifest.json": json.dumps({"name": "Nested", "files": []}),
                "overrides/kubejs/startup.js": "// startup",
            }
        )
        version = self._version(
            [{"name": "pack.zip", "type": "cf-extract", "path": "./", "url": "https://cdn/pack.zip"}]
        )
        http.routes["https://cdn/pack.zip"] = nested

        installed, _ = _install(http, tmp_path, "install_pack", version)
        assert installed == ["kubejs/startup.js"]
        assert (tmp_path / "game" / "kubejs" / "startup.js").read_text() == "// startup"
        assert not (tmp_path / "game" / "pack.zip").exists()

    def test_nested_pack_reports_bytes(self, http, tmp_path):
        nested = make_zip(
            {
                "manifest.json": json.dumps({"name": "Nested", "files": []}),
                "overrides/config/b.toml": "b = 2",
            }
        )
        version = self._version(
            [
                {"name": "pack.zip", "type": "cf-extract", "path": "./", "url": "https://cdn/pack.zip"},
                {"name": "a.txt", "path": "config", "url": "https://cdn/a.txt"},
            ]
        )
        http.routes["https://cdn/pack.zip"] = nested
        http.routes["https://cdn/a.txt"] = b"a"
        progress = _RecordingProgress()

        installed, _ = _install(http, tmp_path, "install_pack", version, progress=progress)
        assert installed == ["config/b.toml", "config/a.txt"]
        assert progress.events[0] == ("begin", "Downloading pack.zip", len(nested))
        assert progress.events[1:3] == [("advance", len(nested)), ("end",)]
        assert ("begin", "Downloading assets", 1) in progress.events

    def test_http_error_propagates(self, http, tmp_path):
        version = self._version([{"name": "a.txt", "path": "./", "url": "https://cdn/missing"}])
        with pytest.raises(httpx.HTTPStatusError):
            _install(http, tmp_path, "install_pack", version)


class TestSingleFiles:
    def test_install_curseforge_file(self, http, tmp_path):
        _serve_catalog(http, files=[_file(1, 10, "jei.jar", JEI_URL)], mods=[_mod(10)])
        http.routes[JEI_URL] = b"jei"

        blocked = _install(http, tmp_path, "install_curseforge_file", 10, 1)
        assert blocked == []
        assert (tmp_path / "game" / "mods" / "jei.jar").exists()

    def test_install_file_copies_to_type_dir(self, http, tmp_path):
        src = tmp_path / "Downloads" / "shaders.zip"
        src.parent.mkdir()
        src.write_bytes(b"shaders")
        file = FileDownload("shaders.zip", 7, FileType.SHADERS, False, "https://x/download/1")

        async def go():
            async with CurseForgeAPI(api_key="key", transport=http.transport()) as api, AssetClient(
                transport=http.transport()
            ) as client:
                return ModpackInstaller(tmp_path / "game", api, client).install_file(file, src)

        dest = asyncio.run(go())
        assert dest == tmp_path / "game" / "shaderpacks" / "shaders.zip"
        assert dest.read_bytes() == b"shaders"
