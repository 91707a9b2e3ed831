"""Shared fixtures: canned HTTP responses and sample manifest documents."""

from __future__ import annotations

import io
import json
import zipfile

import httpx
import pytest


class Recorder:
    """Serves canned responses by URL and records every request made."""

    def __init__(self):
        self.routes: dict[str, object] = {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = self.routes.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        if callable(body):
            return body(request)
        if isinstance(body, bytes):
            return httpx.Response(200, content=body)
        if isinstance(body, str):
            return httpx.Response(200, text=body)
        return httpx.Response(200, json=body)

    @property
    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def http() -> Recorder:
    return Recorder()


def make_zip(files: dict[str, bytes | str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buf.getvalue()


def game_manifest_data(**overrides) -> dict:
    data = {
        "id": "1.20.1",
        "assetIndex": {
            "id": "5",
            "sha1": "a" * 40,
            "size": 100,
            "totalSize": 1000,
            "url": "https://piston-meta.mojang.com/v1/packages/aaa/5.json",
        },
        "downloads": {
            "client": {
                "sha1": "c" * 40,
                "size": 10,
                "url": "https://piston-data.mojang.com/v1/objects/ccc/client.jar",
            }
        },
        "libraries": [],
        "mainClass": "net.minecraft.client.main.Main",
        "type": "release",
        "arguments": {
            "game": ["--username", "${auth_player_name}", "--version", "${version_name}"],
            "jvm": ["-Djava.library.path=${natives_directory}", "-cp", "${classpath}"],
        },
    }
    data.update(overrides)
    return {k: v for k, v in data.items() if v is not None}


def library_data(name: str, path: str, rules=None) -> dict:
    data = {
        "name": name,
        "downloads": {
            "artifact": {
                "path": path,
                "sha1": "b" * 40,
                "size": 1,
                "url": f"https://libraries.minecraft.net/{path}",
            }
        },
    }
    if rules is not None:
        data["rules"] = rules
    return data


def legacy_forge_data(mc_version: str = "1.5.2", version: str = "7.8.1.738", **extra) -> dict:
    data = {
        "formatVersion": 1,
        "uid": "net.minecraftforge",
        "name": "Forge",
        "version": version,
        "requires": [{"uid": "net.minecraft", "equals": mc_version}],
        "jarMods": [
            {
                "name": f"net.minecraftforge:forge:{version}:universal",
                "downloads": {
                    "artifact": {
                        "sha1": "d" * 40,
                        "size": 1,
                        "url": (
                            "https://files.prismlauncher.org/maven/net/minecraftforge/forge/"
                            f"{version}/forge-{version}-universal.jar"
                        ),
                    }
                },
            }
        ],
    }
    data.update(extra)
    return data


def current_forge_data(mc_version: str = "1.20.1", version: str = "47.2.0", **extra) -> dict:
    data = {
        "formatVersion": 1,
        "uid": "net.minecraftforge",
        "name": "Forge",
        "version": version,
        "requires": [{"uid": "net.minecraft", "equals": mc_version}],
        "mainClass": "io.github.zekerzhayard.forgewrapper.installer.Main",
        "libraries": [
            {"name": "org.ow2.asm:asm:9.5", "url": "https://maven.minecraftforge.net/"},
            {"name": "net.minecraftforge:forge:1.20.1-47.2.0:universal"},
        ],
    }
    data.update(extra)
    return data


def to_json(data: dict) -> str:
    return json.dumps(data)
