"""
Async clients for the modpack catalogs.

* :class:`CurseForgeAPI` wraps the CurseForge v1 REST API (batch file / mod
  lookups and fingerprint matching) with API key header injection.
* :class:`ModpacksAPI` wraps the modpacks.ch public API and the FTB pack API.

Requests are issued one at a time; callers await each before the next.

Reference: https://docs.curseforge.com/
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from mcinstance import env
from mcinstance.models import (
    AddonFile,
    CurseAddon,
    FingerprintMatches,
    ModpackManifest,
    ModpackSearch,
    ModpackVersionManifest,
)

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.curseforge.com"
MINECRAFT_GAME_ID = 432
MODPACKS_CH_URL = "https://api.modpacks.ch/public"
FTB_PACK_API_URL = "https://api.feed-the-beast.com/v1/modpacks"


class CurseForgeAPI:
    """
    Async client for the CurseForge v1 API.

    Usage::

        async with CurseForgeAPI(api_key="...") as api:
            files = await api.get_files([5433036])
            mods = await api.get_mods([699872])
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or env.get_curse_api_key()
        self.api_base = api_base.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers=self._build_headers(),
            transport=transport,
        )

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def __aenter__(self) -> CurseForgeAPI:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ── Low-level helper ───────────────────────────────────────────

    async def _post(self, path: str, json_body: dict) -> Any:
        resp = await self._client.post(f"{self.api_base}{path}", json=json_body)
        resp.raise_for_status()
        return resp.json()

    # ── Batch lookups ──────────────────────────────────────────────

    async def get_files(self, file_ids: list[int]) -> list[AddonFile]:
        """
        Fetch file metadata for every id in ``file_ids``.

        CurseForge occasionally returns the same file more than once; repeated
        ``modId`` entries are dropped so the result pairs up with
        :meth:`get_mods`.
        """
        # an empty id list is a 400 bad request
        if not file_ids:
            return []

        data = await self._post("/v1/mods/files", {"fileIds": file_ids})
        files: list[AddonFile] = []
        seen: set[int] = set()
        for item in data.get("data", []):
            addon_file = AddonFile.model_validate(item)
            if addon_file.mod_id in seen:
                logger.debug("Dropping duplicate file entry for mod %d", addon_file.mod_id)
                continue
            seen.add(addon_file.mod_id)
            files.append(addon_file)
        return files

    async def get_mods(self, mod_ids: list[int]) -> list[CurseAddon]:
        if not mod_ids:
            return []

        data = await self._post("/v1/mods", {"modIds": mod_ids})
        return [CurseAddon.model_validate(item) for item in data.get("data", [])]

    # ── Fingerprint matching ───────────────────────────────────────

    async def get_fingerprint_matches(self, fingerprints: list[int]) -> FingerprintMatches:
        """Match file fingerprints against CurseForge's database."""
        data = await self._post(
            f"/v1/fingerprints/{MINECRAFT_GAME_ID}",
            {"fingerprints": fingerprints},
        )
        return FingerprintMatches.model_validate(data.get("data", {}))


class ModpacksAPI:
    """
    Async client for modpacks.ch and the FTB pack API.

    FTB packs are read from the FTB API rather than modpacks.ch: for some
    packs (e.g. FTB Skies 2) only the FTB API has correct ``clientonly``
    flags, which matter when assembling a server.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> ModpacksAPI:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _get(self, url: str, params: Optional[dict] = None) -> Any:
        resp = await self._client.get(url, params=params)
        resp.raise_for_status()
        return resp.json()

    async def get_ftb_modpack_versions(self, pack_id: int) -> ModpackManifest:
        data = await self._get(f"{FTB_PACK_API_URL}/modpack/{pack_id}")
        return ModpackManifest.model_validate(data)

    async def get_ftb_modpack(self, pack_id: int, version_id: int) -> ModpackVersionManifest:
        data = await self._get(f"{FTB_PACK_API_URL}/modpack/{pack_id}/{version_id}")
        return ModpackVersionManifest.model_validate(data)

    async def get_curse_modpack_versions(self, pack_id: int) -> ModpackManifest:
        data = await self._get(f"{MODPACKS_CH_URL}/curseforge/{pack_id}")
        return ModpackManifest.model_validate(data)

    async def get_curse_modpack(self, pack_id: int, version_id: int) -> ModpackVersionManifest:
        data = await self._get(f"{MODPACKS_CH_URL}/curseforge/{pack_id}/{version_id}")
        return ModpackVersionManifest.model_validate(data)

    async def search_modpacks(self, term: str, limit: int = 20) -> ModpackSearch:
        """
        Search FTB and CurseForge packs by name.

        The API caps ``limit`` at 50 regardless of what is requested.
        """
        data = await self._get(
            f"{MODPACKS_CH_URL}/modpack/search/{limit}", params={"term": term}
        )
        return ModpackSearch.model_validate(data)
