"""
CLI entry point for mcinstance.

Commands:
  - ``mcinstance create <dir> <mc_version> [--loader forge-47.2.0]``
  - ``mcinstance loaders <mc_version> [--name forge|neoforge]``
  - ``mcinstance install-zip <dir> <zipfile>``
  - ``mcinstance install-pack <dir> <pack_id> <version_id> [--curseforge] [--server]``
  - ``mcinstance install-mod <dir> <mod_id> <file_id>``
  - ``mcinstance search <term>``
  - ``mcinstance prefetch <dir>``
  - ``mcinstance launch <dir>``
  - ``mcinstance server create <dir> <mc_version> [--loader forge-47.2.0]``
  - ``mcinstance server install-pack <dir> <pack_id> <version_id> [--curseforge]``
  - ``mcinstance server launch <dir>``
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from mcinstance import env
from mcinstance.api import CurseForgeAPI, ModpacksAPI
from mcinstance.archive import PackZip
from mcinstance.client import AssetClient
from mcinstance.errors import LauncherError
from mcinstance.fetcher import AssetFetcher
from mcinstance.installer import FileDownload, ModpackInstaller
from mcinstance.instance import Instance
from mcinstance.launch import PlayerProfile
from mcinstance.models import (
    CurseForgePackId,
    CurseZipPackId,
    FtbPackId,
    ModLoader,
    ModLoaderName,
    ModpackId,
    ModpackVersionManifest,
)
from mcinstance.mods import ModsManager
from mcinstance.progress import TqdmProgress
from mcinstance.resolver import VersionResolver
from mcinstance.server import ServerInstance


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _run(coro) -> None:
    """Run a command coroutine; launcher errors end the command with exit code 1."""
    try:
        asyncio.run(coro)
    except LauncherError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _load_instance(instance_dir: str, cls=Instance):
    try:
        return cls.load(instance_dir)
    except LauncherError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _require_api_key(ctx: click.Context) -> str:
    api_key = ctx.obj["api_key"]
    if not api_key:
        click.echo("Error: CurseForge API key required. Set CURSEFORGE_API_KEY or use --api-key.", err=True)
        sys.exit(1)
    return api_key


def _report_blocked(blocked: list[FileDownload]) -> None:
    if not blocked:
        return
    click.echo(f"\n  {len(blocked)} files must be downloaded manually into {env.get_downloads_dir()}:")
    for f in blocked:
        click.echo(f"    {f.file_name}  {f.url}")


async def _fetch_pack(pack_id: int, version_id: int, curseforge: bool) -> ModpackVersionManifest:
    async with ModpacksAPI() as packs:
        if curseforge:
            return await packs.get_curse_modpack(pack_id, version_id)
        return await packs.get_ftb_modpack(pack_id, version_id)


def _pack_id(pack_id: int, version_id: int, curseforge: bool) -> ModpackId:
    if curseforge:
        return CurseForgePackId(mod_id=pack_id, version=str(version_id))
    return FtbPackId(pack_id=pack_id, version=str(version_id))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--api-key", envvar="CURSEFORGE_API_KEY", default="", help="CurseForge API key.")
@click.option("--data-dir", envvar="MCINSTANCE_DATA_HOME", default=None, type=click.Path(), help="Shared data directory.")
@click.pass_context
def main(ctx: click.Context, verbose: bool, api_key: str, data_dir: Optional[str]) -> None:
    """mcinstance: Create, install modpacks into, and launch Minecraft instances."""
    _setup_logging(verbose)
    if data_dir:
        env.set_data_dir(data_dir)
    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["verbose"] = verbose


@main.command()
@click.argument("instance_dir", type=click.Path())
@click.argument("mc_version")
@click.option("--loader", "-l", default=None, help="Mod loader id, e.g. forge-47.2.0 or neoforge-21.1.90.")
def create(instance_dir: str, mc_version: str, loader: Optional[str]) -> None:
    """Create a new instance."""
    if Instance.exists(instance_dir):
        click.echo(f"Error: instance already exists at {instance_dir}", err=True)
        sys.exit(1)

    async def run():
        mod_loader = ModLoader.parse(loader) if loader else None
        async with AssetClient() as client:
            instance = await Instance.create(
                instance_dir, mc_version, mod_loader, VersionResolver(client)
            )
        click.echo(f"\n✓ Created instance at {instance.dir}")
        click.echo(f"  Minecraft: {mc_version}")
        if mod_loader:
            click.echo(f"  Loader:    {mod_loader}")

    _run(run())


@main.command()
@click.argument("mc_version")
@click.option("--name", "-n", "loader_name", default="forge", type=click.Choice(["forge", "neoforge"]), help="Mod loader.")
@click.option("--limit", default=20, help="Max versions to list.")
def loaders(mc_version: str, loader_name: str, limit: int) -> None:
    """List mod loader versions for a Minecraft version, newest first."""

    async def run():
        async with AssetClient() as client:
            versions = await VersionResolver(client).list_loader_versions(
                mc_version, ModLoaderName.parse(loader_name)
            )
        if not versions:
            click.echo(f"No {loader_name} versions found for Minecraft {mc_version}.")
            return
        for v in versions[:limit]:
            recommended = " (recommended)" if v.recommended else ""
            click.echo(f"  {loader_name}-{v.version}{recommended}")

    _run(run())


@main.command("install-zip")
@click.argument("instance_dir", type=click.Path(exists=True, file_okay=False))
@click.argument("zipfile", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def install_zip(ctx: click.Context, instance_dir: str, zipfile: str) -> None:
    """Install a CurseForge modpack ZIP into an instance."""
    api_key = _require_api_key(ctx)
    instance = _load_instance(instance_dir)

    async def run():
        with PackZip(zipfile) as pack:
            mod_loader = pack.manifest.minecraft.get_mod_loader()
            async with CurseForgeAPI(api_key=api_key) as api, AssetClient() as client:
                installer = ModpackInstaller(instance.game_dir, api, client)
                installed, blocked = await installer.install_pack_zip(pack, TqdmProgress())

            instance.set_versions(pack.manifest.minecraft.version, mod_loader)
            removed = instance.record_modpack(CurseZipPackId(file_name=Path(zipfile).name), installed)
            click.echo(f"\n✓ Installed '{pack.manifest.name}' v{pack.manifest.version}")
            click.echo(f"  Files: {len(installed)} ({len(removed)} stale files removed)")
        _report_blocked(blocked)

    _run(run())


@main.command("install-pack")
@click.argument("instance_dir", type=click.Path(exists=True, file_okay=False))
@click.argument("pack_id", type=int)
@click.argument("version_id", type=int)
@click.option("--curseforge", is_flag=True, help="PACK_ID is a CurseForge project id (via modpacks.ch).")
@click.option("--server", is_flag=True, help="Leave out client-only files.")
@click.pass_context
def install_pack(
    ctx: click.Context, instance_dir: str, pack_id: int, version_id: int, curseforge: bool, server: bool
) -> None:
    """Install an FTB or CurseForge pack version from modpacks.ch."""
    api_key = _require_api_key(ctx)
    instance = _load_instance(instance_dir)

    async def run():
        pack = await _fetch_pack(pack_id, version_id, curseforge)
        async with CurseForgeAPI(api_key=api_key) as api, AssetClient() as client:
            installer = ModpackInstaller(instance.game_dir, api, client)
            installed, blocked = await installer.install_pack(pack, server, TqdmProgress())

        instance.set_versions(pack.get_minecraft_version(), pack.get_mod_loader())
        removed = instance.record_modpack(_pack_id(pack_id, version_id, curseforge), installed)
        click.echo(f"\n✓ Installed '{pack.name}'")
        click.echo(f"  Files: {len(installed)} ({len(removed)} stale files removed)")
        _report_blocked(blocked)

    _run(run())


@main.command("install-mod")
@click.argument("instance_dir", type=click.Path(exists=True, file_okay=False))
@click.argument("mod_id", type=int)
@click.argument("file_id", type=int)
@click.pass_context
def install_mod(ctx: click.Context, instance_dir: str, mod_id: int, file_id: int) -> None:
    """Install a CurseForge file into an instance, replacing the mod's current file."""
    api_key = _require_api_key(ctx)
    instance = _load_instance(instance_dir)
    instance.mods_dir.mkdir(parents=True, exist_ok=True)

    async def run():
        async with CurseForgeAPI(api_key=api_key) as api, AssetClient() as client:
            manager = await ModsManager.load_curseforge_mods(instance.mods_dir, api)
            installer = ModpackInstaller(instance.game_dir, api, client)
            blocked = await manager.install_mod(mod_id, file_id, installer, TqdmProgress())
        if not blocked:
            click.echo(f"\n✓ Installed file {file_id} of mod {mod_id}")
        _report_blocked(blocked)

    _run(run())


@main.command()
@click.argument("term")
@click.option("--limit", "-n", default=20, help="Max results (the API caps this at 50).")
def search(term: str, limit: int) -> None:
    """Search FTB and CurseForge modpacks on modpacks.ch."""

    async def run():
        async with ModpacksAPI() as packs:
            results = await packs.search_modpacks(term, limit)
            if not results.pack_ids and not results.curseforge_ids:
                click.echo("No results found.")
                return
            for pack_id in results.pack_ids:
                pack = await packs.get_ftb_modpack_versions(pack_id)
                latest = pack.versions[-1].version_id if pack.versions else "-"
                click.echo(f"  [ftb {pack.pack_id}] {pack.name}  (latest version {latest})")
            for pack_id in results.curseforge_ids:
                pack = await packs.get_curse_modpack_versions(pack_id)
                latest = pack.versions[-1].version_id if pack.versions else "-"
                click.echo(f"  [curseforge {pack.pack_id}] {pack.name}  (latest version {latest})")

    _run(run())


@main.command()
@click.argument("instance_dir", type=click.Path(exists=True, file_okay=False))
def prefetch(instance_dir: str) -> None:
    """Resolve and download everything an instance needs, without launching."""
    instance = _load_instance(instance_dir)

    async def run():
        async with AssetClient() as client:
            prepared = await instance.prepare(
                VersionResolver(client), AssetFetcher(client), TqdmProgress()
            )
        click.echo(f"\n✓ Minecraft {prepared.game_manifest.id} ready")

    _run(run())


@main.command()
@click.argument("instance_dir", type=click.Path(exists=True, file_okay=False))
@click.option("--player", default=lambda: env.get_user_name(), help="Player name.")
@click.option("--uuid", "player_uuid", default="00000000000000000000000000000000", help="Player UUID.")
@click.option("--access-token", default="0", envvar="MINECRAFT_ACCESS_TOKEN", help="Minecraft access token.")
def launch(instance_dir: str, player: str, player_uuid: str, access_token: str) -> None:
    """Launch an instance and wait for the game to exit."""
    instance = _load_instance(instance_dir)
    profile = PlayerProfile(name=player, uuid=player_uuid, access_token=access_token)

    async def run():
        async with AssetClient() as client:
            process = await instance.launch(
                profile, VersionResolver(client), AssetFetcher(client), TqdmProgress()
            )
        click.echo(f"✓ Started Minecraft (pid {process.pid})")
        process.wait()

    _run(run())


@main.group("server")
def server_group() -> None:
    """Create, install modpacks into, and run dedicated servers."""


@server_group.command("create")
@click.argument("instance_dir", type=click.Path())
@click.argument("mc_version")
@click.option("--loader", "-l", default=None, help="Mod loader id, e.g. forge-47.2.0 or neoforge-21.1.90.")
def server_create(instance_dir: str, mc_version: str, loader: Optional[str]) -> None:
    """Create a server instance and install the server into it."""
    if ServerInstance.exists(instance_dir):
        click.echo(f"Error: instance already exists at {instance_dir}", err=True)
        sys.exit(1)

    async def run():
        mod_loader = ModLoader.parse(loader) if loader else None
        async with AssetClient() as client:
            instance = await ServerInstance.create(
                instance_dir,
                mc_version,
                mod_loader,
                VersionResolver(client),
                AssetFetcher(client),
                TqdmProgress(unit="B"),
            )
        click.echo(f"\n✓ Created server at {instance.server_dir}")
        click.echo(f"  Minecraft: {mc_version}")
        if mod_loader:
            click.echo(f"  Loader:    {mod_loader}")

    _run(run())


@server_group.command("install-pack")
@click.argument("instance_dir", type=click.Path(exists=True, file_okay=False))
@click.argument("pack_id", type=int)
@click.argument("version_id", type=int)
@click.option("--curseforge", is_flag=True, help="PACK_ID is a CurseForge project id (via modpacks.ch).")
@click.pass_context
def server_install_pack(
    ctx: click.Context, instance_dir: str, pack_id: int, version_id: int, curseforge: bool
) -> None:
    """Install the server files of an FTB or CurseForge pack version."""
    api_key = _require_api_key(ctx)
    instance = _load_instance(instance_dir, ServerInstance)

    async def run():
        pack = await _fetch_pack(pack_id, version_id, curseforge)
        mc_version, mod_loader = pack.get_minecraft_version(), pack.get_mod_loader()

        async with CurseForgeAPI(api_key=api_key) as api, AssetClient() as client:
            if (mc_version, mod_loader) != (instance.manifest.mc_version, instance.manifest.mod_loader):
                # the pack targets another server version
                instance.set_versions(mc_version, mod_loader)
                await instance.install_server(
                    VersionResolver(client), AssetFetcher(client), TqdmProgress(unit="B")
                )
            installer = ModpackInstaller(instance.server_dir, api, client)
            installed, blocked = await installer.install_pack(pack, True, TqdmProgress())

        removed = instance.record_modpack(_pack_id(pack_id, version_id, curseforge), installed)
        click.echo(f"\n✓ Installed '{pack.name}' server files")
        click.echo(f"  Files: {len(installed)} ({len(removed)} stale files removed)")
        _report_blocked(blocked)

    _run(run())


@server_group.command("launch")
@click.argument("instance_dir", type=click.Path(exists=True, file_okay=False))
def server_launch(instance_dir: str) -> None:
    """Start a server instance and wait for it to stop."""
    instance = _load_instance(instance_dir, ServerInstance)
    process = instance.launch()
    click.echo(f"✓ Started server (pid {process.pid})")
    process.wait()


if __name__ == "__main__":
    main()
