"""
Dedicated server instances.

A server instance is laid out like a game instance, with the server directory
in place of the game directory::

    <instance>/manifest.json
    <instance>/server/             world, mods, config, eula.txt, ...

Vanilla servers run the ``server.jar`` listed in the game manifest. Forge and
NeoForge servers are set up by running the loader's installer jar, which lays
out the server libraries together with an argument file
(``unix_args.txt`` / ``win_args.txt``) the server is started from.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Optional

from mcinstance import env
from mcinstance.fetcher import AssetFetcher
from mcinstance.instance import ManifestDir
from mcinstance.launch import LaunchCommand
from mcinstance.models import ModLoader, ModLoaderName, ServerInstanceManifest
from mcinstance.progress import Progress
from mcinstance.resolver import VersionResolver

logger = logging.getLogger(__name__)

SERVER_JAR = "server.jar"
EULA_FILE = "eula.txt"
USER_JVM_ARGS_FILE = "user_jvm_args.txt"

INSTALL_SERVER_FLAGS = {
    ModLoaderName.FORGE: "--installServer",
    ModLoaderName.NEOFORGE: "--install-server",
}


def loader_args_file(mc_version: str, mod_loader: ModLoader, os_name: Optional[str] = None) -> str:
    """Argument file the loader installer writes, relative to the server directory."""
    os_name = os_name or env.get_host_os()
    file_name = "win_args.txt" if os_name == "windows" else "unix_args.txt"
    if mod_loader.name is ModLoaderName.FORGE:
        # forge library versions carry the minecraft version, neoforge ones don't
        return f"libraries/net/minecraftforge/forge/{mc_version}-{mod_loader.version}/{file_name}"
    return f"libraries/net/neoforged/neoforge/{mod_loader.version}/{file_name}"


class ServerInstance(ManifestDir):
    """
    Usage::

        async with AssetClient() as client:
            server = await ServerInstance.create(
                "servers/skies", "1.20.1", ModLoader.parse("forge-47.2.0"),
                VersionResolver(client), AssetFetcher(client),
            )
        server.launch().wait()
    """

    manifest_model = ServerInstanceManifest

    @classmethod
    async def create(
        cls,
        instance_dir: str | Path,
        mc_version: str,
        mod_loader: Optional[ModLoader],
        resolver: VersionResolver,
        fetcher: AssetFetcher,
        progress: Optional[Progress] = None,
    ) -> ServerInstance:
        """Create a server instance and install the server into it."""
        await resolver.resolve(mc_version)
        if mod_loader is not None:
            await resolver.resolve_loader(mod_loader)

        instance_dir = Path(instance_dir)
        instance_dir.mkdir(parents=True, exist_ok=True)

        instance = cls(
            instance_dir,
            ServerInstanceManifest(mc_version=mc_version, mod_loader=mod_loader),
        )
        instance.write_manifest()
        await instance.install_server(resolver, fetcher, progress)
        logger.info("Created server instance %s (Minecraft %s)", instance.dir, mc_version)
        return instance

    # ── Directories ────────────────────────────────────────────────

    @property
    def server_dir(self) -> Path:
        return self.dir / self.manifest.server_dir

    @property
    def pack_dir(self) -> Path:
        return self.server_dir

    @property
    def mods_dir(self) -> Path:
        return self.server_dir / "mods"

    # ── Install ────────────────────────────────────────────────────

    async def install_server(
        self,
        resolver: VersionResolver,
        fetcher: AssetFetcher,
        progress: Optional[Progress] = None,
    ) -> None:
        """
        Install the server for the manifest's versions into :attr:`server_dir`.

        Raises:
            MinecraftServerNotFound: vanilla version without a server download.
            UnhandledModLoaderInstaller: the loader manifest lists no installer.
            subprocess.CalledProcessError: the loader installer failed.
        """
        self.server_dir.mkdir(parents=True, exist_ok=True)
        mod_loader = self.manifest.mod_loader

        if mod_loader is None:
            game_manifest = await resolver.resolve(self.manifest.mc_version)
            await fetcher.download_server_jar(game_manifest, self.server_dir / SERVER_JAR, progress)
            return

        loader_manifest = await resolver.resolve_loader(mod_loader)
        installer_jar = await fetcher.download_installer_jar(mod_loader, loader_manifest, progress)

        cmd = LaunchCommand(
            self.server_dir,
            java_path=self.manifest.java_path,
            java_env=self.manifest.java_env,
        )
        cmd.args(["-jar", str(installer_jar), INSTALL_SERVER_FLAGS[mod_loader.name]])
        returncode = cmd.spawn().wait()
        if returncode != 0:
            raise subprocess.CalledProcessError(returncode, cmd.command_line())
        logger.info("Installed %s server in %s", mod_loader, self.server_dir)

    # ── Launch ─────────────────────────────────────────────────────

    def accept_eula(self) -> None:
        eula = self.server_dir / EULA_FILE
        if not eula.exists():
            logger.warning("Accepting the Minecraft EULA in %s", eula)
            eula.parent.mkdir(parents=True, exist_ok=True)
            eula.write_text("eula=true", encoding="utf-8")

    def build_launch_command(self, os_name: Optional[str] = None) -> LaunchCommand:
        cmd = LaunchCommand(
            self.server_dir,
            java_path=self.manifest.java_path,
            java_args=self.manifest.java_args,
            java_env=self.manifest.java_env,
        )
        if (self.server_dir / USER_JVM_ARGS_FILE).exists():
            cmd.arg(f"@{USER_JVM_ARGS_FILE}")

        mod_loader = self.manifest.mod_loader
        if mod_loader is not None:
            cmd.arg("@" + loader_args_file(self.manifest.mc_version, mod_loader, os_name))
        else:
            cmd.args(["-jar", SERVER_JAR])

        cmd.arg("nogui")
        return cmd

    def launch(self) -> subprocess.Popen:
        self.accept_eula()
        return self.build_launch_command().spawn()
