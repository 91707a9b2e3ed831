"""
Game process command line.

Arguments are collected with ``${name}`` placeholders (as they appear in the
game manifests) and expanded from the launch context right before spawning.
Placeholders without a value are passed through verbatim.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from string import Template
from typing import Iterable, Optional

from mcinstance.libraries import dedup_libs
from mcinstance.manifests import (
    CurrentDistribution,
    GameArgsIndex,
    GameManifest,
    LegacyDistribution,
    LoaderManifest,
)
from mcinstance.rules import RulesContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlayerProfile:
    name: str
    uuid: str
    access_token: str = "0"


# ── Argument composition ───────────────────────────────────────────

LIBRARY_PATH_ARG = "-Djava.library.path=${natives_directory}"
CLASSPATH_ARGS = ("-cp", "${classpath}")

LEGACY_LOADER_JVM_ARGS = (
    "-Dminecraft.applet.TargetDirectory=${game_directory}",
    LIBRARY_PATH_ARG,
    "-Dfml.ignoreInvalidMinecraftCertificates=true",
    "-Dfml.ignorePatchDiscrepancies=true",
)


def _split_args(args: Optional[str]) -> list[str]:
    return args.split(" ") if args else []


def compose_arguments(
    game_manifest: GameManifest,
    loader_manifest: Optional[LoaderManifest] = None,
    ctx: Optional[RulesContext] = None,
) -> list[str]:
    """
    JVM and game arguments, placeholders unexpanded.

    * legacy Forge: fixed FML system properties, vanilla main class and
      ``minecraftArguments``
    * current Forge / NeoForge: loader main class, loader arguments falling
      back to vanilla ``minecraftArguments``
    * vanilla 1.13+: rule-matched ``arguments.jvm`` and ``arguments.game``
    * older vanilla: library path and classpath flags are added, since those
      manifests carry no JVM arguments
    """
    args: list[str] = []

    if loader_manifest is not None:
        dist = loader_manifest.dist
        if isinstance(dist, LegacyDistribution):
            args.extend(LEGACY_LOADER_JVM_ARGS)
            args.extend(CLASSPATH_ARGS)
            args.append(game_manifest.main_class)
            args.extend(_split_args(game_manifest.minecraft_arguments))
        else:
            args.append(LIBRARY_PATH_ARG)
            args.extend(CLASSPATH_ARGS)
            args.append(dist.main_class)
            args.extend(
                _split_args(dist.minecraft_arguments or game_manifest.minecraft_arguments)
            )

        if loader_manifest.tweakers:
            args.extend(["--tweakClass", loader_manifest.tweakers[0]])

    elif game_manifest.arguments is not None:
        args.extend(GameArgsIndex.matched(game_manifest.arguments.jvm, ctx))
        args.append(game_manifest.main_class)
        args.extend(GameArgsIndex.matched(game_manifest.arguments.game, ctx))

    else:
        args.append(LIBRARY_PATH_ARG)
        args.extend(CLASSPATH_ARGS)
        args.append(game_manifest.main_class)
        args.extend(_split_args(game_manifest.minecraft_arguments))

    return args


def compose_classpath(
    main_jar: str,
    game_manifest: GameManifest,
    loader_manifest: Optional[LoaderManifest],
    libs_dir: Path,
    ctx: Optional[RulesContext] = None,
) -> str:
    """
    Deduplicated classpath: the client jar, every rule-matching library
    artifact, then the libraries of a current loader distribution.

    ``main_jar`` may be absolute (modded or custom jars); joining keeps it so.
    """
    libs = [main_jar]
    libs.extend(
        lib.downloads.artifact.path
        for lib in game_manifest.libraries
        if lib.has_rules_match(ctx) and lib.downloads.artifact is not None
    )
    if loader_manifest is not None and isinstance(loader_manifest.dist, CurrentDistribution):
        libs.extend(lib.asset_path() for lib in loader_manifest.dist.libraries)

    return os.pathsep.join(str(Path(libs_dir) / path) for path in dedup_libs(libs))


# ── Process ────────────────────────────────────────────────────────


class LaunchCommand:
    """
    Usage::

        cmd = LaunchCommand(game_dir, java_path="/usr/bin/java")
        cmd.arg_ctx("natives_directory", "/tmp/natives")
        cmd.args(["-Djava.library.path=${natives_directory}", "net.minecraft.client.Main"])
        process = cmd.spawn()
    """

    def __init__(
        self,
        launch_dir: str | Path,
        java_path: Optional[str] = None,
        java_args: Optional[list[str]] = None,
        java_env: Optional[dict[str, str]] = None,
    ):
        self.launch_dir = Path(launch_dir)
        self.java_path = java_path or "java"
        self.java_args = list(java_args or [])
        self.java_env = dict(java_env or {})
        self.ctx: dict[str, str] = {}
        self._args: list[str] = []

    def arg_ctx(self, key: str, value: str) -> LaunchCommand:
        self.ctx[key] = str(value)
        return self

    def arg(self, value: str) -> LaunchCommand:
        self._args.append(value)
        return self

    def args(self, values: Iterable[str]) -> LaunchCommand:
        self._args.extend(values)
        return self

    def expanded_args(self) -> list[str]:
        return [Template(a).safe_substitute(self.ctx) for a in self._args]

    def command_line(self) -> list[str]:
        return [self.java_path, *self.java_args, *self.expanded_args()]

    def spawn(self) -> subprocess.Popen:
        # game logs land in the working directory
        self.launch_dir.mkdir(parents=True, exist_ok=True)
        cmd = self.command_line()
        logger.info("Launching %s in %s", cmd[0], self.launch_dir)
        logger.debug("Command line: %s", cmd)
        return subprocess.Popen(
            cmd,
            cwd=self.launch_dir,
            env={**os.environ, **self.java_env},
        )
