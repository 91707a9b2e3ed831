"""Tests for CLI argument handling and error exits."""

from click.testing import CliRunner

from mcinstance.cli import main
from mcinstance.instance import Instance
from mcinstance.models import InstanceManifest, ModLoader, ServerInstanceManifest
from mcinstance.server import ServerInstance

NO_KEY = {"CURSEFORGE_API_KEY": ""}


def _instance(path):
    path.mkdir(parents=True, exist_ok=True)
    inst = Instance(path, InstanceManifest(mc_version="1.20.1"))
    inst.write_manifest()
    return inst


class TestCli:
    def test_help_lists_commands(self):
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in (
            "create", "loaders", "install-zip", "install-pack", "install-mod", "search", "launch", "server"
        ):
            assert command in result.output

    def test_create_existing_instance(self, tmp_path):
        _instance(tmp_path / "inst")
        result = CliRunner().invoke(main, ["create", str(tmp_path / "inst"), "1.20.1"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_install_zip_requires_api_key(self, tmp_path):
        _instance(tmp_path / "inst")
        zip_path = tmp_path / "pack.zip"
        zip_path.write_bytes(b"PK")
        result = CliRunner().invoke(
            main, ["install-zip", str(tmp_path / "inst"), str(zip_path)], env=NO_KEY
        )
        assert result.exit_code == 1
        assert "API key required" in result.output

    def test_launch_missing_instance(self, tmp_path):
        result = CliRunner().invoke(main, ["launch", str(tmp_path)])
        assert result.exit_code == 1
        assert "Error" in result.output


class _FakeProcess:
    pid = 4242

    def __init__(self, cmd, cwd, env):
        self.cmd = cmd
        self.cwd = cwd

    def wait(self):
        return 0


class TestServerCli:
    def _server(self, path, **manifest):
        path.mkdir(parents=True, exist_ok=True)
        inst = ServerInstance(path, ServerInstanceManifest(mc_version="1.20.1", **manifest))
        inst.write_manifest()
        return inst

    def test_help_lists_server_commands(self):
        result = CliRunner().invoke(main, ["server", "--help"])
        assert result.exit_code == 0
        for command in ("create", "install-pack", "launch"):
            assert command in result.output

    def test_create_existing_server(self, tmp_path):
        self._server(tmp_path / "srv")
        result = CliRunner().invoke(main, ["server", "create", str(tmp_path / "srv"), "1.20.1"])
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_install_pack_requires_api_key(self, tmp_path):
        self._server(tmp_path / "srv")
        result = CliRunner().invoke(
            main, ["server", "install-pack", str(tmp_path / "srv"), "96", "100"], env=NO_KEY
        )
        assert result.exit_code == 1
        assert "API key required" in result.output

    def test_launch_missing_server(self, tmp_path):
        result = CliRunner().invoke(main, ["server", "launch", str(tmp_path)])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_launch_forge_server(self, tmp_path, monkeypatch):
        spawned = []

        def fake_popen(cmd, cwd, env):
            spawned.append(_FakeProcess(cmd, cwd, env))
            return spawned[-1]

        monkeypatch.setattr("mcinstance.launch.subprocess.Popen", fake_popen)
        monkeypatch.setattr("mcinstance.server.env.get_host_os", lambda: "linux")
        inst = self._server(tmp_path / "srv", mod_loader=ModLoader.parse("forge-47.2.0"))

        result = CliRunner().invoke(main, ["server", "launch", str(tmp_path / "srv")])
        assert result.exit_code == 0, result.output
        assert "pid 4242" in result.output
        assert spawned[0].cmd == [
            "java",
            "@libraries/net/minecraftforge/forge/1.20.1-47.2.0/unix_args.txt",
            "nogui",
        ]
        assert spawned[0].cwd == inst.server_dir
        assert (inst.server_dir / "eula.txt").read_text() == "eula=true"
