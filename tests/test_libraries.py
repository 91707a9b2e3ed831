"""Tests for lenient versions, maven paths and classpath deduplication."""

import pytest
import semver

from mcinstance.errors import InvalidLibraryName, InvalidLibraryPath, VersionParseError
from mcinstance.libraries import (
    SENTINEL_VERSION,
    dedup_libs,
    get_client_jar_path,
    name_to_path,
    parse_lenient,
    version_key,
)


class TestParseLenient:
    def test_full_version(self):
        assert parse_lenient("2.17.1") == semver.Version(2, 17, 1)

    def test_missing_components(self):
        assert parse_lenient("1.5") == semver.Version(1, 5, 0)
        assert parse_lenient("47") == semver.Version(47, 0, 0)

    def test_leading_v_and_zeros(self):
        assert parse_lenient("v2.0") == semver.Version(2, 0, 0)
        assert parse_lenient("01.02.03") == semver.Version(1, 2, 3)

    def test_qualifier_becomes_prerelease(self):
        v = parse_lenient("14.0-rc3")
        assert (v.major, v.minor, v.patch) == (14, 0, 0)
        assert v.prerelease == "rc3"
        assert v < semver.Version(14, 0, 0)

    def test_underscore_qualifier(self):
        assert parse_lenient("1.8.0_25").prerelease == "25"

    def test_extra_components_become_build(self):
        v = parse_lenient("1.2.3.4")
        assert str(v) == "1.2.3+4"

    def test_forge_style_version(self):
        v = parse_lenient("1.7.10-10.13.4.1566-1.7.10")
        assert str(v) == "1.7.10-10.13.4.1566-1.7.10"

    def test_beta_sorts_before_release(self):
        assert parse_lenient("2.0-beta9") < semver.Version(2, 0, 0)

    @pytest.mark.parametrize("bad", ["", "mmc2", "abc", "-1"])
    def test_unparseable(self, bad):
        with pytest.raises(VersionParseError) as exc:
            parse_lenient(bad)
        assert exc.value.version == bad

    def test_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_lenient("snapshot")


class TestDedupLibs:
    def test_keeps_highest_version(self):
        paths = [
            "org/ow2/asm/asm/9.3/asm-9.3.jar",
            "org/ow2/asm/asm/9.5/asm-9.5.jar",
            "org/ow2/asm/asm/9.1/asm-9.1.jar",
        ]
        assert dedup_libs(paths) == ["org/ow2/asm/asm/9.5/asm-9.5.jar"]

    def test_numeric_not_lexical_order(self):
        paths = [
            "net/minecraftforge/fmlcore/45.1.16/fmlcore-45.1.16.jar",
            "net/minecraftforge/fmlcore/45.1.2/fmlcore-45.1.2.jar",
        ]
        assert dedup_libs(paths) == ["net/minecraftforge/fmlcore/45.1.16/fmlcore-45.1.16.jar"]

    def test_fourth_component_compared(self):
        paths = ["a/b/1.2.3.5/b-1.2.3.5.jar", "a/b/1.2.3.4/b-1.2.3.4.jar"]
        assert dedup_libs(paths) == ["a/b/1.2.3.5/b-1.2.3.5.jar"]
        assert dedup_libs(list(reversed(paths))) == ["a/b/1.2.3.5/b-1.2.3.5.jar"]

    def test_forge_style_versions(self):
        older = "net/minecraftforge/forge/1.7.10-10.13.4.1566-1.7.10/forge-1.7.10-10.13.4.1566-1.7.10.jar"
        newer = "net/minecraftforge/forge/1.7.10-10.13.4.1614-1.7.10/forge-1.7.10-10.13.4.1614-1.7.10.jar"
        assert dedup_libs([newer, older]) == [newer]
        assert dedup_libs([older, newer]) == [newer]

    def test_later_equal_version_replaces(self):
        paths = [
            "net/minecraftforge/forge/1.0/forge-1.0.jar",
            "net/minecraftforge/forge/1.0/forge-1.0-universal.jar",
        ]
        assert dedup_libs(paths) == ["net/minecraftforge/forge/1.0/forge-1.0-universal.jar"]

    def test_first_seen_key_order(self):
        paths = [
            "com/b/lib/1.0/lib-1.0.jar",
            "com/a/lib/1.0/lib-1.0.jar",
            "com/b/lib/2.0/lib-2.0.jar",
        ]
        assert dedup_libs(paths) == [
            "com/b/lib/2.0/lib-2.0.jar",
            "com/a/lib/1.0/lib-1.0.jar",
        ]

    def test_natives_bypass_and_come_last(self):
        natives = "org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-linux.jar"
        plain = "org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1.jar"
        assert dedup_libs([natives, plain]) == [plain, natives]

    def test_natives_are_never_collapsed(self):
        paths = [
            "org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-linux.jar",
            "org/lwjgl/lwjgl/3.2.2/lwjgl-3.2.2-natives-linux.jar",
        ]
        assert dedup_libs(paths) == paths

    def test_unparseable_version_uses_sentinel(self):
        wrapper = "io/github/zekerzhayard/ForgeWrapper/mmc2/ForgeWrapper-mmc2.jar"
        newer = "io/github/zekerzhayard/ForgeWrapper/1.5.5/ForgeWrapper-1.5.5.jar"
        assert dedup_libs([wrapper, newer]) == [wrapper]
        assert SENTINEL_VERSION == semver.Version(9, 9, 9)

    def test_short_path_rejects_batch(self):
        with pytest.raises(InvalidLibraryPath) as exc:
            dedup_libs(["org/ow2/asm/asm/9.5/asm-9.5.jar", "asm.jar"])
        assert exc.value.path == "asm.jar"

    def test_idempotent(self):
        paths = [
            "org/ow2/asm/asm/9.3/asm-9.3.jar",
            "org/lwjgl/lwjgl/3.3.1/lwjgl-3.3.1-natives-linux.jar",
            "org/ow2/asm/asm/9.5/asm-9.5.jar",
            "com/google/guava/guava/31.1-jre/guava-31.1-jre.jar",
        ]
        once = dedup_libs(paths)
        assert dedup_libs(once) == once

    def test_output_is_subset_of_input(self):
        paths = [
            "a/b/1.0/b-1.0.jar",
            "a/b/2.0/b-2.0.jar",
            "a/c/1.0/c-1.0.jar",
        ]
        assert set(dedup_libs(paths)) <= set(paths)

    def test_empty(self):
        assert dedup_libs([]) == []


class TestNameToPath:
    def test_basic(self):
        assert name_to_path("org.ow2.asm:asm-tree:9.2") == (
            "org/ow2/asm/asm-tree/9.2/asm-tree-9.2.jar"
        )

    def test_classifier(self):
        assert name_to_path("net.minecraftforge:forge:1.19.4-45.1.0:universal") == (
            "net/minecraftforge/forge/1.19.4-45.1.0/forge-1.19.4-45.1.0-universal.jar"
        )

    def test_too_few_coordinates(self):
        with pytest.raises(InvalidLibraryName) as exc:
            name_to_path("org.ow2.asm:asm")
        assert exc.value.name == "org.ow2.asm:asm"


class TestClientJarPath:
    def test_path(self):
        assert get_client_jar_path("1.20.1") == (
            "com/mojang/minecraft/1.20.1/minecraft-1.20.1-client.jar"
        )


class TestVersionKey:
    def test_build_metadata_breaks_ties(self):
        assert version_key("10.13.4.1614") > version_key("10.13.4.1558")

    def test_unparseable_sorts_high(self):
        assert version_key("mmc2")[0] == SENTINEL_VERSION
        assert version_key("mmc2") > version_key("47.2.0")
