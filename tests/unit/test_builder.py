"""
Unit tests for the constrained build.

Tests workspace rewriting, dependency retries, package manager selection
and lockfile parsing with a scripted npm.
"""

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from reprogistry.core.exceptions import (
    DependencyInstallError,
    ManifestError,
    MissingPublishTime,
    PackError,
    TimeBoundedInstallUnsupported,
)
from reprogistry.services.reproduction.builder import (
    ConstrainedBuilder,
    remove_dependency,
    rewrite_workspace_dependencies,
    transitive_dependencies,
)
from reprogistry.services.reproduction.toolchain import Toolchain, ToolchainMatcher

PUBLISHED = "2020-01-01T00:00:00.000Z"


def write_manifest(package_dir: Path, **fields) -> None:
    data = {"name": "demo", "version": "1.0.0", **fields}
    (package_dir / "package.json").write_text(json.dumps(data, indent=2))


def read_manifest(package_dir: Path) -> dict:
    return json.loads((package_dir / "package.json").read_text())


def pack_effect(filename: str = "demo-1.0.0.tgz"):
    """Simulate `npm pack --pack-destination <dir>` writing a tarball."""

    def effect(call):
        dest = Path(call.args[call.args.index("--pack-destination") + 1])
        (dest / filename).write_bytes(b"tarball")

    return effect


@pytest.fixture
def package_dir(tmp_path: Path) -> Path:
    path = tmp_path / "src"
    path.mkdir()
    write_manifest(path, dependencies={"left-pad": "^1.0.0"})
    return path


@pytest.fixture
def matcher():
    matcher = MagicMock(spec=ToolchainMatcher)
    matcher.npm_version.return_value = "6.14.18"
    matcher.active.side_effect = lambda requested=None: Toolchain(requested=requested, active_version="20.11.0")
    return matcher


@pytest.fixture
def builder(runner, matcher) -> ConstrainedBuilder:
    return ConstrainedBuilder(runner, matcher)


class TestManifestHelpers:
    """Tests for package.json rewriting."""

    def test_workspace_specifiers_become_star(self, package_dir):
        write_manifest(
            package_dir,
            dependencies={"a": "workspace:*", "b": "^1.0.0"},
            devDependencies={"c": "workspace:^2.0.0"},
        )
        assert sorted(rewrite_workspace_dependencies(package_dir)) == ["a", "c"]

        data = read_manifest(package_dir)
        assert data["dependencies"] == {"a": "*", "b": "^1.0.0"}
        assert data["devDependencies"] == {"c": "*"}

    def test_no_workspace_specifiers_leaves_file_alone(self, package_dir):
        before = (package_dir / "package.json").read_text()
        assert rewrite_workspace_dependencies(package_dir) == []
        assert (package_dir / "package.json").read_text() == before

    def test_remove_dependency_from_every_map(self, package_dir):
        write_manifest(package_dir, dependencies={"x": "1"}, peerDependencies={"x": "1", "y": "2"})
        assert remove_dependency(package_dir, "x") is True

        data = read_manifest(package_dir)
        assert data["dependencies"] == {}
        assert data["peerDependencies"] == {"y": "2"}

    def test_remove_undeclared_dependency(self, package_dir):
        assert remove_dependency(package_dir, "nope") is False

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(ManifestError):
            rewrite_workspace_dependencies(tmp_path)


class TestTransitiveDependencies:
    """Tests for lockfile parsing."""

    def test_lockfile_v3(self, tmp_path):
        lockfile = tmp_path / "package-lock.json"
        lockfile.write_text(
            json.dumps(
                {
                    "lockfileVersion": 3,
                    "packages": {
                        "": {"name": "demo", "version": "1.0.0"},
                        "node_modules/b": {"version": "2.0.0"},
                        "node_modules/a": {"version": "1.0.0"},
                        "node_modules/a/node_modules/b": {"version": "1.5.0"},
                        "node_modules/jest": {"version": "29.0.0", "dev": True},
                        "node_modules/linked": {"link": True},
                        "node_modules/@scope/c": {"version": "3.0.0"},
                    },
                }
            )
        )
        assert transitive_dependencies(lockfile) == ["@scope/c@3.0.0", "a@1.0.0", "b@1.5.0", "b@2.0.0"]

    def test_lockfile_v1(self, tmp_path):
        lockfile = tmp_path / "package-lock.json"
        lockfile.write_text(
            json.dumps(
                {
                    "lockfileVersion": 1,
                    "dependencies": {
                        "a": {"version": "1.0.0", "dependencies": {"b": {"version": "1.5.0"}}},
                        "mocha": {"version": "5.0.0", "dev": True},
                    },
                }
            )
        )
        assert transitive_dependencies(lockfile) == ["a@1.0.0", "b@1.5.0"]

    def test_missing_lockfile(self, tmp_path):
        assert transitive_dependencies(tmp_path / "package-lock.json") is None


class TestBuild:
    """Tests for the full constrained build."""

    def test_happy_path(self, builder, runner, package_dir, tmp_path):
        runner.on("npm pack", stdout='[{"filename": "demo-1.0.0.tgz", "integrity": "sha512-abc"}]', effect=pack_effect())
        (package_dir / "package-lock.json").write_text(
            json.dumps({"lockfileVersion": 2, "packages": {"node_modules/left-pad": {"version": "1.3.0"}}})
        )

        output = builder.build(package_dir, publish_time=PUBLISHED, toolchain=Toolchain(), dest_dir=tmp_path / "out")

        assert output.tarball == tmp_path / "out" / "demo-1.0.0.tgz"
        assert output.tarball.exists()
        assert output.integrity == "sha512-abc"
        assert output.npm_version == "6.14.18"
        assert output.strategy == "npm:6.14.18"
        assert output.transitive_dependencies == ["left-pad@1.3.0"]

        install = next(c for c in runner.calls if "npm install" in c.line)
        assert f"--before={PUBLISHED}" in install.args
        assert "--ignore-scripts" in install.args
        assert install.env["NPM_CONFIG_BEFORE"] == PUBLISHED
        assert install.cwd == package_dir

    def test_pack_puts_local_bin_on_path(self, builder, runner, package_dir, tmp_path):
        runner.on("npm pack", stdout='[{"filename": "demo-1.0.0.tgz"}]', effect=pack_effect())
        builder.build(package_dir, publish_time=PUBLISHED, toolchain=Toolchain(), dest_dir=tmp_path / "out")

        pack = next(c for c in runner.calls if "npm pack" in c.line)
        assert pack.env["PATH"].startswith(str(package_dir / "node_modules" / ".bin"))

    def test_integrity_computed_when_not_reported(self, builder, runner, package_dir, tmp_path):
        runner.on("npm pack", stdout="demo-1.0.0.tgz", effect=pack_effect())
        output = builder.build(package_dir, publish_time=PUBLISHED, toolchain=Toolchain(), dest_dir=tmp_path / "out")
        assert output.integrity.startswith("sha512-")

    def test_old_npm_packs_into_package_dir(self, builder, runner, package_dir, tmp_path):
        def write_local(call):
            (package_dir / "demo-1.0.0.tgz").write_bytes(b"tarball")

        runner.on("npm pack", stdout="demo-1.0.0.tgz\n", effect=write_local)
        output = builder.build(package_dir, publish_time=PUBLISHED, toolchain=Toolchain(), dest_dir=tmp_path / "out")

        assert output.tarball == tmp_path / "out" / "demo-1.0.0.tgz"
        assert not (package_dir / "demo-1.0.0.tgz").exists()

    def test_workspace_dependencies_rewritten_before_install(self, builder, runner, package_dir, tmp_path):
        write_manifest(package_dir, dependencies={"sibling": "workspace:*"})
        runner.on("npm pack", stdout='[{"filename": "demo-1.0.0.tgz"}]', effect=pack_effect())

        builder.build(package_dir, publish_time=PUBLISHED, toolchain=Toolchain(), dest_dir=tmp_path / "out")
        assert read_manifest(package_dir)["dependencies"] == {"sibling": "*"}

    def test_missing_publish_time(self, builder, runner, package_dir, tmp_path):
        with pytest.raises(MissingPublishTime):
            builder.build(package_dir, publish_time=None, toolchain=Toolchain(), dest_dir=tmp_path)
        assert runner.calls == []

    def test_pack_failure(self, builder, runner, package_dir, tmp_path):
        runner.on("npm pack", exit_code=1, stderr="npm ERR! prepack script failed")
        with pytest.raises(PackError, match="prepack script failed"):
            builder.build(package_dir, publish_time=PUBLISHED, toolchain=Toolchain(), dest_dir=tmp_path / "out")


class TestDependencyRetries:
    """Tests for removing unpublished dependencies and retrying."""

    def test_unpublished_dependency_is_removed(self, builder, runner, package_dir, tmp_path):
        runner.on(
            "npm install",
            exit_code=1,
            stderr="npm ERR! notarget No matching version found for left-pad@^1.0.0.",
            times=1,
        )
        runner.on("npm pack", stdout='[{"filename": "demo-1.0.0.tgz"}]', effect=pack_effect())

        output = builder.build(package_dir, publish_time=PUBLISHED, toolchain=Toolchain(), dest_dir=tmp_path / "out")

        assert output.removed_dependencies == ["left-pad@^1.0.0"]
        assert "left-pad" not in read_manifest(package_dir)["dependencies"]
        assert len(runner.lines("npm install")) == 2

    def test_unparseable_failure_reports_first_output(self, builder, runner, package_dir, tmp_path):
        runner.on("npm install", exit_code=1, stderr="npm ERR! code EACCES")

        with pytest.raises(DependencyInstallError) as exc_info:
            builder.build(package_dir, publish_time=PUBLISHED, toolchain=Toolchain(), dest_dir=tmp_path / "out")
        assert "EACCES" in exc_info.value.output
        assert len(runner.lines("npm install")) == 1

    def test_retry_limit(self, runner, matcher, package_dir, tmp_path):
        write_manifest(package_dir, dependencies={"a": "1", "b": "1", "c": "1"})
        for name in ("a", "b", "c"):
            runner.on("npm install", exit_code=1, stderr=f"No matching version found for {name}@1.", times=1)
        builder = ConstrainedBuilder(runner, matcher, max_dependency_retries=1)

        with pytest.raises(DependencyInstallError) as exc_info:
            builder.build(package_dir, publish_time=PUBLISHED, toolchain=Toolchain(), dest_dir=tmp_path / "out")
        assert "for a@1" in exc_info.value.output
        assert len(runner.lines("npm install")) == 2

    def test_dependency_not_in_manifest_stops_retrying(self, builder, runner, package_dir, tmp_path):
        runner.on("npm install", exit_code=1, stderr="No matching version found for transitive-only@2.0.0.")

        with pytest.raises(DependencyInstallError):
            builder.build(package_dir, publish_time=PUBLISHED, toolchain=Toolchain(), dest_dir=tmp_path / "out")
        assert len(runner.lines("npm install")) == 1


class TestSelectPackageManager:
    """Tests for choosing an npm that supports --before."""

    def test_matched_toolchain_preferred(self, builder, matcher):
        matched = Toolchain(node_version="14.21.3", nvm_script=Path("/nvm.sh"))
        toolchain, npm = builder.select_package_manager(matched)

        assert toolchain is matched
        assert npm == "6.14.18"
        matcher.active.assert_not_called()

    def test_old_npm_falls_back_to_active(self, builder, matcher):
        matched = Toolchain(node_version="0.12.18", requested="0.12.18", nvm_script=Path("/nvm.sh"))
        matcher.npm_version.side_effect = lambda tc: "10.2.4" if tc.is_active else "2.15.11"

        toolchain, npm = builder.select_package_manager(matched)

        assert toolchain.is_active is True
        assert npm == "10.2.4"
        assert toolchain.strategy(npm) == "npm:10.2.4 node:20.11.0!=0.12.18"
        matcher.active.assert_called_once_with("0.12.18")

    def test_no_capable_npm(self, builder, matcher, package_dir, tmp_path):
        matcher.npm_version.return_value = "4.6.1"

        with pytest.raises(TimeBoundedInstallUnsupported):
            builder.build(package_dir, publish_time=PUBLISHED, toolchain=Toolchain(), dest_dir=tmp_path)

    def test_npm_missing_entirely(self, builder, matcher):
        matcher.npm_version.return_value = None
        with pytest.raises(TimeBoundedInstallUnsupported):
            builder.select_package_manager(Toolchain())
