"""
Unit tests for GitRefResolver.

Tests the ref ladder (gitHead, version tag, v-tag, default branch) and the
repository checks that make a version not applicable.
"""

import pytest

from reprogistry.core.exceptions import CommandError, NoRepositoryDeclared, UnsupportedSourceHost
from reprogistry.services.reproduction.ref_resolver import GitRefResolver

SHA = "0123456789abcdef0123456789abcdef01234567"


def ls_remote(*tags: str) -> str:
    return "".join(f"{'a' * 40}\trefs/tags/{tag}\n" for tag in tags)


class TestLocate:
    """Tests for repository location checks."""

    def test_no_repository(self, runner, make_record):
        resolver = GitRefResolver(runner)
        with pytest.raises(NoRepositoryDeclared):
            resolver.locate(make_record(repository=None))

    def test_unsupported_host(self, runner, make_record):
        resolver = GitRefResolver(runner)
        record = make_record(repository="https://gitlab.com/example/demo.git")
        with pytest.raises(UnsupportedSourceHost, match="No source tracking available for demo@1.0.0"):
            resolver.locate(record)

    def test_monorepo_directory(self, runner, make_record):
        resolver = GitRefResolver(runner)
        record = make_record(
            repository={"type": "git", "url": "https://github.com/example/mono.git", "directory": "packages/demo"}
        )
        assert resolver.locate(record) == ("https://github.com/example/mono.git", "packages/demo")

    def test_forge_host_is_configurable(self, runner, make_record):
        resolver = GitRefResolver(runner, forge_host="gitlab.com")
        record = make_record(repository="https://gitlab.com/example/demo.git")
        assert resolver.locate(record)[0] == "https://gitlab.com/example/demo.git"


class TestResolve:
    """Tests for the ref ladder."""

    def test_git_head_wins_without_network(self, runner, make_record):
        descriptor = GitRefResolver(runner).resolve(make_record(git_head=SHA))

        assert descriptor.ref == SHA
        assert descriptor.ref_source == "git-head"
        assert descriptor.pinned is True
        assert descriptor.canonical_spec == f"github:example/demo#{SHA}"
        assert runner.calls == []

    def test_exact_version_tag(self, runner, make_record):
        runner.on("ls-remote --tags", stdout=ls_remote("1.0.0", "v1.0.0"))
        descriptor = GitRefResolver(runner).resolve(make_record(git_head=None))

        assert descriptor.ref == "1.0.0"
        assert descriptor.ref_source == "tag"

    def test_v_tag(self, runner, make_record):
        runner.on("ls-remote --tags", stdout=ls_remote("v1.0.0"))
        descriptor = GitRefResolver(runner).resolve(make_record(git_head=None))

        assert descriptor.ref == "v1.0.0"
        assert descriptor.ref_source == "v-tag"
        assert descriptor.canonical_spec == "github:example/demo#v1.0.0"

    def test_tags_are_listed_once(self, runner, make_record):
        runner.on("ls-remote --tags", stdout=ls_remote("v1.0.0"))
        GitRefResolver(runner).resolve(make_record(git_head=None))

        assert len(runner.lines("ls-remote")) == 1
        assert runner.calls[0].args[-2:] == ("v1.0.0", "1.0.0")

    def test_default_branch_fallback(self, runner, make_record):
        runner.on("ls-remote --tags", stdout="")
        descriptor = GitRefResolver(runner).resolve(make_record(git_head=None))

        assert descriptor.ref == "HEAD"
        assert descriptor.ref_source == "default-branch"
        assert descriptor.pinned is False

    def test_failed_tag_lookup_falls_back(self, runner, make_record):
        runner.on("ls-remote", exit_code=128, stderr="fatal: repository not found")
        descriptor = GitRefResolver(runner).resolve(make_record(git_head=None))
        assert descriptor.ref == "HEAD"

    def test_missing_git_falls_back(self, runner, make_record):
        runner.on("ls-remote", raises=CommandError("Cannot run git"))
        descriptor = GitRefResolver(runner).resolve(make_record(git_head=None))
        assert descriptor.ref == "HEAD"

    def test_subdirectory_in_canonical_spec(self, runner, make_record):
        record = make_record(
            git_head=SHA,
            repository="https://github.com/example/mono/tree/main/packages/demo",
        )
        descriptor = GitRefResolver(runner).resolve(record)

        assert descriptor.subdirectory == "packages/demo"
        assert descriptor.canonical_spec == f"github:example/mono#{SHA}::path:packages/demo"


class TestResolveMovedRepository:
    """Tests for resolving against a repository the source moved to."""

    MOVED = "https://github.com/example/demo-moved.git"

    def test_tags_looked_up_in_moved_repository(self, runner, make_record):
        runner.on("ls-remote --tags", stdout=ls_remote("v1.0.0"))

        descriptor = GitRefResolver(runner).resolve(make_record(git_head=None), clone_url=self.MOVED)

        assert runner.calls[0].args[3] == self.MOVED
        assert descriptor.clone_url == self.MOVED
        assert descriptor.ref == "v1.0.0"
        assert descriptor.canonical_spec == "github:example/demo-moved#v1.0.0"

    def test_git_head_kept_with_moved_spec(self, runner, make_record):
        descriptor = GitRefResolver(runner).resolve(make_record(git_head=SHA), clone_url=self.MOVED)

        assert descriptor.ref == SHA
        assert descriptor.canonical_spec == f"github:example/demo-moved#{SHA}"
        assert runner.calls == []
