"""Integration test fixtures: throwaway git repositories."""

import os
import shutil
import subprocess
from pathlib import Path

import pytest

GIT_ENV = {
    "GIT_AUTHOR_NAME": "Test",
    "GIT_AUTHOR_EMAIL": "test@example.org",
    "GIT_COMMITTER_NAME": "Test",
    "GIT_COMMITTER_EMAIL": "test@example.org",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def git(*args: str, cwd: Path) -> str:
    completed = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
        env={**os.environ, **GIT_ENV},
    )
    return completed.stdout.strip()


@pytest.fixture
def upstream(tmp_path: Path) -> dict:
    """A repository with a tagged release followed by one more commit.

    Returns the repo path, its file:// URL and the commit of each state.
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo = tmp_path / "upstream"
    repo.mkdir()
    git("init", "--quiet", cwd=repo)
    (repo / "package.json").write_text('{"name": "demo", "version": "1.0.0"}\n')
    (repo / "index.js").write_text("module.exports = 1;\n")
    git("add", ".", cwd=repo)
    git("commit", "--quiet", "-m", "release 1.0.0", cwd=repo)
    git("tag", "v1.0.0", cwd=repo)
    tagged = git("rev-parse", "HEAD", cwd=repo)

    (repo / "index.js").write_text("module.exports = 2;\n")
    git("commit", "--quiet", "-am", "work after release", cwd=repo)
    head = git("rev-parse", "HEAD", cwd=repo)

    return {"path": repo, "url": repo.as_uri(), "tagged": tagged, "head": head}
