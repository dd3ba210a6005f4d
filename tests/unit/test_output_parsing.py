"""
Unit tests for git/npm/nvm output parsers.
"""

from reprogistry.utils.output_parsing import (
    MissingDependency,
    extract_node_version,
    parse_ls_remote_tags,
    parse_missing_dependency,
    parse_pack_output,
    parse_tool_version,
)


class TestExtractNodeVersion:
    """Tests for extract_node_version."""

    def test_plain_version(self):
        assert extract_node_version("v16.20.2\n") == "16.20.2"

    def test_nvm_banner_before_version(self):
        output = "Running node v0.12.18 (npm v2.15.11)\nv0.12.18\n"
        assert extract_node_version(output) == "0.12.18"

    def test_banner_only(self):
        assert extract_node_version("Running node v14.21.3 (npm v6.14.18)") == "14.21.3"

    def test_nothing(self):
        assert extract_node_version("N/A: version not installed") is None


class TestParseToolVersion:
    """Tests for parse_tool_version."""

    def test_plain(self):
        assert parse_tool_version("6.14.18\n") == "6.14.18"

    def test_last_match_wins(self):
        output = "Running node v14.21.3 (npm v6.14.18)\n6.14.18"
        assert parse_tool_version(output) == "6.14.18"

    def test_nothing(self):
        assert parse_tool_version("command not found") is None


class TestParseMissingDependency:
    """Tests for parse_missing_dependency."""

    def test_no_matching_version(self):
        output = "npm ERR! code ETARGET\nnpm ERR! notarget No matching version found for left-pad@9.9.9.\n"
        assert parse_missing_dependency(output) == MissingDependency("left-pad", "9.9.9")

    def test_scoped_no_matching_version(self):
        output = "npm ERR! notarget No matching version found for @types/node@^99.0.0."
        assert parse_missing_dependency(output) == MissingDependency("@types/node", "^99.0.0")

    def test_not_in_registry(self):
        output = "npm ERR! 404  'gone-pkg@1.0.0' is not in this registry."
        assert parse_missing_dependency(output) == MissingDependency("gone-pkg", "1.0.0")

    def test_not_in_the_npm_registry(self):
        output = "npm ERR! 404  'gone-pkg@^2' is not in the npm registry."
        assert parse_missing_dependency(output) == MissingDependency("gone-pkg", "^2")

    def test_404_get_with_encoded_scope(self):
        output = "npm ERR! 404 Not Found - GET https://registry.npmjs.org/@scope%2fgone - Not found"
        assert parse_missing_dependency(output) == MissingDependency("@scope/gone", None)

    def test_unrelated_failure(self):
        assert parse_missing_dependency("npm ERR! code EACCES\npermission denied") is None

    def test_str(self):
        assert str(MissingDependency("a", "1.0.0")) == "a@1.0.0"
        assert str(MissingDependency("a")) == "a"


class TestParsePackOutput:
    """Tests for parse_pack_output."""

    def test_json(self):
        stdout = '[{"filename": "demo-1.0.0.tgz", "integrity": "sha512-xyz"}]'
        packed = parse_pack_output(stdout)
        assert packed.filename == "demo-1.0.0.tgz"
        assert packed.integrity == "sha512-xyz"

    def test_json_after_script_noise(self):
        stdout = "> demo@1.0.0 prepack\n> tsc\n\n" + '[{"filename": "demo-1.0.0.tgz"}]'
        assert parse_pack_output(stdout).filename == "demo-1.0.0.tgz"

    def test_scoped_filename(self):
        stdout = '[{"filename": "@scope/demo-1.0.0.tgz"}]'
        assert parse_pack_output(stdout).filename == "scope-demo-1.0.0.tgz"

    def test_plain_text_from_old_npm(self):
        packed = parse_pack_output("demo-1.0.0.tgz\n")
        assert packed.filename == "demo-1.0.0.tgz"
        assert packed.integrity is None

    def test_nothing(self):
        assert parse_pack_output("") is None
        assert parse_pack_output("npm WARN something") is None


class TestParseLsRemoteTags:
    """Tests for parse_ls_remote_tags."""

    def test_tags_and_peeled_entries(self):
        output = (
            "1111111111111111111111111111111111111111\trefs/tags/v1.0.0\n"
            "2222222222222222222222222222222222222222\trefs/tags/v1.0.0^{}\n"
            "3333333333333333333333333333333333333333\trefs/tags/1.0.0\n"
            "4444444444444444444444444444444444444444\trefs/heads/main\n"
        )
        assert parse_ls_remote_tags(output) == {"v1.0.0", "1.0.0"}

    def test_empty(self):
        assert parse_ls_remote_tags("") == set()
