"""Tests for the diffgate command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from diffgate import __version__
from diffgate.cli import cli
from diffgate.git import GitDiffError, git_diff_command

ENV_DIFF = """diff --git a/.env b/.env
new file mode 100644
--- /dev/null
+++ b/.env
@@ -0,0 +1,2 @@
+DB_HOST=localhost
+DB_PORT=5432
"""

CLEAN_DIFF = """diff --git a/src/util.py b/src/util.py
--- a/src/util.py
+++ b/src/util.py
@@ -1,2 +1,3 @@
 def add(a, b):
-    return a+b
+    total = a + b
+    return total
"""


def large_diff(lines: int = 1001) -> str:
    body = "\n".join(f"+line {i}" for i in range(lines))
    return f"diff --git a/src/big.py b/src/big.py\n@@ -0,0 +1,{lines} @@\n{body}\n"


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """Keep config discovery and environment out of the tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(Path, "home", lambda: tmp_path / "home")
    for name in ("DIFFGATE_POLICY", "DIFFGATE_FAIL_ON", "DIFFGATE_FORMAT", "DIFFGATE_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner():
    return CliRunner()


def write(path: Path, text: str) -> str:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestCheck:
    """Test the check command."""

    def test_clean_diff_allows(self, runner, tmp_path):
        """Test an ordinary change exits 0."""
        diff = write(tmp_path / "clean.diff", CLEAN_DIFF)

        result = runner.invoke(cli, ["check", "--diff", diff])

        assert result.exit_code == 0
        assert "✓ No rule violations detected" in result.output
        assert "Decision: ✓ ALLOW" in result.output

    def test_env_file_blocks(self, runner, tmp_path):
        """Test adding a .env file exits 2."""
        diff = write(tmp_path / "env.diff", ENV_DIFF)

        result = runner.invoke(cli, ["check", "--diff", diff])

        assert result.exit_code == 2
        assert "[BLOCK] sensitive-file-default" in result.output
        assert "File: .env" in result.output

    def test_large_change_warns(self, runner, tmp_path):
        """Test a large change exits 1, or 0 when failing only on block."""
        diff = write(tmp_path / "big.diff", large_diff())

        warned = runner.invoke(cli, ["check", "--diff", diff])
        relaxed = runner.invoke(cli, ["check", "--diff", diff, "--fail-on", "block"])

        assert warned.exit_code == 1
        assert "[WARN] large-change-default" in warned.output
        assert relaxed.exit_code == 0

    def test_reads_stdin(self, runner):
        """Test '-' reads the diff from stdin."""
        result = runner.invoke(cli, ["check", "--diff", "-"], input=ENV_DIFF)

        assert result.exit_code == 2

    def test_empty_diff(self, runner, tmp_path):
        """Test an empty diff exits 0."""
        diff = write(tmp_path / "empty.diff", "\n\n")

        result = runner.invoke(cli, ["check", "--diff", diff])

        assert result.exit_code == 0
        assert "No changes detected" in result.output

    def test_diff_without_files(self, runner, tmp_path):
        """Test text without file headers exits 0."""
        diff = write(tmp_path / "prose.diff", "Nothing but prose here.\n")

        result = runner.invoke(cli, ["check", "--diff", diff])

        assert result.exit_code == 0
        assert "No file changes detected" in result.output

    def test_json_output(self, runner, tmp_path):
        """Test JSON output carries summary and result."""
        diff = write(tmp_path / "env.diff", ENV_DIFF)

        result = runner.invoke(cli, ["check", "--diff", diff, "--format", "json"])
        data = json.loads(result.output)

        assert result.exit_code == 2
        assert data["summary"]["total_files"] == 1
        assert data["result"]["decision"] == "block"
        assert data["result"]["violations"][0]["rule_id"] == "sensitive-file-default"

    def test_policy_override_file(self, runner, tmp_path):
        """Test a policy file merged over the default changes the decision."""
        diff = write(tmp_path / "big.diff", large_diff())
        policy = write(tmp_path / "strict.yaml", yaml.safe_dump({
            "id": "strict",
            "name": "Strict",
            "version": "1.0.0",
            "rules": [{
                "id": "large-change-default",
                "name": "Large Change Block",
                "kind": "large-change",
                "severity": "block",
                "threshold": 1000,
            }],
        }))

        result = runner.invoke(cli, ["check", "--diff", diff, "-p", "default", "-p", policy])

        assert result.exit_code == 2
        assert "[BLOCK] large-change-default" in result.output

    def test_config_file(self, runner, tmp_path):
        """Test settings from a config file."""
        diff = write(tmp_path / "big.diff", large_diff())
        write(tmp_path / "diffgate.yaml", "fail_on: block\noutput_format: json\n")

        result = runner.invoke(cli, ["check", "--diff", diff])

        assert result.exit_code == 0
        assert json.loads(result.output)["result"]["decision"] == "warn"

    def test_env_policy(self, runner, tmp_path, monkeypatch):
        """Test the policy environment variable."""
        diff = write(tmp_path / "env.diff", ENV_DIFF)
        policy = write(tmp_path / "empty.json", json.dumps({
            "id": "empty", "name": "Empty", "version": "1.0.0", "rules": [],
        }))
        monkeypatch.setenv("DIFFGATE_POLICY", policy)

        result = runner.invoke(cli, ["check", "--diff", diff])

        assert result.exit_code == 0

    def test_missing_policy_file(self, runner, tmp_path):
        """Test a missing policy file is reported as an error."""
        diff = write(tmp_path / "env.diff", ENV_DIFF)

        result = runner.invoke(cli, ["check", "--diff", diff, "-p", "missing.yaml"])

        assert result.exit_code == 1
        assert "Error: Policy not found: missing.yaml" in result.output

    def test_git_source(self, runner, monkeypatch):
        """Test the diff is read from git when no file is given."""
        calls = []

        def fake_read_git_diff(staged, head, base):
            calls.append((staged, head, base))
            return ENV_DIFF

        monkeypatch.setattr("diffgate.cli.read_git_diff", fake_read_git_diff)

        result = runner.invoke(cli, ["check", "--base", "origin/main"])

        assert result.exit_code == 2
        assert calls == [(False, False, "origin/main")]

    def test_git_failure(self, runner, monkeypatch):
        """Test git errors exit 1 with a message."""
        def failing(staged, head, base):
            raise GitDiffError("This command must be run in a git repository")

        monkeypatch.setattr("diffgate.cli.read_git_diff", failing)

        result = runner.invoke(cli, ["check", "--staged"])

        assert result.exit_code == 1
        assert "Error: This command must be run in a git repository" in result.output


class TestSummary:
    """Test the summary command."""

    def test_text_summary(self, runner, tmp_path):
        """Test the text summary."""
        diff = write(tmp_path / "clean.diff", CLEAN_DIFF)

        result = runner.invoke(cli, ["summary", "--diff", diff])

        assert result.exit_code == 0
        assert "Files changed: 1" in result.output
        assert "Lines added: 2" in result.output
        assert "Lines removed: 1" in result.output

    def test_json_summary(self, runner, tmp_path):
        """Test the JSON summary."""
        diff = write(tmp_path / "clean.diff", CLEAN_DIFF)

        result = runner.invoke(cli, ["summary", "--diff", diff, "--format", "json"])

        assert json.loads(result.output)["files"] == [
            {"path": "src/util.py", "change_type": "modify", "added": 2, "removed": 1},
        ]


class TestPolicyCommands:
    """Test policy-validate, policy-export and policy-explain."""

    def test_export_then_validate(self, runner, tmp_path):
        """Test an exported default policy validates."""
        out = tmp_path / "out" / "policy.yaml"

        exported = runner.invoke(cli, ["policy-export", "--format", "yaml", "--out", str(out)])
        validated = runner.invoke(cli, ["policy-validate", str(out)])

        assert exported.exit_code == 0
        assert f"Policy written to: {out}" in exported.output
        assert yaml.safe_load(out.read_text())["id"] == "default"
        assert validated.exit_code == 0
        assert "✓ Policy is valid" in validated.output

    def test_export_stdout_json(self, runner):
        """Test JSON export to stdout."""
        result = runner.invoke(cli, ["policy-export"])
        data = json.loads(result.output)

        assert result.exit_code == 0
        assert data["rules"][0]["id"] == "sensitive-file-default"

    def test_validate_reports_errors(self, runner, tmp_path):
        """Test invalid policies list every error and exit 1."""
        policy = write(tmp_path / "bad.json", json.dumps({
            "id": "bad",
            "rules": [{"id": "x", "name": "X", "kind": "path-pattern",
                       "severity": "fatal", "pattern": "(", "matchType": "include"}],
        }))

        result = runner.invoke(cli, ["policy-validate", policy])

        assert result.exit_code == 1
        assert "Policy validation failed" in result.output
        assert "Policy must have a name" in result.output
        assert "Invalid severity: fatal" in result.output
        assert "Invalid regex pattern" in result.output

    def test_validate_lists_non_string_id(self, runner, tmp_path):
        """Test an unhashable rule id is listed as a validation error."""
        policy = write(tmp_path / "ids.yaml", yaml.safe_dump({
            "id": "ids",
            "name": "Ids",
            "version": "1.0.0",
            "rules": [{"id": ["x"], "name": "X", "kind": "large-change",
                       "severity": "warn", "threshold": 1}],
        }))

        result = runner.invoke(cli, ["policy-validate", policy])

        assert result.exit_code == 1
        assert "Policy validation failed" in result.output
        assert "id must be a string" in result.output
        assert "Error:" not in result.output

    def test_validate_unparseable(self, runner, tmp_path):
        """Test a document that cannot be parsed."""
        policy = write(tmp_path / "broken.yaml", "rules: [unclosed\n")

        result = runner.invoke(cli, ["policy-validate", policy])

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_explain_rule(self, runner):
        """Test explaining a default rule."""
        result = runner.invoke(cli, ["policy-explain", "--rule", "large-change-default"])

        assert result.exit_code == 0
        assert "# Rule: large-change-default" in result.output
        assert "- threshold: `1000`" in result.output

    def test_explain_unknown_rule(self, runner):
        """Test an unknown rule lists the available ones."""
        result = runner.invoke(cli, ["policy-explain", "--rule", "nope"])

        assert result.exit_code == 1
        assert "Rule not found: nope" in result.output
        assert "sensitive-file-default" in result.output


class TestGroup:
    """Test group-level options."""

    def test_version(self, runner):
        """Test the version option."""
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_invalid_config(self, runner, tmp_path):
        """Test an invalid config file is reported."""
        config = write(tmp_path / "custom.yaml", "fail_on: allow\n")

        result = runner.invoke(cli, ["--config", config, "policy-export"])

        assert result.exit_code == 1
        assert "Error: fail_on" in result.output


class TestGitCommand:
    """Test git diff argument selection."""

    @pytest.mark.parametrize("kwargs,expected", [
        ({}, ["git", "diff", "--staged"]),
        ({"staged": True}, ["git", "diff", "--staged"]),
        ({"head": True}, ["git", "diff", "HEAD"]),
        ({"base": "main"}, ["git", "diff", "main"]),
        ({"staged": True, "head": True}, ["git", "diff", "--staged"]),
    ])
    def test_git_diff_command(self, kwargs, expected):
        """Test each comparison maps to its git arguments."""
        assert git_diff_command(**kwargs) == expected
