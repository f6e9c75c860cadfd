"""Integration tests for the bugfixer CLI"""

import sys

import pytest
from click.testing import CliRunner

from conftest import FakeProposer
from bugfixer.cli.cli import cli


pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell test commands")


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def project(tmp_path, monkeypatch):
    """Run the CLI from a temporary project directory"""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "cart.js").write_text("broken")
    return tmp_path


@pytest.fixture
def proposer(mocker):
    fake = FakeProposer("```javascript\nfixed\n```")
    mocker.patch("bugfixer.cli.cli.LLMPatchProposer", return_value=fake)
    return fake


class TestFixCommand:
    def test_fix_success(self, runner, project, proposer):
        result = runner.invoke(cli, ["--test-command", "exit 0", "fix", "cart.js", "TypeError: x"])

        assert result.exit_code == 0, result.output
        assert "✅ Fixed cart.js" in result.output
        assert "Cost Report" in result.output
        assert (project / "cart.js").read_text() == "fixed"
        assert proposer.calls[0]["error_context"] == "TypeError: x"

    def test_fix_failure_rolls_back(self, runner, project, proposer):
        result = runner.invoke(cli, ["--test-command", "exit 1", "fix", "cart.js"])

        assert result.exit_code == 1
        assert "❌ Could not fix cart.js" in result.output
        assert (project / "cart.js").read_text() == "broken"

    def test_fix_missing_file(self, runner, project, proposer):
        result = runner.invoke(cli, ["fix", "nope.js"])

        assert result.exit_code == 1
        assert "File not found" in result.output
        assert proposer.calls == []

    def test_model_option(self, runner, project, proposer):
        runner.invoke(cli, ["--model", "gpt-4o", "--test-command", "exit 0", "fix", "cart.js"])
        assert proposer.calls[0]["config"].model == "gpt-4o"

    def test_missing_config_file(self, runner, project, proposer):
        result = runner.invoke(cli, ["--config", "missing.yaml", "fix", "cart.js"])

        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_config_file_used(self, runner, project, proposer):
        (project / "custom.yaml").write_text("fixer:\n  test_command: exit 0\n  preset: security\n")

        result = runner.invoke(cli, ["--config", "custom.yaml", "fix", "cart.js"])

        assert result.exit_code == 0, result.output
        assert proposer.calls[0]["config"].model == "gpt-4o"


class TestBatchCommand:
    def test_batch_all_succeed(self, runner, project, proposer):
        (project / "tax.js").write_text("broken")

        result = runner.invoke(cli, ["--test-command", "exit 0", "batch", "cart.js", "tax.js", "--error", "boom"])

        assert result.exit_code == 0, result.output
        assert "Fixed: 2/2" in result.output
        assert all(call["error_context"] == "boom" for call in proposer.calls)

    def test_batch_partial_failure(self, runner, project, proposer):
        result = runner.invoke(cli, ["--test-command", "exit 0", "batch", "cart.js", "missing.js"])

        assert result.exit_code == 1
        assert "Fixed: 1/2" in result.output

    def test_batch_duplicates(self, runner, project, proposer):
        result = runner.invoke(cli, ["batch", "cart.js", "./cart.js"])

        assert result.exit_code == 1
        assert "Duplicate file in batch" in result.output


class TestCICommand:
    def test_ci_tests_already_pass(self, runner, project, proposer):
        result = runner.invoke(cli, ["--test-command", "exit 0", "ci"])

        assert result.exit_code == 0, result.output
        assert "All tests passing" in result.output
        assert proposer.calls == []

    def test_ci_exhausts_retries(self, runner, project, proposer):
        command = "echo 'at total (./cart.js:1:1)'; exit 1"

        result = runner.invoke(cli, ["--test-command", command, "ci", "--max-retries", "2", "--no-commit"])

        assert result.exit_code == 1
        assert "Attempts: 2" in result.output
        assert "Tests still failing" in result.output
        assert len(proposer.calls) == 2
        assert (project / "cart.js").read_text() == "broken"


def test_presets_command(runner):
    result = runner.invoke(cli, ["presets"])

    assert result.exit_code == 0
    for name in ("quick", "thorough", "security", "performance"):
        assert name in result.output


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert "1.0.0" in result.output
