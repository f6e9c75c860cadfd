"""Tests for GitIntegration"""

import subprocess
from unittest.mock import Mock

import pytest

from bugfixer.core.errors import GitOperationError
from bugfixer.integrations.git_integration import GitIntegration


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def run(mocker):
    return mocker.patch("bugfixer.integrations.git_integration.subprocess.run", return_value=completed())


@pytest.fixture
def git(tmp_path):
    return GitIntegration(workspace=tmp_path, user_name="Bot", user_email="bot@example.com")


def git_commands(run: Mock):
    return [call.args[0] for call in run.call_args_list]


class TestGitSteps:
    def test_configure_identity(self, git, run):
        step = git.configure_identity()
        assert step.success is True
        assert git_commands(run) == [
            ["git", "config", "user.name", "Bot"],
            ["git", "config", "user.email", "bot@example.com"],
        ]

    def test_commit_message_passed_as_argument(self, git, run):
        git.commit('Fix "quoted" message')
        assert git_commands(run) == [["git", "commit", "-m", 'Fix "quoted" message']]

    def test_step_failure_reports_stderr(self, git, run):
        run.return_value = completed(returncode=1, stderr="nothing to commit")
        step = git.commit("msg")
        assert step.success is False
        assert "nothing to commit" in step.error

    def test_run_git_raises(self, git, run):
        run.return_value = completed(returncode=128, stderr="not a git repository")
        with pytest.raises(GitOperationError, match="git add failed"):
            git._run_git("add", ["add", "."])

    def test_missing_git_binary(self, git, run):
        run.side_effect = FileNotFoundError()
        step = git.push()
        assert step.success is False
        assert "not found" in step.error

    def test_launch_permission_error(self, git, run):
        run.side_effect = PermissionError("permission denied")
        step = git.push()
        assert step.success is False
        assert "permission denied" in step.error

    def test_timeout(self, git, run):
        run.side_effect = subprocess.TimeoutExpired(cmd="git push", timeout=120)
        assert git.push().success is False


class TestCommitFixes:
    """Test suite for the commit sequence"""

    def test_commit_without_push(self, git, run):
        result = git.commit_fixes("Auto-fix", push=False)
        assert result.success is True
        assert result.committed is True
        assert result.pushed is False
        assert ["git", "push"] not in git_commands(run)

    def test_commit_and_push(self, git, run):
        result = git.commit_fixes("Auto-fix", push=True)
        assert result.pushed is True
        assert git_commands(run)[-1] == ["git", "push"]

    def test_identity_failure_is_not_fatal(self, git, run):
        run.side_effect = [completed(returncode=1, stderr="locked"), completed(), completed(), completed()]
        result = git.commit_fixes("Auto-fix")
        assert result.success is True

    def test_stage_failure(self, git, run):
        run.side_effect = [completed(), completed(), completed(returncode=1, stderr="bad index")]
        result = git.commit_fixes("Auto-fix")
        assert result.success is False
        assert result.committed is False
        assert "Failed to stage changes" in result.error

    def test_push_failure_keeps_commit(self, git, run):
        run.side_effect = [completed(), completed(), completed(), completed(), completed(returncode=1, stderr="rejected")]
        result = git.commit_fixes("Auto-fix", push=True)
        assert result.success is False
        assert result.committed is True
        assert result.pushed is False
        assert "rejected" in result.error
