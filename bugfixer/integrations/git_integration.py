"""Git integration for committing accepted fixes"""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from bugfixer.core.data_types import CommitResult, GitStepResult
from bugfixer.core.errors import GitOperationError


logger = logging.getLogger(__name__)


class GitIntegration:
    """Thin wrapper over the git CLI: identity, stage, commit, push"""

    def __init__(
        self,
        workspace: Optional[Path] = None,
        user_name: str = "Auto Bug Fixer",
        user_email: str = "action@github.com",
        timeout: int = 120,
    ):
        self.workspace = Path(workspace) if workspace else None
        self.user_name = user_name
        self.user_email = user_email
        self.timeout = timeout

    def _run_git(self, step: str, args: List[str]) -> str:
        """Run one git command

        Raises:
            GitOperationError: On nonzero exit, timeout or launch failure
        """
        cmd = ["git"] + args
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                cwd=self.workspace,
            )
        except subprocess.TimeoutExpired:
            raise GitOperationError(step, f"timed out after {self.timeout}s")
        except FileNotFoundError:
            raise GitOperationError(step, "git executable not found")
        except OSError as e:
            raise GitOperationError(step, str(e))

        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip() or f"exit code {result.returncode}"
            raise GitOperationError(step, detail)
        return result.stdout

    def _step(self, step: str, commands: List[List[str]], message: str) -> GitStepResult:
        try:
            for args in commands:
                self._run_git(step, args)
        except GitOperationError as e:
            logger.error(str(e))
            return GitStepResult(success=False, step=step, error=str(e))
        return GitStepResult(success=True, step=step, message=message)

    def configure_identity(self) -> GitStepResult:
        return self._step(
            "config",
            [["config", "user.name", self.user_name], ["config", "user.email", self.user_email]],
            "Git configured successfully",
        )

    def stage_all(self) -> GitStepResult:
        return self._step("add", [["add", "."]], "Changes staged")

    def commit(self, message: str) -> GitStepResult:
        return self._step("commit", [["commit", "-m", message]], "Changes committed")

    def push(self) -> GitStepResult:
        return self._step("push", [["push"]], "Changes pushed")

    def commit_fixes(self, message: str, push: bool = False) -> CommitResult:
        """Commit and optionally push fixes

        A failed identity step only logs a warning; the existing git
        identity is used instead.

        Args:
            message: Commit message
            push: Push after committing

        Returns:
            CommitResult describing how far the sequence got
        """
        logger.info(f"Committing fixes: {message}")

        identity = self.configure_identity()
        if not identity.success:
            logger.warning(f"Git configuration failed: {identity.error}")

        staged = self.stage_all()
        if not staged.success:
            return CommitResult(success=False, error=f"Failed to stage changes: {staged.error}")

        committed = self.commit(message)
        if not committed.success:
            return CommitResult(success=False, error=f"Failed to commit changes: {committed.error}")
        logger.info("Changes committed")

        if push:
            pushed = self.push()
            if not pushed.success:
                return CommitResult(
                    success=False, committed=True, error=f"Failed to push changes: {pushed.error}"
                )
            logger.info("Changes pushed")

        return CommitResult(success=True, committed=True, pushed=push)
