"""
CI Driver

Discovers failing files from a test run, fixes them one by one through the
Fix Engine, optionally commits, and repeats the whole pipeline until the
tests pass or the retry budget runs out.
"""

import logging
from typing import Optional

from bugfixer.core.config_loader import CIConfig
from bugfixer.core.data_types import BatchResult, CIRunResult, RetrySession
from bugfixer.core.file_store import FileStore
from bugfixer.core.test_output import (
    ERROR_CONTEXT_HEADER,
    extract_error_messages,
    identify_files_to_fix,
)
from bugfixer.core.validation import validate_batch_result
from bugfixer.integrations.git_integration import GitIntegration
from bugfixer.integrations.test_runner import TestRunner
from bugfixer.orchestrator.fix_engine import FixEngine


logger = logging.getLogger(__name__)


class CIDriver:
    """Runs the test-discover-fix-commit pipeline"""

    def __init__(
        self,
        engine: FixEngine,
        test_runner: TestRunner,
        file_store: FileStore,
        config: CIConfig,
        git: Optional[GitIntegration] = None,
    ):
        """
        Initialize driver

        Args:
            engine: Fix Engine used for every candidate file
            test_runner: Runs the configured test command
            file_store: Existence checks for candidate files
            config: Resolved CI configuration
            git: Git collaborator (commits are skipped when None)
        """
        if config.max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got {config.max_retries}")
        self.engine = engine
        self.test_runner = test_runner
        self.file_store = file_store
        self.config = config
        self.git = git

    def run_once(self) -> BatchResult:
        """
        Run one round: test, identify files, fix each, optionally commit

        Returns:
            BatchResult for this round
        """
        fix_config = self.config.fix
        logger.info("Checking for test failures")
        test = self.test_runner.run(fix_config.test_command)
        if test.passed:
            logger.info("All tests passing - no fixes needed")
            return BatchResult.from_attempts([], tests_passed_initially=True)

        output = test.combined_output
        logger.warning("Tests failed - attempting to fix")
        for message in extract_error_messages(output):
            logger.debug(f"Test error: {message}")

        candidates = identify_files_to_fix(
            output,
            self.file_store.exists,
            self.config.source_extensions,
            self.config.default_file,
        )
        files = []
        seen = set()
        for candidate in candidates:
            location = self.file_store.canonical(candidate)
            if location in seen:
                continue
            seen.add(location)
            if not self.file_store.contains(candidate):
                logger.info(f"Skipping {candidate} (outside {self.file_store.base_dir})")
            elif fix_config.is_skipped(candidate):
                logger.info(f"Skipping {candidate} (matches skip pattern)")
            else:
                files.append(candidate)

        if not files:
            logger.warning("Could not identify files to fix from test output")
            return BatchResult.from_attempts(
                [], error="Could not identify files to fix", test_output=output
            )

        logger.info(f"Attempting to fix {len(files)} file(s): {', '.join(files)}")
        error_context = f"{ERROR_CONTEXT_HEADER}{output}"
        attempts = []
        for index, filename in enumerate(files, start=1):
            logger.info(f"Fixing {filename} ({index}/{len(files)})")
            result = self.engine.attempt_fix(filename, error_context, fix_config)
            if result.success:
                logger.info(f"Fixed {filename} ({result.lines_changed} line(s) changed)")
            else:
                logger.error(f"Could not fix {filename}: {result.error}")
            attempts.append(result)

        batch = BatchResult.from_attempts(attempts, test_output=output)

        if self.config.auto_commit and batch.successful > 0:
            if self.git is None:
                logger.warning("Auto-commit enabled but no git integration configured")
            else:
                commit = self.git.commit_fixes(self.config.commit_message, self.config.auto_push)
                if not commit.success:
                    logger.error(f"Commit step failed: {commit.error}")
                batch = batch.with_commit(commit)

        for problem in validate_batch_result(batch):
            logger.warning(f"Batch result failed validation: {problem}")
        return batch

    def run_with_retries(self) -> CIRunResult:
        """
        Repeat run_once until the tests pass or max_retries rounds are used

        Every round rediscovers failing files from a fresh test run.

        Returns:
            CIRunResult with the last round's batch
        """
        session = RetrySession(max_retries=self.config.max_retries)
        logger.info(f"Starting CI fix with up to {session.max_retries} attempt(s)")

        while session.attempt_number < session.max_retries:
            session.attempt_number += 1
            logger.info(f"Attempt {session.attempt_number} of {session.max_retries}")
            session.last_batch = self.run_once()

            if self.test_runner.run(self.config.fix.test_command).passed:
                logger.info(f"All tests passing after {session.attempt_number} attempt(s)")
                return CIRunResult(
                    batch=session.last_batch,
                    final_tests_passed=True,
                    attempts=session.attempt_number,
                )
            logger.warning(f"Tests still failing after attempt {session.attempt_number}")

        logger.error(f"Tests still failing after {session.max_retries} attempt(s)")
        return CIRunResult(
            batch=session.last_batch,
            final_tests_passed=False,
            attempts=session.max_retries,
        )
