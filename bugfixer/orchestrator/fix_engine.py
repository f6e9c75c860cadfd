"""
Fix Engine

Per-file propose -> apply -> test -> accept/rollback state machine, plus the
concurrent batch entry point. After any attempt the file on disk holds either
the accepted patch or its original content.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Set

from bugfixer.core.code_utils import count_changed_lines, extract_clean_code
from bugfixer.core.config_loader import FixConfig
from bugfixer.core.cost_ledger import CostLedger, calculate_cost, format_cost, requires_warning
from bugfixer.core.data_types import FixAttemptResult, FixRequest, FixState, Proposal
from bugfixer.core.errors import (
    BudgetExceededError,
    EmptyProposalError,
    NotFoundError,
    ProposalError,
    RollbackError,
    TestFailureError,
    UnreadableFileError,
)
from bugfixer.core.file_store import FileStore
from bugfixer.core.validation import validate_fix_result
from bugfixer.integrations.test_runner import TestRunner
from bugfixer.llm.prompts import DEFAULT_ERROR_MESSAGE
from bugfixer.llm.proposer import PatchProposer


logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4

TERMINAL_STATES = {FixState.ACCEPTED, FixState.ROLLED_BACK, FixState.FAILED}

_ALLOWED_TRANSITIONS: Dict[FixState, Set[FixState]] = {
    FixState.IDLE: {FixState.COST_CHECKED, FixState.FAILED},
    FixState.COST_CHECKED: {FixState.PROPOSED, FixState.FAILED},
    FixState.PROPOSED: {FixState.APPLIED, FixState.FAILED, FixState.ROLLED_BACK},
    FixState.APPLIED: {FixState.TESTED, FixState.ROLLED_BACK},
    FixState.TESTED: {FixState.ACCEPTED, FixState.ROLLED_BACK},
    FixState.ACCEPTED: set(),
    FixState.ROLLED_BACK: set(),
    FixState.FAILED: set(),
}


class FixAttempt:
    """State tracker for one file's fix attempt"""

    def __init__(self, filename: str):
        self.filename = filename
        self._state = FixState.IDLE

    @property
    def state(self) -> FixState:
        return self._state

    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def advance(self, new_state: FixState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Illegal fix state transition for {self.filename}: "
                f"{self._state.value} -> {new_state.value}"
            )
        logger.debug(f"{self.filename}: {self._state.value} -> {new_state.value}")
        self._state = new_state


class FixEngine:
    """Applies proposed patches one file at a time and keeps only passing ones"""

    def __init__(
        self,
        proposer: PatchProposer,
        ledger: CostLedger,
        file_store: FileStore,
        test_runner: TestRunner,
        config: Optional[FixConfig] = None,
    ):
        """
        Initialize engine

        Args:
            proposer: Source of candidate patches
            ledger: Shared cost ledger gating every proposer call
            file_store: Working-tree access, also the rollback target
            test_runner: Runs the verification command
            config: Default configuration for attempts that do not pass one
        """
        self.proposer = proposer
        self.ledger = ledger
        self.file_store = file_store
        self.test_runner = test_runner
        self.config = config or FixConfig()

    def attempt_fix(
        self,
        filename: str,
        error_context: str = "",
        config: Optional[FixConfig] = None,
    ) -> FixAttemptResult:
        """
        Propose, apply and verify a fix for one file

        Failures become result values. The only exception that escapes is
        RollbackError, raised when the original content cannot be restored.

        Args:
            filename: File to fix
            error_context: Error message or test output (blank uses a generic request)
            config: Configuration for this attempt (engine default if None)

        Returns:
            FixAttemptResult with the terminal state
        """
        config = config or self.config
        if not error_context or not error_context.strip():
            error_context = DEFAULT_ERROR_MESSAGE
        attempt = FixAttempt(filename)

        try:
            original = self.file_store.read(filename)
        except (NotFoundError, UnreadableFileError, OSError) as e:
            logger.error(f"Cannot read {filename}: {e}")
            attempt.advance(FixState.FAILED)
            return self._finish(attempt, config, original_code="", error=e)

        estimated = self.ledger.estimate(config.model, len(original), config.max_tokens)
        if requires_warning(estimated, config.cost_warning_threshold):
            logger.warning(f"Estimated cost for {filename} is {format_cost(estimated)}")
        check = self.ledger.can_afford(estimated)
        attempt.advance(FixState.COST_CHECKED)
        if not check.allowed:
            logger.warning(f"Skipping {filename}: {check.reason}")
            attempt.advance(FixState.FAILED)
            return self._finish(
                attempt, config, original, error=BudgetExceededError(check.reason, estimated)
            )

        attempt.advance(FixState.PROPOSED)
        try:
            proposal = self.proposer.propose(original, filename, error_context, config)
        except Exception as e:
            logger.error(f"Proposer failed for {filename}: {e}")
            attempt.advance(FixState.FAILED)
            error = e if isinstance(e, ProposalError) else ProposalError(f"Proposer failed: {e}")
            return self._finish(attempt, config, original, error=error)

        cost = self._record_cost(proposal, config.model, estimated)
        fixed = extract_clean_code(proposal.text)

        if not fixed:
            self._restore(filename, original)
            attempt.advance(FixState.ROLLED_BACK)
            return self._finish(
                attempt, config, original, error=EmptyProposalError(filename), cost=cost
            )

        attempt.advance(FixState.APPLIED)
        try:
            self.file_store.write(filename, fixed)
            logger.info(f"Applied fix to {filename}, running tests")
            test = self.test_runner.run(config.test_command)
        except Exception as e:
            logger.error(f"Attempt on {filename} failed mid-apply: {e}")
            self._restore(filename, original)
            attempt.advance(FixState.ROLLED_BACK)
            return self._finish(attempt, config, original, proposed_code=fixed, error=e, cost=cost)

        attempt.advance(FixState.TESTED)
        if test.passed:
            attempt.advance(FixState.ACCEPTED)
            logger.info(f"Fix for {filename} accepted")
            return self._finish(
                attempt,
                config,
                original,
                proposed_code=fixed,
                lines_changed=count_changed_lines(original, fixed),
                test_output=test.stdout,
                test_error=test.stderr or None,
                cost=cost,
            )

        self._restore(filename, original)
        attempt.advance(FixState.ROLLED_BACK)
        logger.warning(f"Tests failed after fixing {filename}; original content restored")
        failure = TestFailureError(
            "Tests failed after applying fix", test_output=test.stdout, test_error=test.stderr
        )
        return self._finish(
            attempt,
            config,
            original,
            proposed_code=fixed,
            test_output=test.stdout,
            test_error=test.stderr or None,
            error=failure,
            cost=cost,
        )

    def fix_many(
        self,
        requests: Sequence[FixRequest],
        config: Optional[FixConfig] = None,
        max_workers: Optional[int] = None,
    ) -> List[FixAttemptResult]:
        """
        Fix independent files concurrently

        Args:
            requests: One request per distinct file
            config: Configuration shared by all attempts
            max_workers: Thread pool size (defaults to min(len(requests), 4))

        Returns:
            Results in request order

        Raises:
            ValueError: If the same file appears twice
            RollbackError: If any attempt could not restore its file
        """
        if not requests:
            return []

        seen: Set[str] = set()
        for request in requests:
            key = str(self.file_store.canonical(request.filename))
            if key in seen:
                raise ValueError(f"Duplicate file in batch: {request.filename}")
            seen.add(key)

        workers = max_workers or min(len(requests), DEFAULT_MAX_WORKERS)
        logger.info(f"Fixing {len(requests)} file(s) with {workers} worker(s)")
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(self.attempt_fix, request.filename, request.error_context, config)
                for request in requests
            ]
        return [future.result() for future in futures]

    def _record_cost(self, proposal: Proposal, model: str, estimated: float) -> float:
        if proposal.has_usage:
            cost = calculate_cost(model, proposal.input_tokens, proposal.output_tokens)
        else:
            cost = estimated
        self.ledger.record(cost)
        return cost

    def _restore(self, filename: str, original: str) -> None:
        try:
            self.file_store.write(filename, original)
        except OSError as e:
            raise RollbackError(filename, e) from e
        logger.debug(f"Restored original content of {filename}")

    def _finish(
        self,
        attempt: FixAttempt,
        config: FixConfig,
        original_code: str,
        proposed_code: Optional[str] = None,
        lines_changed: int = 0,
        test_output: str = "",
        test_error: Optional[str] = None,
        error: Optional[Exception] = None,
        cost: float = 0.0,
    ) -> FixAttemptResult:
        result = FixAttemptResult(
            success=attempt.state == FixState.ACCEPTED,
            filename=attempt.filename,
            original_code=original_code,
            model_used=config.model,
            final_state=attempt.state,
            proposed_code=proposed_code,
            lines_changed=lines_changed,
            test_output=test_output,
            test_error=test_error,
            error=(str(error) or type(error).__name__) if error is not None else None,
            error_type=type(error).__name__ if error is not None else None,
            cost=cost,
        )
        for problem in validate_fix_result(result):
            logger.warning(f"Fix result for {attempt.filename} failed validation: {problem}")
        return result
