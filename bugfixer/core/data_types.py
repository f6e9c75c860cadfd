"""Data type definitions for the bug fixer"""

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional, Sequence, Tuple


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class FixState(str, Enum):
    """States of a single fix attempt"""

    IDLE = "idle"
    COST_CHECKED = "cost_checked"
    PROPOSED = "proposed"
    APPLIED = "applied"
    TESTED = "tested"
    ACCEPTED = "accepted"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"


@dataclass(frozen=True)
class Proposal:
    """Raw proposer output plus token usage when the provider reports it"""

    text: str
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None

    @property
    def has_usage(self) -> bool:
        return self.input_tokens is not None and self.output_tokens is not None


@dataclass(frozen=True)
class FixRequest:
    filename: str
    error_context: str = ""


@dataclass(frozen=True)
class FixAttemptResult:
    success: bool
    filename: str
    original_code: str
    model_used: str
    final_state: FixState
    proposed_code: Optional[str] = None
    lines_changed: int = 0
    test_output: str = ""
    test_error: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    cost: float = 0.0
    timestamp: str = field(default_factory=utc_timestamp)


@dataclass(frozen=True)
class TestRunResult:
    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False

    __test__ = False

    @property
    def passed(self) -> bool:
        return self.exit_code == 0

    @property
    def combined_output(self) -> str:
        return self.stdout + self.stderr


@dataclass
class BudgetState:
    daily_spend: float
    operation_count: int
    last_reset_date: date
    daily_limit: float
    per_operation_limit: float


@dataclass(frozen=True)
class BudgetCheck:
    allowed: bool
    within_daily: bool
    within_per_operation: bool
    estimated_cost: float
    daily_spend: float
    remaining: float

    @property
    def reason(self) -> Optional[str]:
        if self.allowed:
            return None
        if not self.within_per_operation:
            return f"Estimated cost ${self.estimated_cost:.4f} exceeds the per-operation limit"
        return (
            f"Daily budget exceeded: estimated ${self.estimated_cost:.4f} "
            f"with ${self.remaining:.4f} remaining"
        )


@dataclass(frozen=True)
class CostReport:
    daily_spend: float
    daily_limit: float
    remaining: float
    operation_count: int
    average_cost: float
    last_reset_date: date

    def render(self) -> str:
        percent_used = (self.daily_spend / self.daily_limit * 100) if self.daily_limit else 0.0
        rule = "━" * 34
        return "\n".join(
            [
                f"📊 Cost Report ({self.last_reset_date.isoformat()})",
                rule,
                f"  Daily Spend:      ${self.daily_spend:.4f} / ${self.daily_limit:.4f} ({percent_used:.1f}%)",
                f"  Fixes Completed:  {self.operation_count}",
                f"  Avg Cost/Fix:     ${self.average_cost:.4f}",
                f"  Remaining Budget: ${self.remaining:.4f}",
                rule,
            ]
        )


@dataclass(frozen=True)
class GitStepResult:
    success: bool
    step: str
    message: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class CommitResult:
    success: bool
    committed: bool = False
    pushed: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class BatchResult:
    """Aggregate outcome of one CI round

    Build through from_attempts() so the counts always agree with the
    attempts tuple.
    """

    attempted: Tuple[FixAttemptResult, ...]
    total_attempted: int
    successful: int
    failed: int
    tests_passed_initially: bool = False
    committed: Optional[bool] = None
    pushed: Optional[bool] = None
    commit_error: Optional[str] = None
    error: Optional[str] = None
    test_output: Optional[str] = None
    timestamp: str = field(default_factory=utc_timestamp)

    def __post_init__(self) -> None:
        if self.successful + self.failed != self.total_attempted:
            raise ValueError("successful + failed must equal total_attempted")
        if self.total_attempted != len(self.attempted):
            raise ValueError("total_attempted must match the number of attempts")

    @classmethod
    def from_attempts(
        cls,
        attempts: Sequence[FixAttemptResult],
        *,
        tests_passed_initially: bool = False,
        error: Optional[str] = None,
        test_output: Optional[str] = None,
    ) -> "BatchResult":
        attempted = tuple(attempts)
        successful = sum(1 for a in attempted if a.success)
        return cls(
            attempted=attempted,
            total_attempted=len(attempted),
            successful=successful,
            failed=len(attempted) - successful,
            tests_passed_initially=tests_passed_initially,
            error=error,
            test_output=test_output,
        )

    def with_commit(self, commit: CommitResult) -> "BatchResult":
        return replace(
            self,
            committed=commit.committed,
            pushed=commit.pushed,
            commit_error=commit.error,
        )


@dataclass
class RetrySession:
    max_retries: int
    attempt_number: int = 0
    last_batch: Optional[BatchResult] = None


@dataclass(frozen=True)
class CIRunResult:
    batch: Optional[BatchResult]
    final_tests_passed: bool
    attempts: int

    @property
    def total_attempted(self) -> int:
        return self.batch.total_attempted if self.batch else 0

    @property
    def successful(self) -> int:
        return self.batch.successful if self.batch else 0

    @property
    def failed(self) -> int:
        return self.batch.failed if self.batch else 0

    @property
    def committed(self) -> bool:
        return bool(self.batch and self.batch.committed)
