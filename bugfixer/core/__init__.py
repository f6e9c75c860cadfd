"""
bugfixer Core - Accounting, configuration, file access and parsing helpers
"""

# Data Types
from bugfixer.core.data_types import (
    FixState,
    Proposal,
    FixRequest,
    FixAttemptResult,
    TestRunResult,
    BudgetState,
    BudgetCheck,
    CostReport,
    GitStepResult,
    CommitResult,
    BatchResult,
    RetrySession,
    CIRunResult,
)

# Errors
from bugfixer.core.errors import (
    FixerError,
    ConfigError,
    NotFoundError,
    UnreadableFileError,
    BudgetExceededError,
    ProposalError,
    EmptyProposalError,
    TestFailureError,
    GitOperationError,
    RollbackError,
)

# Cost Accounting
from bugfixer.core.cost_ledger import CostLedger, MODEL_PRICING, calculate_cost, estimate_fix_cost

# File Access
from bugfixer.core.file_store import FileStore

# Configuration
from bugfixer.core.config_loader import (
    PRESETS,
    FixConfig,
    CIConfig,
    FixerConfig,
    load_config,
    resolve_fix_config,
    resolve_ci_config,
)

__all__ = [
    # Data Types
    "FixState",
    "Proposal",
    "FixRequest",
    "FixAttemptResult",
    "TestRunResult",
    "BudgetState",
    "BudgetCheck",
    "CostReport",
    "GitStepResult",
    "CommitResult",
    "BatchResult",
    "RetrySession",
    "CIRunResult",
    # Errors
    "FixerError",
    "ConfigError",
    "NotFoundError",
    "UnreadableFileError",
    "BudgetExceededError",
    "ProposalError",
    "EmptyProposalError",
    "TestFailureError",
    "GitOperationError",
    "RollbackError",
    # Cost Accounting
    "CostLedger",
    "MODEL_PRICING",
    "calculate_cost",
    "estimate_fix_cost",
    # File Access
    "FileStore",
    # Configuration
    "PRESETS",
    "FixConfig",
    "CIConfig",
    "FixerConfig",
    "load_config",
    "resolve_fix_config",
    "resolve_ci_config",
]
