"""Error taxonomy for the bug fixer

Every error except RollbackError is converted into a result value at the
Fix Engine (or git) boundary. RollbackError means a file could not be
restored to its original content and must terminate the run.
"""

from typing import Optional


class FixerError(Exception):
    """Base class for all bug fixer errors"""


class ConfigError(FixerError):
    """Configuration file missing or invalid"""


class NotFoundError(FixerError):
    """Target file does not exist"""

    def __init__(self, path: str):
        super().__init__(f"File not found: {path}")
        self.path = path


class UnreadableFileError(FixerError):
    """Target file exists but cannot be decoded as text"""

    def __init__(self, path: str, encoding: str):
        super().__init__(f"Cannot decode {path} as {encoding}")
        self.path = path
        self.encoding = encoding


class BudgetExceededError(FixerError):
    """Cost gate refused the operation before the proposer was called"""

    def __init__(self, reason: str, estimated_cost: float = 0.0):
        super().__init__(reason)
        self.reason = reason
        self.estimated_cost = estimated_cost


class ProposalError(FixerError):
    """Patch proposer failed to produce a usable patch"""


class EmptyProposalError(ProposalError):
    """Proposer response contained no code after normalization"""

    def __init__(self, filename: str):
        super().__init__(f"Proposer returned no code for {filename}")
        self.filename = filename


class TestFailureError(FixerError):
    """Tests failed after applying a patch; the patch has been rolled back"""

    __test__ = False

    def __init__(self, message: str, test_output: str = "", test_error: Optional[str] = None):
        super().__init__(message)
        self.test_output = test_output
        self.test_error = test_error


class GitOperationError(FixerError):
    """A git step failed"""

    def __init__(self, step: str, detail: str):
        super().__init__(f"git {step} failed: {detail}")
        self.step = step
        self.detail = detail


class RollbackError(FixerError):
    """Restoring the original file content failed"""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Failed to restore original content of {path}: {cause}")
        self.path = path
        self.cause = cause
