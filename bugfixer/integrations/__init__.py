"""
bugfixer Integrations

Wrappers for external processes (test command, git)
"""

from .git_integration import GitIntegration
from .test_runner import ShellTestRunner, TestRunner

__all__ = [
    "GitIntegration",
    "ShellTestRunner",
    "TestRunner",
]
