"""Shared fixtures and fakes for bugfixer tests"""

import os
import sys
import threading
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional, Union

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bugfixer.core.config_loader import CIConfig, FixConfig
from bugfixer.core.cost_ledger import CostLedger
from bugfixer.core.data_types import CommitResult, Proposal, TestRunResult
from bugfixer.core.file_store import FileStore


ProposerReply = Union[str, Proposal, Exception, Callable[[str, str], Union[str, Proposal]]]


class FakeProposer:
    """Returns scripted replies; the last reply repeats once the script runs out"""

    def __init__(self, *replies: ProposerReply):
        self.replies = list(replies) or ["fixed"]
        self.calls: List[dict] = []
        self._lock = threading.Lock()

    def propose(self, source_text, filename, error_context, config):
        with self._lock:
            self.calls.append(
                {"source": source_text, "filename": filename, "error_context": error_context, "config": config}
            )
            reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply(source_text, filename)
        if isinstance(reply, Proposal):
            return reply
        return Proposal(text=reply)


class ScriptedTestRunner:
    """Returns scripted exit codes (or a callable's verdict) for each run"""

    __test__ = False

    def __init__(self, *exit_codes: int, stdout: str = "", stderr: str = "", judge: Optional[Callable[[], int]] = None):
        self.exit_codes = list(exit_codes) or [0]
        self.stdout = stdout
        self.stderr = stderr
        self.judge = judge
        self.commands: List[str] = []
        self._lock = threading.Lock()

    def run(self, command: str) -> TestRunResult:
        with self._lock:
            self.commands.append(command)
            if self.judge is not None:
                code = self.judge()
            else:
                code = self.exit_codes.pop(0) if len(self.exit_codes) > 1 else self.exit_codes[0]
        return TestRunResult(command=command, exit_code=code, stdout=self.stdout, stderr=self.stderr)


class FakeGit:
    def __init__(self, result: Optional[CommitResult] = None):
        self.result = result or CommitResult(success=True, committed=True)
        self.calls: List[tuple] = []

    def commit_fixes(self, message: str, push: bool = False) -> CommitResult:
        self.calls.append((message, push))
        return self.result


class FixedClock:
    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture(autouse=True)
def clean_bugfixer_env(monkeypatch):
    """Keep developer BUGFIXER_* settings out of the tests"""
    for name in list(os.environ):
        if name.startswith("BUGFIXER_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def workspace(tmp_path):
    return tmp_path


@pytest.fixture
def file_store(workspace):
    return FileStore(base_dir=workspace)


@pytest.fixture
def clock():
    return FixedClock(date(2024, 1, 15))


@pytest.fixture
def ledger(clock):
    return CostLedger(daily_limit=10.0, per_operation_limit=2.0, clock=clock)


@pytest.fixture
def fix_config():
    return FixConfig(test_command="run-tests")


@pytest.fixture
def ci_config(fix_config):
    return CIConfig(fix=fix_config, max_retries=3)
