"""bugfixer Orchestrator - Fix Engine and CI Driver"""

from .fix_engine import FixAttempt, FixEngine
from .ci_driver import CIDriver

__all__ = [
    "FixAttempt",
    "FixEngine",
    "CIDriver",
]
