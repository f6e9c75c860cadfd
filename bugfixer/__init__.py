"""
bugfixer - Cost-bounded fix-apply-test-rollback engine

Proposes patches with an LLM, verifies them with the project's test command
and keeps only the ones that pass.
"""

__version__ = "1.0.0"
__author__ = "bugfixer Development Team"
