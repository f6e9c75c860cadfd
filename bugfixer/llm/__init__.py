"""bugfixer LLM - prompt rendering and patch proposers"""

from .prompts import build_bug_fix_prompt, detect_language
from .proposer import LLMPatchProposer, PatchProposer

__all__ = [
    "build_bug_fix_prompt",
    "detect_language",
    "LLMPatchProposer",
    "PatchProposer",
]
