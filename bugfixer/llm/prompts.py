"""
Bug fix prompt templates

Renders the instruction sent to the patch proposer for one file
"""

from pathlib import PurePosixPath
from typing import Dict, Optional


DEFAULT_ERROR_MESSAGE = "Fix any potential issues"
DEFAULT_LANGUAGE = "javascript"

LANGUAGE_MAP: Dict[str, str] = {
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "py": "python",
    "go": "go",
    "rs": "rust",
}

SYSTEM_MESSAGE = "You are an expert software engineer who fixes bugs with minimal, safe changes."

SAFETY_GUIDANCE: Dict[str, str] = {
    "strict": "Change only the lines required to fix the error. Do not refactor or rename anything.",
    "moderate": "Keep changes focused on the error. Small related cleanups are acceptable.",
    "permissive": "You may restructure the code if that produces a cleaner fix.",
}

BUG_FIX_TEMPLATE = """
Fix the bug in this {language} file.

File: {filename}

Error:
{error_message}

Source:
```{language}
{code}
```

Guidelines:
1. {safety_guidance}
2. Preserve the public interface and existing behavior that is not broken
3. Keep the original formatting and style

Output ONLY the complete corrected contents of {filename}.
No explanations, just the code.
"""


def detect_language(filename: str) -> str:
    """Map a file extension to a language name (javascript when unknown)"""
    ext = PurePosixPath(filename).suffix.lstrip(".").lower()
    return LANGUAGE_MAP.get(ext, DEFAULT_LANGUAGE)


def build_bug_fix_prompt(
    code: str,
    filename: str,
    error_message: Optional[str] = None,
    safety_level: str = "moderate",
) -> str:
    """
    Build the bug fix prompt

    Args:
        code: Source code to fix
        filename: Name of the file being fixed
        error_message: Error context (blank falls back to a generic request)
        safety_level: strict, moderate or permissive

    Returns:
        Rendered prompt
    """
    if not error_message or not error_message.strip():
        error_message = DEFAULT_ERROR_MESSAGE

    return BUG_FIX_TEMPLATE.format(
        language=detect_language(filename),
        filename=filename,
        error_message=error_message,
        code=code,
        safety_guidance=SAFETY_GUIDANCE.get(safety_level, SAFETY_GUIDANCE["moderate"]),
    ).strip()
