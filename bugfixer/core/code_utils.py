"""Helpers for cleaning proposer output and measuring changes"""

import re


_LEADING_FENCE = re.compile(r"^```[\w+#.\-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?```$")


def extract_clean_code(response: str) -> str:
    """
    Strip an enclosing markdown code fence and surrounding whitespace

    Applying it to already clean text returns the text unchanged.

    Args:
        response: Raw proposer text, possibly fenced with a language tag

    Returns:
        Bare code
    """
    cleaned = response.strip()
    # nested fences are peeled until the text is bare
    while cleaned.startswith("```"):
        cleaned = _LEADING_FENCE.sub("", cleaned, count=1)
        cleaned = _TRAILING_FENCE.sub("", cleaned, count=1).strip()
    return cleaned


def count_changed_lines(original: str, fixed: str) -> int:
    """
    Count line positions whose content differs

    Lines present only in the longer version count as changed.
    """
    original_lines = original.split("\n")
    fixed_lines = fixed.split("\n")
    longest = max(len(original_lines), len(fixed_lines))

    changes = 0
    for i in range(longest):
        old = original_lines[i] if i < len(original_lines) else None
        new = fixed_lines[i] if i < len(fixed_lines) else None
        if old != new:
            changes += 1
    return changes
