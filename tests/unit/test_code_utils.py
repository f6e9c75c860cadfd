"""Tests for code_utils module"""

import pytest

from bugfixer.core.code_utils import count_changed_lines, extract_clean_code


class TestExtractCleanCode:
    """Test suite for extract_clean_code"""

    def test_fenced_with_language_tag(self):
        """Test a javascript fence normalizes to the bare code"""
        assert extract_clean_code("```javascript\ncode\n```") == "code"

    @pytest.mark.parametrize("tag", ["", "js", "python", "typescript", "c++", "objective-c"])
    def test_any_language_tag(self, tag):
        response = f"```{tag}\nconst a = 1;\nconst b = 2;\n```"
        assert extract_clean_code(response) == "const a = 1;\nconst b = 2;"

    def test_unfenced_text_unchanged(self):
        """Test clean text passes through untouched"""
        code = "function add(a, b) {\n  return a + b;\n}"
        assert extract_clean_code(code) == code

    @pytest.mark.parametrize(
        "response",
        [
            "```js\nlet x = 1;\n```",
            "```\n```js\ncode\n```\n```",
            "```markdown\n```python\nx = 1\n```\n```",
            "```js\nlet y = 2;",
        ],
    )
    def test_idempotent(self, response):
        once = extract_clean_code(response)
        assert extract_clean_code(once) == once

    def test_double_fenced_reply(self):
        """Test nested fences are all removed in one pass"""
        assert extract_clean_code("```\n```js\ncode\n```\n```") == "code"

    def test_surrounding_whitespace_stripped(self):
        assert extract_clean_code("\n\n  ```py\nx = 1\n```  \n") == "x = 1"

    def test_inner_fences_kept(self):
        """Test only the enclosing fence is removed"""
        text = 'doc = """\n```\nexample\n```\n"""'
        assert extract_clean_code(text) == text

    def test_empty_fence_becomes_empty(self):
        assert extract_clean_code("```javascript\n```") == ""
        assert extract_clean_code("   ") == ""


class TestCountChangedLines:
    """Test suite for count_changed_lines"""

    def test_identical(self):
        assert count_changed_lines("a\nb\nc", "a\nb\nc") == 0

    def test_single_change(self):
        assert count_changed_lines("a\nb\nc", "a\nB\nc") == 1

    def test_added_lines_count(self):
        """Test lines present only in the longer version count as changed"""
        assert count_changed_lines("a\nb", "a\nb\nc\nd") == 2

    def test_removed_lines_count(self):
        assert count_changed_lines("a\nb\nc", "a") == 2

    def test_positional_shift(self):
        """Test an inserted line shifts every following position"""
        assert count_changed_lines("a\nb\nc", "x\na\nb\nc") == 4
