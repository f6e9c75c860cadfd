"""Tests for file_store module"""

import os
import stat

import pytest

from bugfixer.core.errors import NotFoundError, UnreadableFileError
from bugfixer.core.file_store import FileStore


class TestFileStore:
    """Test suite for FileStore"""

    def test_resolve_relative(self, file_store, workspace):
        assert file_store.resolve("src/a.js") == workspace / "src" / "a.js"

    def test_resolve_absolute(self, file_store, tmp_path):
        target = tmp_path / "x.js"
        assert file_store.resolve(str(target)) == target

    def test_exists(self, file_store, workspace):
        (workspace / "a.js").write_text("x")
        (workspace / "dir").mkdir()
        assert file_store.exists("a.js") is True
        assert file_store.exists("./a.js") is True
        assert file_store.exists("dir") is False
        assert file_store.exists("missing.js") is False

    def test_read_missing_raises(self, file_store):
        with pytest.raises(NotFoundError, match="File not found: nope.js"):
            file_store.read("nope.js")

    def test_read_undecodable_raises(self, file_store, workspace):
        (workspace / "legacy.js").write_bytes(b"var s = '\xe9';\n")
        with pytest.raises(UnreadableFileError, match="legacy.js"):
            file_store.read("legacy.js")

    def test_contains(self, file_store, workspace, tmp_path_factory):
        outside = tmp_path_factory.mktemp("elsewhere") / "os.py"
        assert file_store.contains("src/a.js") is True
        assert file_store.contains(str(workspace / "a.js")) is True
        assert file_store.contains("../a.js") is False
        assert file_store.contains(str(outside)) is False

    def test_canonical_merges_spellings(self, file_store, workspace):
        assert file_store.canonical("./a.js") == file_store.canonical(str(workspace / "a.js"))

    def test_round_trip_preserves_crlf(self, file_store, workspace):
        """Test content written and read back is byte-identical"""
        target = workspace / "win.js"
        target.write_bytes(b"line1\r\nline2\r\n")

        content = file_store.read("win.js")
        file_store.write("win.js", content)

        assert target.read_bytes() == b"line1\r\nline2\r\n"

    def test_write_replaces_and_leaves_no_tmp(self, file_store, workspace):
        (workspace / "a.js").write_text("old")
        file_store.write("a.js", "new")
        assert (workspace / "a.js").read_text() == "new"
        assert list(workspace.iterdir()) == [workspace / "a.js"]

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_write_keeps_mode(self, file_store, workspace):
        target = workspace / "run.sh"
        target.write_text("echo old")
        target.chmod(0o755)

        file_store.write("run.sh", "echo new")

        assert stat.S_IMODE(target.stat().st_mode) == 0o755

    def test_write_failure_cleans_up(self, file_store, workspace):
        with pytest.raises(OSError):
            file_store.write("no_such_dir/a.js", "x")
        assert list(workspace.iterdir()) == []
