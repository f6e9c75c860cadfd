"""File store for reading and writing fix targets

IMPORTANT: Reads and writes go through newline="" so a rollback restores the
original bytes exactly, including CRLF line endings.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Optional

from bugfixer.core.errors import NotFoundError, UnreadableFileError


logger = logging.getLogger(__name__)


class FileStore:
    """Working-tree access for the Fix Engine"""

    def __init__(self, base_dir: Optional[Path] = None, encoding: str = "utf-8"):
        """
        Initialize file store

        Args:
            base_dir: Directory relative paths resolve against (cwd if None)
            encoding: Text encoding for reads and writes
        """
        self._base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.encoding = encoding

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def resolve(self, file_path: str | Path) -> Path:
        """
        Resolve file path to absolute path, handling both relative and absolute paths

        Args:
            file_path: File path (can be relative or absolute)

        Returns:
            Absolute Path object
        """
        path = Path(file_path)
        if path.is_absolute():
            return path
        return self._base_dir / path

    def exists(self, file_path: str | Path) -> bool:
        return self.resolve(file_path).is_file()

    def read(self, file_path: str | Path) -> str:
        """
        Read file contents

        Raises:
            NotFoundError: If the file does not exist
            UnreadableFileError: If the content is not valid text in the store's encoding
        """
        target = self.resolve(file_path)
        if not target.is_file():
            raise NotFoundError(str(file_path))
        try:
            with open(target, "r", encoding=self.encoding, newline="") as f:
                return f.read()
        except UnicodeDecodeError:
            raise UnreadableFileError(str(file_path), self.encoding)

    def canonical(self, file_path: str | Path) -> Path:
        """Fully resolved path, used to tell two spellings of one file apart"""
        return self.resolve(file_path).resolve()

    def contains(self, file_path: str | Path) -> bool:
        """Whether the path lies inside the base directory"""
        return self.canonical(file_path).is_relative_to(self._base_dir.resolve())

    def write(self, file_path: str | Path, content: str) -> None:
        """
        Atomically write content to file (POSIX-safe)

        Args:
            file_path: Path to write to
            content: Content to write

        Raises:
            OSError: If write fails
        """
        target = self.resolve(file_path)
        tmp_path = target.with_name(f"{target.name}.bugfixer.tmp")
        try:
            with open(tmp_path, "w", encoding=self.encoding, newline="") as f:
                f.write(content)
            if target.exists():
                shutil.copymode(target, tmp_path)
            os.replace(tmp_path, target)
        except OSError:
            if tmp_path.exists():
                tmp_path.unlink()
            raise
        logger.debug(f"Atomically wrote {len(content)} chars to {target}")
