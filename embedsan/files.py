"""Registry of source files and modules named in race reports."""

from __future__ import annotations

import os


class FileDictionary:
    """Keeps the files and module paths seen while reporting races."""

    def __init__(self) -> None:
        self.module_paths: set[str] = set()
        self.files: set[str] = set()

    def insert_file(self, file_name: str) -> None:
        """Record a source file name."""
        self.files.add(file_name)

    def exists(self, file_name: str) -> bool:
        """Tell whether a source file name has been recorded."""
        return file_name in self.files

    def save_module(self, module_path: str | os.PathLike) -> None:
        """Record the path of a module."""
        self.module_paths.add(os.fspath(module_path))