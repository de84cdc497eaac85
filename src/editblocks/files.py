from __future__ import annotations

import pathlib
from abc import ABC, abstractmethod
from typing import Dict, Optional


class FileOpsError(ValueError):
    """Raised for unsafe or invalid file paths."""


class PatchFileOps(ABC):
    """
    Abstract contract for file operations used by the patch runner.
    Paths are relative to the project root. Implementations must handle path
    safety and track the changes map.
    """

    @abstractmethod
    def open(self, rel: str) -> str:
        """Return file content; raise FileNotFoundError for missing files."""
        ...

    @abstractmethod
    def write(self, rel: str, content: str) -> None: ...

    @property
    @abstractmethod
    def changes_map(self) -> Dict[str, str]:
        """
        A map of relative file paths to change kind: 'created' | 'updated'.
        """
        ...


def _record(changes: Dict[str, str], rel: str, change: str) -> None:
    # A file created earlier in the same run stays "created"
    if rel not in changes:
        changes[rel] = change


class FileSystemPatchFileOps(PatchFileOps):
    """
    File-backed implementation that keeps every path under base_path and
    records change kinds.
    """

    def __init__(self, base_path: pathlib.Path):
        self._base_path = base_path
        self._changes: Dict[str, str] = {}

    def _resolve_safe_path(self, rel: str) -> pathlib.Path:
        if not rel:
            raise FileOpsError("Empty path")
        if rel.startswith("/") or rel.startswith("~") or rel.startswith("\\"):
            raise FileOpsError(f"Absolute paths are not allowed: {rel}")
        abs_path = (self._base_path / rel).resolve()
        base_resolved = self._base_path.resolve()
        if base_resolved in abs_path.parents:
            return abs_path
        raise FileOpsError(f"Path escapes project root: {rel}")

    def open(self, rel: str) -> str:
        path = self._resolve_safe_path(rel)
        with path.open("rt", encoding="utf-8") as fh:
            return fh.read()

    def write(self, rel: str, content: str) -> None:
        path = self._resolve_safe_path(rel)
        existed = path.exists()
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wt", encoding="utf-8") as fh:
            fh.write(content)
        _record(self._changes, rel, "updated" if existed else "created")

    @property
    def changes_map(self) -> Dict[str, str]:
        return self._changes


class InMemoryPatchFileOps(PatchFileOps):
    """
    Dictionary-backed file ops. Reads missing from the dictionary go to the
    optional base ops; writes never do, which makes this usable for dry runs.
    """

    def __init__(
        self,
        files: Optional[Dict[str, str]] = None,
        base: Optional[PatchFileOps] = None,
    ):
        self.files: Dict[str, str] = dict(files or {})
        self._base = base
        self._changes: Dict[str, str] = {}
        # Content as first read, for files later overwritten here
        self.originals: Dict[str, str] = {}

    def open(self, rel: str) -> str:
        if rel in self.files:
            return self.files[rel]
        if self._base is None:
            raise FileNotFoundError(rel)
        content = self._base.open(rel)
        self.files[rel] = content
        self.originals[rel] = content
        return content

    def write(self, rel: str, content: str) -> None:
        existed = rel in self.files
        if existed:
            self.originals.setdefault(rel, self.files[rel])
        _record(self._changes, rel, "updated" if existed else "created")
        self.files[rel] = content

    @property
    def changes_map(self) -> Dict[str, str]:
        return self._changes
