"""Workspace accessor: where archive sources come from.

The builder only depends on the Workspace / WorkspaceFile protocols. Hosts
with their own storage (remote agents, build sandboxes) implement those;
LocalWorkspace serves a plain directory on disk.

All source paths are relative to the workspace root.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO, Protocol, cast, runtime_checkable

from artifactzip.core.errors import (
    InvalidRelativePathError,
    OperationCancelledError,
    PathOutsideRootError,
    SourceNotFoundError,
    WorkspaceError,
)
from artifactzip.core.logging import get_logger

_logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


@runtime_checkable
class WorkspaceFile(Protocol):
    """A single source inside a workspace."""

    @property
    def rel_path(self) -> str: ...

    def is_dir(self) -> bool: ...

    def open_read(self) -> AbstractContextManager[BinaryIO]: ...

    def copy_to(self, dest: Path) -> int:
        """Copy this file's bytes to `dest` and return the number of bytes copied."""
        ...


@runtime_checkable
class Workspace(Protocol):
    """Supplies sources by relative path."""

    def child(self, rel_path: str) -> WorkspaceFile: ...


def normalize_rel_path(rel_path: str) -> PurePosixPath:
    """Normalize and validate a relative path.

    Rules:
    - must be relative (no leading slash)
    - no '..' segments
    - backslashes are treated as separators

    Raises:
        InvalidRelativePathError
    """
    if rel_path is None:
        raise InvalidRelativePathError("Path is required")

    p = PurePosixPath(str(rel_path).replace("\\", "/"))
    if p.is_absolute():
        raise InvalidRelativePathError(f"Absolute paths are not allowed: {rel_path}")
    if any(part == ".." for part in p.parts):
        raise InvalidRelativePathError(f"Parent path segments ('..') are not allowed: {rel_path}")
    return p


def resolve_under(root: Path, rel_path: str) -> Path:
    """Resolve a relative path inside `root`.

    Raises:
        InvalidRelativePathError
        PathOutsideRootError: when a symlink leads out of the root
    """
    rel = normalize_rel_path(rel_path)
    root_resolved = root.resolve()
    abs_path = (root_resolved / Path(*rel.parts)).resolve()
    try:
        abs_path.relative_to(root_resolved)
    except ValueError:
        raise PathOutsideRootError(f"Path escapes workspace root: {rel_path}") from None
    return abs_path


class _CancellableReader:
    """Binary reader that honours a cancellation event between reads."""

    def __init__(self, raw: BinaryIO, cancel: threading.Event | None, operation: str) -> None:
        self._raw = raw
        self._cancel = cancel
        self._operation = operation
        self.bytes_read = 0

    def _check(self) -> None:
        if self._cancel is not None and self._cancel.is_set():
            raise OperationCancelledError(self._operation)

    def read(self, size: int = -1) -> bytes:
        self._check()
        data = self._raw.read(size)
        self.bytes_read += len(data)
        return data

    def readinto(self, b: bytearray | memoryview) -> int:
        self._check()
        n = self._raw.readinto(b)  # type: ignore[attr-defined]
        self.bytes_read += int(n or 0)
        return int(n or 0)

    def __iter__(self) -> Iterator[bytes]:
        return iter(lambda: self.read(DEFAULT_CHUNK_SIZE), b"")

    def __getattr__(self, name: str) -> Any:
        return getattr(self._raw, name)


@dataclass(frozen=True)
class LocalWorkspaceFile:
    """Source file or directory under a LocalWorkspace root."""

    workspace: LocalWorkspace
    rel_path: str
    abs_path: Path

    def is_dir(self) -> bool:
        return self.abs_path.is_dir()

    @contextmanager
    def open_read(self) -> Iterator[BinaryIO]:
        if not self.abs_path.exists():
            raise SourceNotFoundError(self.rel_path)
        if self.abs_path.is_dir():
            raise WorkspaceError(f"Cannot read '{self.rel_path}': Is a directory")
        with open(self.abs_path, "rb") as f:
            reader = _CancellableReader(f, self.workspace.cancel, f"read {self.rel_path}")
            yield cast(BinaryIO, reader)

    def copy_to(self, dest: Path) -> int:
        """Stream this file to `dest`, creating parent directories."""
        dest.parent.mkdir(parents=True, exist_ok=True)
        total = 0
        with self.open_read() as src, open(dest, "wb") as out:
            while chunk := src.read(self.workspace.chunk_size):
                out.write(chunk)
                total += len(chunk)
        _logger.debug(
            f"workspace.copy rel_path={self.rel_path!r} dest={str(dest)!r} bytes={total}"
        )
        return total


class LocalWorkspace:
    """Workspace backed by a local directory.

    Args:
        root: Workspace root directory
        cancel: Optional event; once set, every pending read raises
            OperationCancelledError
        chunk_size: Read size used by copy_to()
    """

    def __init__(
        self,
        root: Path,
        *,
        cancel: threading.Event | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be > 0")
        self.root = Path(root).expanduser()
        self.cancel = cancel
        self.chunk_size = chunk_size

    def child(self, rel_path: str) -> LocalWorkspaceFile:
        return LocalWorkspaceFile(
            workspace=self, rel_path=rel_path, abs_path=resolve_under(self.root, rel_path)
        )

    def __repr__(self) -> str:
        return f"LocalWorkspace({str(self.root)!r})"
