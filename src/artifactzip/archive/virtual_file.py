"""Read-only virtual file contract.

A VirtualFile is a possibly-nonexistent location in some browsable storage.
Implementations decide how directories are represented; callers only use
the methods below. Any query may touch storage and may raise.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO


class VirtualFile(ABC):
    """Abstract node of a read-only hierarchical view."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Last path segment, without a trailing separator."""

    @property
    @abstractmethod
    def parent(self) -> VirtualFile | None:
        """Parent node, or None for the root."""

    @abstractmethod
    def to_uri(self) -> str:
        """Percent-encoded relative URI of this node."""

    @abstractmethod
    def is_dir(self) -> bool: ...

    @abstractmethod
    def is_file(self) -> bool: ...

    @abstractmethod
    def exists(self) -> bool: ...

    @abstractmethod
    def list(self) -> set[VirtualFile]:
        """Immediate children. Order is not defined."""

    @abstractmethod
    def list_glob(self, glob: str | None) -> set[str]:
        """Relative names of descendant files matching an Ant-style glob."""

    @abstractmethod
    def child(self, name: str) -> VirtualFile: ...

    @abstractmethod
    def length(self) -> int: ...

    @abstractmethod
    def last_modified(self) -> float: ...

    @abstractmethod
    def can_read(self) -> bool: ...

    @abstractmethod
    def open(self) -> BinaryIO: ...

    def read_bytes(self) -> bytes:
        """Read the whole content of a file node."""
        with self.open() as f:
            return f.read()
