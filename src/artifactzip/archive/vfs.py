"""ZIP archive exposed as a read-only VirtualFile tree.

ZIP has no real directories: every entry is a flat `/`-separated name, and
explicit directory entries are optional. A node is therefore just
(archive, path) and directory-ness is derived from entry-name prefixes:

- a path that is empty (the root) or ends in `/` is directory-shaped;
- a directory-shaped path is a directory iff some entry name starts with it;
- any other path is a file iff an entry has exactly that name.

Nodes are cheap values. Every query opens the archive, scans the entry
table and closes it again; nothing is cached, so a node always reflects the
archive currently on disk. A missing archive answers False / empty / 0.
"""

from __future__ import annotations

import re
import zipfile
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from artifactzip.core.diagnostics import observe_operation
from artifactzip.core.errors import ArchiveIOError, EntryNotFoundError
from artifactzip.core.logging import get_logger

from .pathglob import match_path
from .streams import ENTRY_NAME_ENCODING, EntryStream, open_entry
from .types import ArchiveEntry
from .virtual_file import VirtualFile

_logger = get_logger(__name__)

_COMPONENT = "archive.vfs"
_NAME_RE = re.compile(r"^(.+/)?([^/]+)/?$")
# Characters left unescaped by to_uri(), in addition to alphanumerics and "_.-~".
_URI_SAFE = "/:@!$&'()*+,;="


def scan_entries(archive: Path) -> list[ArchiveEntry]:
    """Read the entry table of `archive`.

    The handle is closed before this returns or raises.

    Returns:
        Entries in central-directory order; [] when the archive does not exist.

    Raises:
        ArchiveIOError: archive unreadable or not a ZIP file
    """
    try:
        with zipfile.ZipFile(archive, "r", metadata_encoding=ENTRY_NAME_ENCODING) as zf:
            entries = [ArchiveEntry.from_zipinfo(info) for info in zf.infolist()]
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError, zipfile.BadZipFile) as e:
        raise ArchiveIOError(archive, e) from e
    _logger.debug(f"archive.scan archive={str(archive)!r} entries={len(entries)}")
    return entries


def _child_segment(remainder: str) -> str:
    """Cut an entry remainder after its first separator ("a/b/c" -> "a/")."""
    idx = remainder.find("/")
    return remainder if idx < 0 else remainder[: idx + 1]


@dataclass(frozen=True)
class ZipVirtualFile(VirtualFile):
    """One (possibly nonexistent) path inside a ZIP archive.

    Construction performs no I/O. The archive is referenced, never owned or
    locked.
    """

    archive: Path
    path: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.archive, Path):
            object.__setattr__(self, "archive", Path(self.archive))

    @classmethod
    def root(cls, archive: Path | str) -> ZipVirtualFile:
        return cls(Path(archive), "")

    def _at(self, path: str) -> ZipVirtualFile:
        return ZipVirtualFile(self.archive, path)

    def _looks_like_dir(self) -> bool:
        return self.path == "" or self.path.endswith("/")

    def _find(self, entries: list[ArchiveEntry]) -> ArchiveEntry | None:
        # zipfile resolves duplicate names to the last record; do the same.
        found = None
        for entry in entries:
            if entry.name == self.path:
                found = entry
        return found

    @property
    def name(self) -> str:
        return _NAME_RE.sub(r"\2", self.path, count=1)

    @property
    def parent(self) -> ZipVirtualFile | None:
        if not self.path:
            return None

        last = self.path.rfind("/")
        if last < 0:
            return self._at("")
        if last + 1 != len(self.path):
            return self._at(self.path[: last + 1])

        # Trailing "/": step over the directory's own name.
        last = self.path.rfind("/", 0, last)
        if last < 0:
            return self._at("")
        return self._at(self.path[: last + 1])

    def to_uri(self) -> str:
        return quote(self.path, safe=_URI_SAFE)

    def is_dir(self) -> bool:
        if not self._looks_like_dir() or not self.archive.exists():
            return False
        return any(e.name.startswith(self.path) for e in scan_entries(self.archive))

    def is_file(self) -> bool:
        if self._looks_like_dir() or not self.archive.exists():
            return False
        return self._find(scan_entries(self.archive)) is not None

    def exists(self) -> bool:
        if not self.archive.exists():
            return False
        entries = scan_entries(self.archive)
        if self._looks_like_dir():
            return any(e.name.startswith(self.path) for e in entries)
        return self._find(entries) is not None

    def list(self) -> set[VirtualFile]:
        """Immediate children of a directory-shaped node.

        Nested content collapses into one trailing-slash child per
        subdirectory. Unordered; empty for missing paths and file nodes.
        """
        if not self._looks_like_dir() or not self.archive.exists():
            return set()

        base = {"archive": str(self.archive), "path": self.path}
        with observe_operation(component=_COMPONENT, operation="archive.list", base=base) as s:
            children: set[VirtualFile] = set()
            for entry in scan_entries(self.archive):
                if not entry.name.startswith(self.path):
                    continue
                remainder = entry.name[len(self.path) :]
                if not remainder:
                    # Explicit entry for this directory itself.
                    continue
                children.add(self._at(self.path + _child_segment(remainder)))
            s["items_count"] = len(children)
            return children

    def list_glob(self, glob: str | None) -> set[str]:
        """Names, relative to this node, of files matching an Ant-style glob.

        Explicit directory entries never match. A None glob is treated as "".
        """
        if not self._looks_like_dir() or not self.archive.exists():
            return set()

        pattern = "" if glob is None else glob
        base = {"archive": str(self.archive), "path": self.path, "glob": pattern}
        with observe_operation(component=_COMPONENT, operation="archive.glob", base=base) as s:
            names: set[str] = set()
            for entry in scan_entries(self.archive):
                if entry.is_dir or not entry.name.startswith(self.path):
                    continue
                rel = entry.name[len(self.path) :]
                if match_path(pattern, rel):
                    names.add(rel)
            s["items_count"] = len(names)
            return names

    def child(self, name: str) -> ZipVirtualFile:
        """Resolve a child by name.

        Probes the archive: returns the directory node `path + name + "/"`
        when it is a directory, otherwise the file node `path + name`.
        Scan failures propagate.
        """
        as_dir = self._at(f"{self.path}{name}/")
        if as_dir.is_dir():
            return as_dir
        return self._at(f"{self.path}{name}")

    def length(self) -> int:
        if not self.archive.exists():
            return 0
        entry = self._find(scan_entries(self.archive))
        return entry.size if entry is not None else 0

    def last_modified(self) -> float:
        """Entry modification time in POSIX seconds, or 0."""
        if not self.archive.exists():
            return 0
        entry = self._find(scan_entries(self.archive))
        return entry.mtime if entry is not None else 0

    def can_read(self) -> bool:
        return True

    def open(self) -> EntryStream:
        """Open the entry for streaming.

        The returned stream owns the archive handle; close it (or use it as a
        context manager) to release the archive.

        Raises:
            EntryNotFoundError: archive or entry missing, or directory-shaped path
            ArchiveIOError: archive unreadable or corrupt
        """
        if not self.archive.exists():
            raise EntryNotFoundError(self.path, self.archive)
        if self._looks_like_dir():
            raise EntryNotFoundError(self.path, self.archive, "Is a directory")

        base = {"archive": str(self.archive), "path": self.path}
        with observe_operation(component=_COMPONENT, operation="archive.open", base=base):
            stream = open_entry(self.archive, self.path)
            if stream is None:
                raise EntryNotFoundError(self.path, self.archive)
            return stream

    def __str__(self) -> str:
        return f"{self.archive}!/{self.path}"
