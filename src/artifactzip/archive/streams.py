"""Streaming helpers for archive entries.

An entry stream owns the archive handle it was opened from: closing the
stream closes the handle. This is the only place where a handle outlives
the call that opened it.
"""

from __future__ import annotations

import io
import zipfile
from pathlib import Path
from typing import IO

from artifactzip.core.errors import ArchiveIOError

# Entry names are read as UTF-8 whether or not the UTF-8 flag bit is set.
ENTRY_NAME_ENCODING = "utf-8"


class EntryStream(io.BufferedIOBase):
    """Read-only binary stream over one decompressed ZIP entry."""

    def __init__(self, handle: zipfile.ZipFile, entry: IO[bytes], name: str) -> None:
        super().__init__()
        self._handle = handle
        self._entry = entry
        self.name = name

    def _ensure_open(self) -> None:
        if self.closed:
            raise ValueError("I/O operation on closed entry stream")

    @property
    def archive_path(self) -> Path:
        return Path(str(self._handle.filename))

    def readable(self) -> bool:
        return True

    def read(self, size: int | None = -1) -> bytes:
        self._ensure_open()
        try:
            return self._entry.read(-1 if size is None else size)
        except zipfile.BadZipFile as e:
            raise ArchiveIOError(self.archive_path, e) from e

    def read1(self, size: int = -1) -> bytes:
        self._ensure_open()
        try:
            return self._entry.read1(size)  # type: ignore[attr-defined]
        except zipfile.BadZipFile as e:
            raise ArchiveIOError(self.archive_path, e) from e

    def readinto(self, b: bytearray | memoryview) -> int:  # type: ignore[override]
        data = self.read(len(b))
        n = len(data)
        b[:n] = data
        return n

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._entry.close()
        finally:
            try:
                self._handle.close()
            finally:
                super().close()

    def __repr__(self) -> str:
        return f"<EntryStream name={self.name!r} closed={self.closed}>"


def open_entry(archive: Path, name: str) -> EntryStream | None:
    """Open `name` in `archive` and hand the handle over to the stream.

    Returns None (with the handle already closed) when the archive or the
    entry does not exist.

    Raises:
        ArchiveIOError: archive unreadable or corrupt
    """
    try:
        handle = zipfile.ZipFile(archive, "r", metadata_encoding=ENTRY_NAME_ENCODING)
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError, zipfile.BadZipFile) as e:
        raise ArchiveIOError(archive, e) from e

    try:
        info = handle.getinfo(name)
    except KeyError:
        handle.close()
        return None

    try:
        entry = handle.open(info, "r")
    except (OSError, zipfile.BadZipFile) as e:
        handle.close()
        raise ArchiveIOError(archive, e) from e
    except BaseException:
        handle.close()
        raise
    return EntryStream(handle, entry, name)
