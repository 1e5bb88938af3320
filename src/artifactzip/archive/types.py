"""Archive value types.

ASCII-only.
"""

from __future__ import annotations

import time
import zipfile
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class ArchiveEntry:
    """One flat record of the archive's central directory."""

    name: str
    size: int
    mtime: float
    is_dir: bool

    @classmethod
    def from_zipinfo(cls, info: zipfile.ZipInfo) -> ArchiveEntry:
        # ZIP timestamps carry no zone; they are interpreted as local time.
        mtime = time.mktime((*info.date_time, 0, 0, -1))
        return cls(
            name=info.filename,
            size=int(info.file_size),
            mtime=float(mtime),
            is_dir=info.is_dir(),
        )


@dataclass(frozen=True)
class BuildResult:
    """Summary of a successful ArchiveBuilder.build() call."""

    archive_path: Path
    passthrough: bool
    files_written: int
    dirs_written: int
    total_bytes: int
