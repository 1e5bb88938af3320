"""Archive builder: pack workspace sources into one ZIP file.

The target archive only ever appears complete. Content is written to a
sibling staging file (`<archive>.writing.zip`) which is renamed over the
target once the ZIP central directory has been committed. On failure the
staging file is left in place for inspection and the target is untouched.

Updating an existing archive is not supported; every build starts from an
empty ZIP.
"""

from __future__ import annotations

import os
import time
import zipfile
from collections.abc import Mapping
from pathlib import Path

from artifactzip.core.config import ConfigResolver
from artifactzip.core.diagnostics import observe_operation
from artifactzip.core.errors import ArchiveError, ArchiveIOError, ConfigError
from artifactzip.core.logging import get_logger

from .types import BuildResult
from .workspace import Workspace, WorkspaceFile

log = get_logger(__name__)

_COMPONENT = "archive.builder"
_DETERMINISTIC_DATE = (1980, 1, 1, 0, 0, 0)
_FILE_MODE = 0o100644
_DIR_MODE = 0o040755
# MS-DOS directory attribute bit.
_DOS_DIR = 0x10

# zipfile reports size-limit violations while writing as RuntimeError.
_WRITE_ERRORS = (OSError, RuntimeError, zipfile.BadZipFile, zipfile.LargeZipFile)


def _normalize_entry_name(entry_name: str) -> str:
    name = str(entry_name).replace("\\", "/").lstrip("/")
    if not name.strip("/"):
        raise ArchiveError(f"Invalid archive entry name: {entry_name!r}")
    return name


class ArchiveBuilder:
    """Build ZIP archives from an artifact mapping.

    Configuration keys:
    - archive.extension (default "zip")
    - archive.staging_suffix (default ".writing")
    - archive.deterministic (default False): fixed 1980-01-01 timestamps
    - archive.chunk_size (default 65536): copy buffer size
    """

    def __init__(self, resolver: ConfigResolver | None = None) -> None:
        self._resolver = resolver or ConfigResolver(cli_args={})
        self.extension = self._resolver.resolve_str("archive.extension", "zip").lstrip(".")
        self.staging_suffix = self._resolver.resolve_str("archive.staging_suffix", ".writing")
        self.deterministic = self._resolver.resolve_bool("archive.deterministic", False)
        self.chunk_size = self._resolver.resolve_int("archive.chunk_size", 64 * 1024)
        if self.chunk_size <= 0:
            raise ConfigError("Config key 'archive.chunk_size' must be > 0")

    def staging_path(self, archive: Path) -> Path:
        """Sibling temporary file used while `archive` is being written."""
        return archive.with_name(f"{archive.name}{self.staging_suffix}.{self.extension}")

    def is_passthrough(self, artifacts: Mapping[str, str]) -> bool:
        """A single source that is already an archive is copied, not repacked."""
        if len(artifacts) != 1:
            return False
        source = next(iter(artifacts))
        return source.endswith(f".{self.extension}")

    def build(
        self, archive: Path, workspace: Workspace, artifacts: Mapping[str, str]
    ) -> BuildResult:
        """Write `artifacts` ({source_rel_path: entry_name}) into `archive`.

        Entries are written in mapping order. Any existing archive at the
        target path is replaced atomically.

        Raises:
            ArchiveIOError: reading a source, writing the ZIP or renaming failed
            ArchiveError: invalid or duplicate entry name
            WorkspaceError: source missing or outside the workspace
            OperationCancelledError: the workspace cancelled a copy
        """
        archive = Path(archive)
        base = {
            "archive": str(archive),
            "artifacts_count": len(artifacts),
            "deterministic": self.deterministic,
        }
        with observe_operation(component=_COMPONENT, operation="archive.build", base=base) as s:
            if self.is_passthrough(artifacts):
                result = self._copy_single_archive(archive, workspace, next(iter(artifacts)))
            else:
                result = self._pack(archive, workspace, artifacts)
            s.update(
                {
                    "passthrough": result.passthrough,
                    "files": result.files_written,
                    "dirs": result.dirs_written,
                    "bytes": result.total_bytes,
                }
            )
            return result

    def delete(self, archive: Path) -> bool:
        """Remove `archive`.

        Returns:
            True if a file was removed, False if there was nothing to delete.
        """
        archive = Path(archive)
        base = {"archive": str(archive)}
        with observe_operation(component=_COMPONENT, operation="archive.delete", base=base) as s:
            try:
                archive.unlink()
            except FileNotFoundError:
                s["removed"] = False
                return False
            s["removed"] = True
            return True

    def _copy_single_archive(
        self, archive: Path, workspace: Workspace, source: str
    ) -> BuildResult:
        staging = self.staging_path(archive)
        log.verbose(f"archive.build passthrough source={source!r} staging={str(staging)!r}")
        try:
            archive.parent.mkdir(parents=True, exist_ok=True)
            total = workspace.child(source).copy_to(staging)
            os.replace(staging, archive)
        except _WRITE_ERRORS as e:
            self._report_staging_left(staging)
            raise ArchiveIOError(staging, e) from e
        except BaseException:
            self._report_staging_left(staging)
            raise
        return BuildResult(
            archive_path=archive,
            passthrough=True,
            files_written=1,
            dirs_written=0,
            total_bytes=total,
        )

    def _pack(
        self, archive: Path, workspace: Workspace, artifacts: Mapping[str, str]
    ) -> BuildResult:
        staging = self.staging_path(archive)
        log.verbose(f"archive.build pack entries={len(artifacts)} staging={str(staging)!r}")
        files = 0
        dirs = 0
        total = 0
        written: set[str] = set()
        try:
            archive.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(staging, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                for source, entry_name in artifacts.items():
                    src = workspace.child(source)
                    name = _normalize_entry_name(entry_name)
                    if src.is_dir():
                        dirs += self._write_dirs(zf, name, written)
                    else:
                        total += self._write_file(zf, src, name, written)
                        files += 1
            os.replace(staging, archive)
        except _WRITE_ERRORS as e:
            self._report_staging_left(staging)
            raise ArchiveIOError(staging, e) from e
        except BaseException:
            self._report_staging_left(staging)
            raise
        return BuildResult(
            archive_path=archive,
            passthrough=False,
            files_written=files,
            dirs_written=dirs,
            total_bytes=total,
        )

    def _zipinfo(self, name: str, mode: int) -> zipfile.ZipInfo:
        date_time = _DETERMINISTIC_DATE if self.deterministic else time.localtime()[:6]
        zi = zipfile.ZipInfo(filename=name, date_time=date_time)
        zi.external_attr = mode << 16
        return zi

    def _write_dirs(self, zf: zipfile.ZipFile, name: str, written: set[str]) -> int:
        """Write `name/` and any missing parent directory entries."""
        created = 0
        segments = [s for s in name.split("/") if s]
        for i in range(len(segments)):
            dir_name = "/".join(segments[: i + 1]) + "/"
            if dir_name in written:
                continue
            zi = self._zipinfo(dir_name, _DIR_MODE)
            zi.external_attr |= _DOS_DIR
            zf.writestr(zi, b"")
            written.add(dir_name)
            created += 1
            log.debug(f"archive.build dir entry={dir_name!r}")
        return created

    def _write_file(
        self, zf: zipfile.ZipFile, src: WorkspaceFile, name: str, written: set[str]
    ) -> int:
        if name in written:
            raise ArchiveError(
                f"Duplicate archive entry '{name}' (source {src.rel_path!r})",
                "Map each source to a distinct entry name",
            )
        zi = self._zipinfo(name, _FILE_MODE)
        zi.compress_type = zipfile.ZIP_DEFLATED
        size = 0
        with src.open_read() as f_in, zf.open(zi, "w", force_zip64=True) as f_out:
            while chunk := f_in.read(self.chunk_size):
                f_out.write(chunk)
                size += len(chunk)
        written.add(name)
        log.debug(f"archive.build file entry={name!r} source={src.rel_path!r} bytes={size}")
        return size

    def _report_staging_left(self, staging: Path) -> None:
        if staging.exists():
            log.warning(f"archive.build failed; staging file left for inspection: {staging}")
