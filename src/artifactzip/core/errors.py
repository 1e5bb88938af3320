"""Error handling with friendly messages."""

from __future__ import annotations

from pathlib import Path


class ArtifactZipError(Exception):
    """Base exception for all artifactzip errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(message)

    def __str__(self) -> str:
        if self.suggestion:
            return f"{self.message}\nSuggestion: {self.suggestion}"
        return self.message


class ConfigError(ArtifactZipError):
    """Configuration error."""

    pass


class OperationCancelledError(ArtifactZipError):
    """A long-running copy was interrupted by its caller."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Operation cancelled: {operation}")


class WorkspaceError(ArtifactZipError):
    """Workspace (archive source) error."""

    pass


class InvalidRelativePathError(WorkspaceError):
    """Raised when a requested relative path is invalid."""


class PathOutsideRootError(WorkspaceError):
    """Raised when a requested path escapes the workspace root."""


class SourceNotFoundError(WorkspaceError):
    """Workspace source does not exist."""

    def __init__(self, rel_path: str) -> None:
        self.rel_path = rel_path
        super().__init__(
            f"Source '{rel_path}' not found in workspace",
            "Check the artifact mapping against the workspace contents",
        )


class ArchiveError(ArtifactZipError):
    """Archive operation error."""

    pass


class EntryNotFoundError(ArchiveError):
    """Requested archive entry (or the archive itself) is absent."""

    def __init__(
        self, path: str, archive: Path, reason: str = "No such file or directory"
    ) -> None:
        self.path = path
        self.archive = archive
        self.reason = reason
        super().__init__(f"{path} ({reason})")


class ArchiveIOError(ArchiveError):
    """Reading or writing an archive failed."""

    def __init__(self, path: Path | str, cause: BaseException) -> None:
        self.path = Path(path)
        self.cause = cause
        super().__init__(
            f"I/O failure on archive '{path}': {type(cause).__name__}: {cause}",
            "Check that the file is a readable ZIP archive and the disk is not full",
        )
