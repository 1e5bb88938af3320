"""ZIP archive building and read-only browsing."""

from .builder import ArchiveBuilder
from .pathglob import match_path
from .streams import EntryStream
from .types import ArchiveEntry, BuildResult
from .vfs import ZipVirtualFile, scan_entries
from .virtual_file import VirtualFile
from .workspace import LocalWorkspace, Workspace, WorkspaceFile

__all__ = [
    "ArchiveBuilder",
    "ArchiveEntry",
    "BuildResult",
    "EntryStream",
    "LocalWorkspace",
    "VirtualFile",
    "Workspace",
    "WorkspaceFile",
    "ZipVirtualFile",
    "match_path",
    "scan_entries",
]
