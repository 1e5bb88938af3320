"""artifactzip core: configuration, errors, logging and diagnostics.

The archive modules build on these; nothing here knows about ZIP files.
"""

__version__ = "1.0.0"

from artifactzip.core.config import ConfigResolver, ConfigSource, LoggingPolicy
from artifactzip.core.diagnostics import build_envelope, install_jsonl_sink, observe_operation
from artifactzip.core.errors import (
    ArchiveError,
    ArchiveIOError,
    ArtifactZipError,
    ConfigError,
    EntryNotFoundError,
    InvalidRelativePathError,
    OperationCancelledError,
    PathOutsideRootError,
    SourceNotFoundError,
    WorkspaceError,
)
from artifactzip.core.events import EventBus, get_event_bus
from artifactzip.core.logging import (
    VerbosityLevel,
    apply_logging_policy,
    get_logger,
    get_verbosity,
    set_colors,
    set_verbosity,
)

__all__ = [
    # Config
    "ConfigResolver",
    "ConfigSource",
    "LoggingPolicy",
    # Errors
    "ArtifactZipError",
    "ConfigError",
    "OperationCancelledError",
    "WorkspaceError",
    "InvalidRelativePathError",
    "PathOutsideRootError",
    "SourceNotFoundError",
    "ArchiveError",
    "EntryNotFoundError",
    "ArchiveIOError",
    # Events and diagnostics
    "EventBus",
    "get_event_bus",
    "build_envelope",
    "observe_operation",
    "install_jsonl_sink",
    # Logging
    "VerbosityLevel",
    "apply_logging_policy",
    "get_logger",
    "get_verbosity",
    "set_colors",
    "set_verbosity",
]
