"""Pytest configuration and fixtures."""

import sys
import zipfile
from pathlib import Path

import pytest

# Add src to path (for 'artifactzip.*' imports without installing)
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root / "src"))


@pytest.fixture(autouse=True)
def _isolate_global_buses():
    """Keep event/log subscribers and verbosity from leaking between tests."""
    from artifactzip.core import diagnostics
    from artifactzip.core.events import get_event_bus
    from artifactzip.core.log_bus import get_log_bus
    from artifactzip.core.logging import VerbosityLevel, set_colors, set_verbosity

    get_event_bus().clear()
    get_log_bus().clear()
    diagnostics.reset_jsonl_sink()
    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(False)
    yield
    get_event_bus().clear()
    get_log_bus().clear()
    diagnostics.reset_jsonl_sink()
    set_verbosity(VerbosityLevel.NORMAL)


@pytest.fixture
def config_resolver(tmp_path):
    """ConfigResolver isolated from the user's and the system's config files."""
    from artifactzip.core.config import ConfigResolver

    return ConfigResolver(
        cli_args={},
        user_config_path=tmp_path / "no-user-config.yaml",
        system_config_path=tmp_path / "no-system-config.yaml",
    )


@pytest.fixture
def make_zip(tmp_path):
    """Write a ZIP file from {entry_name: bytes}; names ending in '/' become dir entries.

    Returns:
        Factory taking (entries, name="archive.zip") and returning the Path
    """

    def _make(entries: dict[str, bytes], name: str = "archive.zip") -> Path:
        path = tmp_path / name
        with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for entry_name, data in entries.items():
                if entry_name.endswith("/"):
                    zf.mkdir(entry_name)
                else:
                    zf.writestr(entry_name, data)
        return path

    return _make


@pytest.fixture
def workspace_dir(tmp_path):
    """Workspace tree used by builder tests.

    Layout:
        a.txt            b"alpha"
        b.csv            b"x,y\\n1,2\\n"
        docs/readme.md   b"# readme"
        docs/sub/c.txt   b"gamma"
        empty/           (directory)
    """
    root = tmp_path / "workspace"
    (root / "docs" / "sub").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "a.txt").write_bytes(b"alpha")
    (root / "b.csv").write_bytes(b"x,y\n1,2\n")
    (root / "docs" / "readme.md").write_bytes(b"# readme")
    (root / "docs" / "sub" / "c.txt").write_bytes(b"gamma")
    return root


@pytest.fixture
def workspace(workspace_dir):
    from artifactzip.archive import LocalWorkspace

    return LocalWorkspace(workspace_dir)


@pytest.fixture
def builder(config_resolver):
    from artifactzip.archive import ArchiveBuilder

    return ArchiveBuilder(config_resolver)
