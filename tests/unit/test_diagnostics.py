"""Tests for diagnostics envelopes emitted by archive operations."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from artifactzip.archive import ArchiveBuilder, LocalWorkspace, ZipVirtualFile
from artifactzip.core.config import ConfigResolver
from artifactzip.core.diagnostics import build_envelope, install_jsonl_sink, observe_operation
from artifactzip.core.errors import SourceNotFoundError
from artifactzip.core.events import get_event_bus
from artifactzip.core.log_bus import LogRecord, get_log_bus

_ENVELOPE_KEYS = {"event", "component", "operation", "timestamp", "data"}


def _collect() -> list[tuple[str, dict[str, Any]]]:
    seen: list[tuple[str, dict[str, Any]]] = []
    get_event_bus().subscribe_all(lambda event, data: seen.append((event, data)))
    return seen


def test_build_envelope_shape() -> None:
    env = build_envelope(event="e", component="c", operation="o", data={"k": 1})
    assert set(env) == _ENVELOPE_KEYS
    assert env["timestamp"].endswith("Z")
    assert env["data"] == {"k": 1}


def test_build_publishes_start_and_end(
    builder: ArchiveBuilder, workspace: LocalWorkspace, tmp_path: Path
) -> None:
    seen = _collect()
    target = tmp_path / "archive.zip"
    builder.build(target, workspace, {"a.txt": "a.txt", "docs": "docs"})

    assert [e for e, _ in seen] == ["operation.start", "operation.end"]
    start, end = seen[0][1], seen[1][1]
    assert start["component"] == "archive.builder"
    assert start["operation"] == "archive.build"
    assert start["data"]["archive"] == str(target)
    assert start["data"]["artifacts_count"] == 2

    data = end["data"]
    assert data["status"] == "succeeded"
    assert data["files"] == 1
    assert data["dirs"] == 1
    assert data["bytes"] == len(b"alpha")
    assert data["passthrough"] is False
    assert isinstance(data["duration_ms"], int)


def test_failed_build_publishes_failure(
    builder: ArchiveBuilder, workspace: LocalWorkspace, tmp_path: Path
) -> None:
    seen = _collect()
    warnings: list[LogRecord] = []
    get_log_bus().subscribe("WARNING", warnings.append)

    with pytest.raises(SourceNotFoundError):
        builder.build(tmp_path / "archive.zip", workspace, {"ghost.txt": "ghost.txt"})

    end = seen[-1][1]["data"]
    assert end["status"] == "failed"
    assert end["error_type"] == "SourceNotFoundError"
    assert "ghost.txt" in end["error_message"]
    assert any("status=failed" in r.plain for r in warnings)
    assert any("staging file left" in r.plain for r in warnings)


def test_vfs_operations_are_observed(make_zip) -> None:
    archive = make_zip({"a.txt": b"a", "sub/b.txt": b"b"})
    seen = _collect()
    root = ZipVirtualFile.root(archive)

    root.list()
    root.list_glob("**")
    ZipVirtualFile(archive, "a.txt").open().close()

    ops = [d["operation"] for e, d in seen if e == "operation.end"]
    assert ops == ["archive.list", "archive.glob", "archive.open"]
    ends = [d["data"] for e, d in seen if e == "operation.end"]
    assert ends[0]["items_count"] == 2
    assert ends[1]["items_count"] == 2


def test_observe_operation_logs_summary() -> None:
    infos: list[LogRecord] = []
    get_log_bus().subscribe("INFO", infos.append)

    with observe_operation(component="c", operation="demo.op", base={"archive": "x.zip"}) as s:
        s["files"] = 3

    line = infos[-1].plain
    assert line.startswith("[info] demo.op status=succeeded duration_ms=")
    assert line.endswith(" archive='x.zip' files=3")


def test_jsonl_sink_disabled_by_default(tmp_path: Path) -> None:
    out = tmp_path / "diag.jsonl"
    resolver = ConfigResolver(
        cli_args={"diagnostics": {"path": str(out)}},
        user_config_path=tmp_path / "none.yaml",
        system_config_path=tmp_path / "none.yaml",
    )
    install_jsonl_sink(resolver=resolver)
    get_event_bus().publish("evt", {"k": "v"})
    assert not out.exists()


def test_jsonl_sink_writes_envelopes(
    builder: ArchiveBuilder, workspace: LocalWorkspace, tmp_path: Path
) -> None:
    out = tmp_path / "diag" / "diag.jsonl"
    resolver = ConfigResolver(
        cli_args={"diagnostics": {"enabled": True, "path": str(out)}},
        user_config_path=tmp_path / "none.yaml",
        system_config_path=tmp_path / "none.yaml",
    )
    install_jsonl_sink(resolver=resolver)
    install_jsonl_sink(resolver=resolver)

    builder.build(tmp_path / "archive.zip", workspace, {"a.txt": "a.txt"})
    get_event_bus().publish("custom", {"k": "v"})

    lines = [json.loads(line) for line in out.read_text(encoding="utf-8").splitlines()]
    # Installing twice must not duplicate lines.
    assert [rec["event"] for rec in lines] == ["operation.start", "operation.end", "custom"]
    assert all(set(rec) == _ENVELOPE_KEYS for rec in lines)
    assert lines[1]["data"]["status"] == "succeeded"
    assert lines[2]["component"] == "unknown"
    assert lines[2]["data"] == {"k": "v"}
