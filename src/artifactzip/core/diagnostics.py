"""Runtime diagnostics envelope, operation observer and JSONL sink.

This module provides:
- A canonical envelope schema for diagnostic events.
- observe_operation(), which wraps one archive operation with
  operation.start / operation.end events and a single summary log line.
- A JSONL sink that can be enabled/disabled via ConfigResolver.
"""

from __future__ import annotations

import json
import time
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from artifactzip.core.config import ConfigResolver
from artifactzip.core.errors import ConfigError
from artifactzip.core.events import get_event_bus
from artifactzip.core.logging import get_logger

_logger = get_logger(__name__)

# Keys copied from the operation summary into the end-of-operation log line.
_SUMMARY_KEYS = ("passthrough", "files", "dirs", "bytes", "items_count", "removed")


def build_envelope(
    *,
    event: str,
    component: str,
    operation: str,
    data: dict[str, Any],
) -> dict[str, Any]:
    """Build the canonical diagnostics envelope.

    Schema:
        {
          "event": "<string>",
          "component": "<string>",
          "operation": "<string>",
          "timestamp": "<iso8601 utc>",
          "data": { ... }
        }

    Timestamp is emitted in UTC with a trailing 'Z'.
    """
    ts = datetime.now(UTC).replace(microsecond=0).isoformat().replace("+00:00", "Z")
    return {
        "event": event,
        "component": component,
        "operation": operation,
        "timestamp": ts,
        "data": data,
    }


def _short_traceback(*, max_lines: int = 20) -> str:
    tb_lines = traceback.format_exc().strip().splitlines()
    return "\n".join(tb_lines[-max_lines:])


def _safe_publish(event: str, payload: dict[str, Any]) -> None:
    try:
        get_event_bus().publish(event, payload)
    except Exception:
        return


@contextmanager
def observe_operation(
    *,
    component: str,
    operation: str,
    base: dict[str, Any],
) -> Iterator[dict[str, Any]]:
    """Publish start/end envelopes around an operation.

    The yielded dict is a summary the caller fills in; its contents are merged
    into the operation.end payload. Exceptions are re-raised unchanged.
    """
    start = time.perf_counter()
    _safe_publish(
        "operation.start",
        build_envelope(
            event="operation.start", component=component, operation=operation, data=dict(base)
        ),
    )

    summary: dict[str, Any] = {}
    try:
        yield summary
    except BaseException as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        end_data = dict(base)
        end_data.update(summary)
        end_data.update(
            {
                "status": "failed",
                "duration_ms": duration_ms,
                "error_type": type(e).__name__,
                "error_message": str(e),
                "traceback": _short_traceback(),
            }
        )
        _safe_publish(
            "operation.end",
            build_envelope(
                event="operation.end", component=component, operation=operation, data=end_data
            ),
        )
        _logger.warning(
            f"{operation} status=failed duration_ms={duration_ms} "
            f"archive={base.get('archive')!r} error_type={type(e).__name__!r}"
        )
        raise
    else:
        duration_ms = int((time.perf_counter() - start) * 1000)
        end_data = dict(base)
        end_data.update(summary)
        end_data.update({"status": "succeeded", "duration_ms": duration_ms})
        _safe_publish(
            "operation.end",
            build_envelope(
                event="operation.end", component=component, operation=operation, data=end_data
            ),
        )
        parts = [
            "status=succeeded",
            f"duration_ms={duration_ms}",
            f"archive={base.get('archive')!r}",
        ]
        if "path" in base:
            parts.append(f"path={base['path']!r}")
        for k in _SUMMARY_KEYS:
            if k in end_data:
                parts.append(f"{k}={end_data[k]!r}")
        _logger.info(f"{operation} " + " ".join(parts))


def is_diagnostics_enabled(resolver: ConfigResolver) -> bool:
    """Return whether diagnostics are enabled (key: diagnostics.enabled)."""
    try:
        return resolver.resolve_bool("diagnostics.enabled", False)
    except ConfigError:
        _logger.warning("Invalid diagnostics.enabled value; treating as disabled.")
        return False


def _is_envelope(obj: Any) -> bool:
    if not isinstance(obj, dict):
        return False
    if set(obj.keys()) != {"event", "component", "operation", "timestamp", "data"}:
        return False
    return isinstance(obj.get("data"), dict)


_SINK_INSTALLED = False


def install_jsonl_sink(*, resolver: ConfigResolver) -> None:
    """Install the JSONL diagnostics sink subscriber.

    Idempotent: registers exactly once per process. The sink re-checks
    diagnostics.enabled on every event and performs no file IO when disabled.
    """
    global _SINK_INSTALLED
    if _SINK_INSTALLED:
        return

    def _on_any_event(event: str, data: dict[str, Any]) -> None:
        if not is_diagnostics_enabled(resolver):
            return

        out_path = Path(resolver.resolve_str("diagnostics.path", "diagnostics.jsonl"))
        out_path = out_path.expanduser()

        if _is_envelope(data):
            payload = data
        else:
            payload = build_envelope(
                event=event, component="unknown", operation="unknown", data=data
            )

        try:
            out_path.parent.mkdir(parents=True, exist_ok=True)
            line = json.dumps(payload, ensure_ascii=True, separators=(",", ":"), sort_keys=True)
            with out_path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.write("\n")
        except Exception as e:
            _logger.warning(f"Diagnostics sink write failed: {type(e).__name__}: {e}")

    get_event_bus().subscribe_all(_on_any_event)
    _SINK_INSTALLED = True


def reset_jsonl_sink() -> None:
    """Forget the installed sink (the event bus must be cleared separately)."""
    global _SINK_INSTALLED
    _SINK_INSTALLED = False
