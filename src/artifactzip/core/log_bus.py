"""Publish/subscribe stream of log records.

Every line emitted by an artifactzip logger is published here so that hosts
can forward archive diagnostics into their own consoles or build logs.
Subscriber exceptions never reach the logger that published the record.
"""

from __future__ import annotations

import contextlib
import sys
import traceback
from collections.abc import Callable
from dataclasses import dataclass

LogCallback = Callable[["LogRecord"], None]


@dataclass(frozen=True)
class LogRecord:
    level_name: str
    plain: str
    logger_name: str


class LogBus:
    def __init__(self) -> None:
        self._by_level: dict[str, list[LogCallback]] = {}
        self._all: list[LogCallback] = []

    def subscribe(self, level_name: str, cb: LogCallback) -> None:
        self._by_level.setdefault(level_name, []).append(cb)

    def unsubscribe(self, level_name: str, cb: LogCallback) -> None:
        subs = self._by_level.get(level_name, [])
        if cb in subs:
            subs.remove(cb)
        if not subs:
            self._by_level.pop(level_name, None)

    def subscribe_all(self, cb: LogCallback) -> None:
        self._all.append(cb)

    def unsubscribe_all(self, cb: LogCallback) -> None:
        if cb in self._all:
            self._all.remove(cb)

    def publish(self, record: LogRecord) -> None:
        targets = list(self._all) + list(self._by_level.get(record.level_name, []))
        for cb in targets:
            try:
                cb(record)
            except Exception:
                # Never route through the logger here: it would recurse.
                with contextlib.suppress(Exception):
                    sys.stderr.write(
                        "LogBus subscriber raised; suppressed.\n" + traceback.format_exc()
                    )

    def clear(self) -> None:
        self._by_level.clear()
        self._all.clear()


_LOG_BUS: LogBus | None = None


def get_log_bus() -> LogBus:
    global _LOG_BUS
    if _LOG_BUS is None:
        _LOG_BUS = LogBus()
    return _LOG_BUS
