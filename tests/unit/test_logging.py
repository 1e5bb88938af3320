"""Tests for centralized logging system."""

from __future__ import annotations

from artifactzip.core.config import LoggingPolicy
from artifactzip.core.log_bus import LogRecord, get_log_bus
from artifactzip.core.logging import (
    VerbosityLevel,
    apply_logging_policy,
    get_logger,
    get_verbosity,
    set_verbosity,
)


def _capture() -> list[LogRecord]:
    seen: list[LogRecord] = []
    get_log_bus().subscribe_all(seen.append)
    return seen


class TestVerbosityLevel:
    """Test VerbosityLevel enum."""

    def test_verbosity_ordering(self):
        assert VerbosityLevel.QUIET < VerbosityLevel.NORMAL
        assert VerbosityLevel.NORMAL < VerbosityLevel.VERBOSE
        assert VerbosityLevel.VERBOSE < VerbosityLevel.DEBUG

    def test_set_get_verbosity(self):
        set_verbosity(2)
        assert get_verbosity() == VerbosityLevel.VERBOSE
        set_verbosity(VerbosityLevel.DEBUG)
        assert get_verbosity() == VerbosityLevel.DEBUG


class TestLogBus:
    """Records flow through the LogBus subject to verbosity."""

    def test_info_is_published_at_normal(self, capsys):
        seen = _capture()
        get_logger("artifactzip.test").info("hello")

        assert seen == [
            LogRecord(level_name="INFO", plain="[info] hello", logger_name="artifactzip.test")
        ]
        assert "[info] hello" in capsys.readouterr().out

    def test_debug_is_filtered_at_normal(self):
        seen = _capture()
        log = get_logger("artifactzip.test")
        log.debug("hidden")
        log.verbose("hidden")
        assert seen == []

    def test_quiet_still_shows_warnings_and_errors(self, capsys):
        set_verbosity(VerbosityLevel.QUIET)
        seen = _capture()
        log = get_logger("artifactzip.test")
        log.info("hidden")
        log.warning("careful")
        log.error("broken")

        assert [r.level_name for r in seen] == ["WARNING", "ERROR"]
        assert "[error] broken" in capsys.readouterr().err

    def test_level_subscription(self):
        warnings: list[LogRecord] = []
        get_log_bus().subscribe("WARNING", warnings.append)
        log = get_logger("artifactzip.test")
        log.info("x")
        log.warning("y")
        assert [r.plain for r in warnings] == ["[warning] y"]

    def test_failing_subscriber_does_not_break_logging(self, capsys):
        def boom(_record: LogRecord) -> None:
            raise RuntimeError("subscriber failure")

        get_log_bus().subscribe_all(boom)
        seen = _capture()
        get_logger("artifactzip.test").info("still here")
        assert [r.plain for r in seen] == ["[info] still here"]
        assert "suppressed" in capsys.readouterr().err

    def test_get_logger_is_cached(self):
        assert get_logger("artifactzip.same") is get_logger("artifactzip.same")


def test_apply_logging_policy():
    apply_logging_policy(
        LoggingPolicy(level_name="debug", emit_info=True, emit_debug=True, color=False)
    )
    assert get_verbosity() == VerbosityLevel.DEBUG

    apply_logging_policy(
        LoggingPolicy(level_name="quiet", emit_info=False, emit_debug=False, color=False)
    )
    assert get_verbosity() == VerbosityLevel.QUIET
