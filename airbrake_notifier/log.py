"""Logging integrations: a level/message log engine and a ``logging.Handler``."""

from __future__ import annotations

import logging
import re
import sys
from typing import Any, Mapping

from airbrake_notifier import backtrace
from airbrake_notifier.config import NotifierConfig
from airbrake_notifier.error_logger import LazyNotifier
from airbrake_notifier.notice import Notice
from airbrake_notifier.notifier import Notifier
from airbrake_notifier.redaction import redact

SEVERITIES = frozenset({"critical", "error", "warning", "info", "debug"})

LEVEL_SEVERITIES = {
    "emergency": "critical",
    "alert": "critical",
    "critical": "critical",
    "error": "error",
    "warning": "warning",
    "notice": "info",
    "info": "info",
    "debug": "debug",
}

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")

# Attributes every LogRecord has; anything else was passed via ``extra``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}


def interpolate(message: Any, context: Mapping[str, Any] | None) -> str:
    """Replace ``{key}`` tokens in ``message`` with scalar values from ``context``.

    Replacement is a single pass: substituted text is not scanned again.
    Tokens without a matching scalar entry are left as they are.
    """
    message = str(message)
    if not context:
        return message

    replacements = {
        key: "" if value is None else str(value)
        for key, value in context.items()
        if isinstance(key, str) and not isinstance(value, (Mapping, list, tuple, set, frozenset))
    }

    def substitute(match: re.Match[str]) -> str:
        return replacements.get(match.group(1), match.group(0))

    return _PLACEHOLDER.sub(substitute, message)


def _check_severity(severity: str) -> str:
    if severity not in SEVERITIES:
        raise ValueError(f"Unknown severity {severity!r}; expected one of {sorted(SEVERITIES)}")
    return severity


class AirbrakeLog:
    """Log engine that turns log messages into Airbrake notices.

    Args:
        config: Notifier configuration; the notifier is created on first use.
        default_severity: Severity for levels outside the known vocabulary.
    """

    component = "python-log"

    def __init__(
        self,
        config: NotifierConfig | Mapping[str, Any],
        default_severity: str = "error",
    ) -> None:
        self.config = config
        self.default_severity = _check_severity(default_severity)
        self._lazy = LazyNotifier(config, self.component)

    @property
    def notifier(self) -> Notifier | None:
        return self._lazy.get()

    def severity_for(self, level: Any) -> str:
        return LEVEL_SEVERITIES.get(str(level).lower(), self.default_severity)

    def log(self, level: Any, message: Any, context: Mapping[str, Any] | None = None) -> Notice | None:
        """Send ``message`` at ``level``; returns the delivered notice, if any."""
        notifier = self.notifier
        if notifier is None:
            return None

        context = dict(context or {})
        text = interpolate(message, context)

        notice = notifier.build_notice(Exception(text))
        notice.errors[0].backtrace = backtrace.from_stack(
            sys._getframe(1), notifier.config.root_directory
        )
        notice.context["severity"] = self.severity_for(level)
        notice.context["logLevel"] = level
        if context.get("scope"):
            notice.context["scope"] = context["scope"]

        extra = {key: value for key, value in context.items() if key != "scope"}
        if extra:
            notice.params["context"] = redact(extra, notifier.config.blocklist_patterns)

        return notifier.send_notice(notice)

    def close(self) -> None:
        self._lazy.close()


class AirbrakeHandler(logging.Handler):
    """``logging`` handler that reports records to Airbrake.

    Usage::

        logging.getLogger().addHandler(AirbrakeHandler({"projectId": 1, "projectKey": "..."}))
        logging.getLogger("app").error("Something went wrong", extra={"user_id": 123})

    Records from this package's own loggers are ignored.
    """

    component = "python-logging"

    def __init__(
        self,
        config: NotifierConfig | Mapping[str, Any],
        level: int = logging.ERROR,
        default_severity: str = "error",
    ) -> None:
        super().__init__(level)
        self.config = config
        self.default_severity = _check_severity(default_severity)
        self._lazy = LazyNotifier(config, self.component)

    @property
    def notifier(self) -> Notifier | None:
        return self._lazy.get()

    def severity_for(self, levelno: int) -> str:
        if levelno >= logging.CRITICAL:
            return "critical"
        if levelno >= logging.ERROR:
            return "error"
        if levelno >= logging.WARNING:
            return "warning"
        if levelno >= logging.INFO:
            return "info"
        if levelno >= logging.DEBUG:
            return "debug"
        return self.default_severity

    def emit(self, record: logging.LogRecord) -> None:
        if record.name.split(".")[0] == "airbrake_notifier":
            return
        notifier = self.notifier
        if notifier is None:
            return
        try:
            self.send(notifier, record)
        except Exception:
            self.handleError(record)

    def send(self, notifier: Notifier, record: logging.LogRecord) -> Notice:
        message = record.getMessage()
        if record.exc_info and record.exc_info[1] is not None:
            notice = notifier.build_notice(record.exc_info[1])
        else:
            notice = notifier.build_notice(Exception(message))
            # The record only knows its call site
            notice.errors[0].backtrace = [
                backtrace.StackFrame(
                    file=backtrace.filter_root_directory(
                        record.pathname, notifier.config.root_directory
                    ),
                    line=record.lineno,
                    function=record.funcName or "",
                )
            ]

        notice.context["severity"] = self.severity_for(record.levelno)
        notice.context["logLevel"] = record.levelname
        notice.context["channel"] = record.name

        extra = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}
        if extra:
            notice.params.update(redact(extra, notifier.config.blocklist_patterns))

        return notifier.send_notice(notice)

    def close(self) -> None:
        self._lazy.close()
        super().close()
