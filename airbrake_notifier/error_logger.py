"""Reporting of exceptions and runtime warnings from a host application."""

from __future__ import annotations

import logging
import threading
import warnings
from dataclasses import dataclass
from typing import Any, Mapping

from airbrake_notifier.config import NotifierConfig
from airbrake_notifier.errors import ConfigurationError, ReportedError
from airbrake_notifier.notice import Notice
from airbrake_notifier.notifier import Notifier
from airbrake_notifier.request import RequestContext, apply_request_context

logger = logging.getLogger(__name__)


@dataclass
class ErrorDescriptor:
    """A runtime problem that was not raised as an exception."""

    message: str
    category: type = UserWarning
    filename: str = ""
    lineno: int = 0

    @classmethod
    def from_warning(cls, warning: warnings.WarningMessage) -> ErrorDescriptor:
        return cls(
            message=str(warning.message),
            category=warning.category,
            filename=warning.filename,
            lineno=warning.lineno or 0,
        )

    @property
    def level_name(self) -> str:
        return self.category.__name__

    @property
    def severity(self) -> str:
        if issubclass(self.category, (ResourceWarning, ImportWarning)):
            return "info"
        if issubclass(self.category, Warning):
            return "warning"
        return "error"

    def to_exception(self) -> ReportedError:
        return ReportedError(self.message, filename=self.filename, lineno=self.lineno)


def lazy_notifier(config: NotifierConfig | Mapping[str, Any], component: str) -> Notifier | None:
    """Construct a notifier for an integration, or None if none is available.

    Integrations must not break the host application, so a disabled or
    unconfigured notifier is reported as absent instead of raising.
    """
    if isinstance(config, Mapping) and not config.get("enabled", True):
        return None
    if isinstance(config, NotifierConfig) and not config.enabled:
        return None
    try:
        notifier = Notifier(config)
    except ConfigurationError as exc:
        logger.debug("Airbrake notifier unavailable: %s", exc)
        return None
    if not notifier.config.enabled:
        notifier.close()
        return None

    def set_component(notice: Notice) -> Notice:
        notice.context.setdefault("component", component)
        return notice

    notifier.add_filter(set_component)
    return notifier


class LazyNotifier:
    """Builds an integration's notifier on first use, exactly once.

    Concurrent first calls share one notifier; an unavailable notifier is
    remembered so later calls do not retry construction.
    """

    def __init__(self, config: NotifierConfig | Mapping[str, Any], component: str) -> None:
        self.config = config
        self.component = component
        self._notifier: Notifier | None = None
        self._resolved = False
        self._lock = threading.Lock()

    def get(self) -> Notifier | None:
        if self._resolved:
            return self._notifier
        with self._lock:
            if not self._resolved:
                self._notifier = lazy_notifier(self.config, self.component)
                self._resolved = True
        return self._notifier

    def close(self) -> None:
        with self._lock:
            if self._notifier is not None:
                self._notifier.close()


class ErrorLogger:
    """Sends exceptions and runtime warnings of a host application to Airbrake.

    Args:
        config: Notifier configuration; the notifier is created on first use.
    """

    component = "python"

    def __init__(self, config: NotifierConfig | Mapping[str, Any]) -> None:
        self.config = config
        self._lazy = LazyNotifier(config, self.component)

    @property
    def notifier(self) -> Notifier | None:
        return self._lazy.get()

    def log_exception(
        self, exception: BaseException, request: RequestContext | None = None
    ) -> Notice | None:
        """Report ``exception``; returns the delivered notice, if any was sent."""
        notifier = self.notifier
        if notifier is None:
            return None

        notice = notifier.build_notice(exception)
        if request is not None:
            apply_request_context(notice, request)
        return notifier.send_notice(notice)

    def log_error(
        self, error: ErrorDescriptor, request: RequestContext | None = None
    ) -> Notice | None:
        """Report a non-exception runtime problem such as a warning."""
        notifier = self.notifier
        if notifier is None:
            return None

        notice = notifier.build_notice(error.to_exception())
        notice.errors[0].type = error.level_name
        notice.context["severity"] = error.severity
        notice.context["errorLevel"] = error.level_name
        if request is not None:
            apply_request_context(notice, request)
        return notifier.send_notice(notice)

    def close(self) -> None:
        self._lazy.close()
