"""Notice model and construction from exceptions."""

from __future__ import annotations

import os
import platform
import socket
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from airbrake_notifier import backtrace
from airbrake_notifier.backtrace import StackFrame
from airbrake_notifier.config import NotifierConfig

NOTIFIER_NAME = "airbrake-notifier"
NOTIFIER_VERSION = "0.1.0"
NOTIFIER_URL = "https://github.com/airbrake/airbrake-notifier-python"

# Server attributes copied into notice.environment when present
ENVIRONMENT_KEYS = ("SERVER_NAME", "SERVER_SOFTWARE", "DOCUMENT_ROOT", "REQUEST_METHOD")


@dataclass
class ErrorFrame:
    """One exception of a cause chain."""

    type: str
    message: str
    backtrace: list[StackFrame] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "backtrace": [frame.to_dict() for frame in self.backtrace],
        }


@dataclass
class Notice:
    """A single error event, as sent to the notices API.

    After delivery exactly one outcome is recorded: ``id`` (and possibly
    ``url``) on success, or ``error`` on failure.
    """

    errors: list[ErrorFrame] = field(default_factory=list)
    context: dict[str, Any] = field(default_factory=dict)
    environment: dict[str, Any] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    session: dict[str, Any] = field(default_factory=dict)

    id: str | None = None
    url: str | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.id is not None and self.error is None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready request body; delivery outcome fields are excluded."""
        return {
            "errors": [error.to_dict() for error in self.errors],
            "context": self.context,
            "environment": self.environment,
            "params": self.params,
            "session": self.session,
        }


def walk_exception_chain(exception: BaseException) -> Iterator[BaseException]:
    """Yield ``exception`` followed by the exceptions that caused it.

    Follows ``__cause__`` when the context is suppressed (``raise ... from``),
    otherwise ``__context__``. Stops on the first exception seen twice.
    """
    seen: set[int] = set()
    exc: BaseException | None = exception
    while exc is not None and id(exc) not in seen:
        yield exc
        seen.add(id(exc))
        exc = exc.__cause__ if exc.__suppress_context__ else exc.__context__


def _hostname() -> str | None:
    try:
        return socket.gethostname() or None
    except OSError:
        return None


class NoticeBuilder:
    """Builds notices from exceptions for one configuration.

    Args:
        config: Notifier configuration.
        environ: CGI/WSGI style variables describing the current request,
            defaults to ``os.environ``.
    """

    def __init__(self, config: NotifierConfig, environ: Mapping[str, str] | None = None) -> None:
        self.config = config
        self.environ = os.environ if environ is None else environ

    def build(self, exception: BaseException) -> Notice:
        errors = [
            ErrorFrame(
                type=type(exc).__qualname__,
                message=str(exc),
                backtrace=backtrace.normalize(exc, self.config.root_directory),
            )
            for exc in walk_exception_chain(exception)
        ]
        return Notice(
            errors=errors,
            context=self.build_context(),
            environment=self.build_environment(),
        )

    def build_context(self) -> dict[str, Any]:
        context: dict[str, Any] = {
            "notifier": {
                "name": NOTIFIER_NAME,
                "version": NOTIFIER_VERSION,
                "url": NOTIFIER_URL,
            },
            "os": platform.platform(),
            "language": f"Python {platform.python_version()}",
            "severity": "error",
        }
        if self.config.environment:
            context["environment"] = self.config.environment
        if self.config.app_version:
            context["version"] = self.config.app_version
        if self.config.root_directory:
            context["rootDirectory"] = self.config.root_directory

        hostname = _hostname()
        if hostname:
            context["hostname"] = hostname

        env = self.environ
        if env.get("HTTP_HOST") and "REQUEST_URI" in env:
            scheme = "https" if env.get("HTTPS", "off").lower() not in ("", "off") else "http"
            context["url"] = f"{scheme}://{env['HTTP_HOST']}{env['REQUEST_URI']}"
        if "HTTP_USER_AGENT" in env:
            context["userAgent"] = env["HTTP_USER_AGENT"]
        if "HTTP_X_FORWARDED_FOR" in env:
            context["userAddr"] = env["HTTP_X_FORWARDED_FOR"].split(",")[-1].strip()
        elif "REMOTE_ADDR" in env:
            context["userAddr"] = env["REMOTE_ADDR"]

        return context

    def build_environment(self) -> dict[str, Any]:
        return {key: self.environ[key] for key in ENVIRONMENT_KEYS if key in self.environ}
