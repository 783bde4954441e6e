"""Airbrake notifier - Python client for the Airbrake notices API."""

from airbrake_notifier.config import NotifierConfig
from airbrake_notifier.error_logger import ErrorDescriptor, ErrorLogger
from airbrake_notifier.errors import AirbrakeError, ConfigurationError, ReportedError
from airbrake_notifier.log import AirbrakeHandler, AirbrakeLog, interpolate
from airbrake_notifier.notice import ErrorFrame, Notice
from airbrake_notifier.backtrace import StackFrame
from airbrake_notifier.notifier import Notifier
from airbrake_notifier.redaction import FILTERED, redact
from airbrake_notifier.request import RequestContext

__version__ = "0.1.0"
__all__ = [
    "AirbrakeError",
    "AirbrakeHandler",
    "AirbrakeLog",
    "ConfigurationError",
    "ErrorDescriptor",
    "ErrorFrame",
    "ErrorLogger",
    "FILTERED",
    "Notice",
    "Notifier",
    "NotifierConfig",
    "ReportedError",
    "RequestContext",
    "StackFrame",
    "interpolate",
    "redact",
]
