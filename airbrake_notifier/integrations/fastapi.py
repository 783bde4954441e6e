"""FastAPI integration for Airbrake error reporting.

Provides an exception handler that reports unhandled exceptions together
with the request that triggered them.
"""

from __future__ import annotations

import logging
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse

from airbrake_notifier.config import DEFAULT_HOST, DEFAULT_KEYS_BLOCKLIST
from airbrake_notifier.error_logger import ErrorLogger
from airbrake_notifier.request import RequestContext

logger = logging.getLogger(__name__)


def _user_fields(user: Any) -> dict[str, Any]:
    """Identity and display name of an authenticated starlette user."""
    if user is None or not getattr(user, "is_authenticated", False):
        return {}
    fields: dict[str, Any] = {}
    for name, attr in (("user_id", "identity"), ("user_name", "display_name")):
        try:
            value = getattr(user, attr)
        except NotImplementedError:
            continue
        if value not in (None, ""):
            fields[name] = value
    return fields


def request_context(request: Request) -> RequestContext:
    """Collect the request metadata Airbrake reports from a starlette ``Request``.

    The user comes from ``AuthenticationMiddleware`` (``scope["user"]``) and
    the session id from the ``session_id`` entry of the session set up by
    ``SessionMiddleware``; both are optional.
    """
    route = request.scope.get("route")
    endpoint = request.scope.get("endpoint")

    client_ip = None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        client_ip = forwarded.split(",")[-1].strip()
    elif request.client is not None:
        client_ip = request.client.host

    # Present only behind SessionMiddleware
    session_id = None
    if "session" in request.scope:
        value = request.session.get("session_id")
        if value is not None:
            session_id = str(value)

    return RequestContext(
        url=str(request.url),
        method=request.method,
        route=getattr(route, "path", None),
        component=getattr(endpoint, "__module__", None),
        action=getattr(endpoint, "__name__", None),
        user_agent=request.headers.get("user-agent"),
        client_ip=client_ip,
        query_params=dict(request.query_params),
        session_id=session_id,
        **_user_fields(request.scope.get("user")),
    )


async def AirbrakeExceptionHandler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler that reports errors to Airbrake.

    Reports the exception, then returns a generic 500 JSON response.

    Usage::

        app.add_exception_handler(Exception, AirbrakeExceptionHandler)

    Note: The ``ErrorLogger`` must be attached to
    ``request.app.state.airbrake_error_logger`` before this handler is invoked.
    Use :func:`setup_airbrake` to wire everything up.
    """
    error_logger: ErrorLogger | None = getattr(
        request.app.state, "airbrake_error_logger", None
    )

    if error_logger is not None:
        try:
            notice = await run_in_threadpool(
                error_logger.log_exception, exc, request_context(request)
            )
        except Exception:
            logger.warning("Failed to report error in exception handler", exc_info=True)
        else:
            if notice is not None and notice.error is not None:
                logger.warning("Airbrake notice not delivered: %s", notice.error)

    logger.exception("Unhandled exception: %s", exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


def setup_airbrake(
    app: Any,
    *,
    project_id: int | None,
    project_key: str | None,
    host: str = DEFAULT_HOST,
    environment: str = "production",
    app_version: str | None = None,
    root_directory: str | None = None,
    keys_blocklist: tuple[str, ...] = DEFAULT_KEYS_BLOCKLIST,
    enabled: bool = True,
) -> ErrorLogger | None:
    """Wire up Airbrake error reporting on a FastAPI/Starlette application.

    Args:
        app: The FastAPI or Starlette application instance.
        project_id: Airbrake project id. If missing, reporting is disabled.
        project_key: Airbrake project key. If missing, reporting is disabled.
        host: Airbrake API host.
        environment: Environment name for notices.
        app_version: Application version for notices.
        root_directory: Project root stripped from backtrace paths.
        keys_blocklist: Key patterns redacted from notices.
        enabled: Set to False to turn reporting off.

    Returns:
        The installed ``ErrorLogger``, or None when reporting is disabled.
    """
    if not enabled or not project_id or not project_key:
        logger.info("Airbrake error reporting disabled")
        return None

    error_logger = ErrorLogger(
        {
            "project_id": project_id,
            "project_key": project_key,
            "host": host,
            "environment": environment,
            "app_version": app_version,
            "root_directory": root_directory,
            "keys_blocklist": keys_blocklist,
        }
    )
    app.state.airbrake_error_logger = error_logger
    app.add_exception_handler(Exception, AirbrakeExceptionHandler)
    logger.info("Airbrake error reporting enabled for project %s", project_id)
    return error_logger
