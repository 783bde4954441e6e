"""Request metadata supplied by framework integrations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from airbrake_notifier.notice import Notice


@dataclass
class RequestContext:
    """What a web framework knows about the request that failed.

    Every field is optional; integrations fill in what their request
    object provides.
    """

    url: str | None = None
    method: str | None = None
    route: str | None = None
    component: str | None = None
    action: str | None = None
    user_agent: str | None = None
    client_ip: str | None = None
    query_params: dict[str, Any] = field(default_factory=dict)
    session_id: str | None = None
    user_id: Any = None
    user_name: str | None = None
    user_email: str | None = None


def apply_request_context(notice: Notice, request: RequestContext) -> Notice:
    """Merge ``request`` into the notice's context, params and session."""
    fields = {
        "url": request.url,
        "httpMethod": request.method,
        "userAgent": request.user_agent,
        "route": request.route,
        "component": request.component,
        "action": request.action,
        "userAddr": request.client_ip,
    }
    notice.context.update({key: value for key, value in fields.items() if value})

    user = {
        key: value
        for key, value in (
            ("id", request.user_id),
            ("name", request.user_name),
            ("email", request.user_email),
        )
        if value is not None
    }
    if user:
        notice.context["user"] = user

    notice.params["query"] = dict(request.query_params)

    if request.session_id is not None:
        notice.session = {"id": request.session_id}

    return notice
