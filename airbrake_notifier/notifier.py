"""Airbrake notifier: filters and delivers notices to the notices API."""

from __future__ import annotations

import json
import logging
import re
import threading
import time
from typing import Any, Callable, Mapping, Union

import httpx

from airbrake_notifier.config import NotifierConfig
from airbrake_notifier.notice import Notice, NoticeBuilder
from airbrake_notifier.redaction import redact

logger = logging.getLogger(__name__)

NOTICES_PATH = "/api/v3/projects/{project_id}/notices"
RATE_LIMIT_DELAY_HEADER = "X-RateLimit-Delay"

# Sub-maps of a notice that are scanned for sensitive keys
REDACTED_SECTIONS = ("context", "params", "session", "environment")

FilterResult = Union[Notice, bool, None]
NoticeFilter = Callable[[Notice], FilterResult]

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)


class Notifier:
    """Builds, filters and sends notices for one Airbrake project.

    Delivery is synchronous and single-attempt. Every failure after
    construction is reported on the returned notice's ``error`` field;
    nothing is raised to the caller.

    Args:
        config: A ``NotifierConfig`` or a flat mapping accepted by
            ``NotifierConfig.from_mapping``.
        http_client: Client to send notices with. By default one is created
            from ``config.http_client_options`` and owned by the notifier.
        environ: Request variables for notice context (defaults to ``os.environ``).
        clock: Returns the current time in seconds; used for rate limiting.

    Raises:
        ConfigurationError: If ``project_id`` or ``project_key`` is missing.
    """

    def __init__(
        self,
        config: NotifierConfig | Mapping[str, Any],
        http_client: httpx.Client | None = None,
        environ: Mapping[str, str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not isinstance(config, NotifierConfig):
            config = NotifierConfig.from_mapping(config)
        self.config = config
        self.builder = NoticeBuilder(config, environ=environ)
        self.http_client = http_client or httpx.Client(**config.http_client_options)
        self._clock = clock
        self._blocklist = config.blocklist_patterns
        self._filters: list[NoticeFilter] = []
        self._rate_limit_reset = 0.0
        self._lock = threading.Lock()

        self.add_filter(self.filter_sensitive_data)

    @property
    def filters(self) -> tuple[NoticeFilter, ...]:
        return tuple(self._filters)

    @property
    def rate_limit_reset(self) -> float:
        with self._lock:
            return self._rate_limit_reset

    @property
    def notices_url(self) -> str:
        host = self.config.host.rstrip("/")
        if not _SCHEME.match(host):
            host = f"https://{host}"
        return host + NOTICES_PATH.format(project_id=self.config.project_id)

    def add_filter(self, notice_filter: NoticeFilter) -> Notifier:
        """Append a filter run on every notice before it is sent.

        A filter returns the (possibly modified) notice to continue, or
        ``None``/``False`` to drop the notice. Filters run in registration
        order, after the built-in sensitive data filter.
        """
        self._filters.append(notice_filter)
        return self

    def build_notice(self, exception: BaseException) -> Notice:
        return self.builder.build(exception)

    def notify(self, exception: BaseException) -> Notice:
        """Build a notice from ``exception`` and send it."""
        return self.send_notice(self.build_notice(exception))

    def send_notice(self, notice: Notice) -> Notice:
        """Send ``notice`` and record the outcome on the returned notice."""
        if not self.config.enabled:
            notice.error = "Airbrake: notifications are disabled"
            logger.debug("Notice not sent: notifications are disabled")
            return notice

        if self._is_rate_limited():
            notice.error = "Airbrake: IP is rate limited"
            logger.debug("Notice not sent: rate limited until %s", self.rate_limit_reset)
            return notice

        filtered = self.apply_filters(notice)
        if filtered is None:
            notice.error = "Airbrake: notice was filtered"
            logger.debug("Notice not sent: dropped by filter")
            return notice
        if filtered.error is not None:
            return filtered
        notice = filtered

        try:
            response = self.http_client.post(
                self.notices_url,
                content=json.dumps(notice.to_payload(), default=str),
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.config.project_key}",
                },
            )
            self._process_response(notice, response)
        except Exception as exc:
            notice.error = f"Airbrake: {exc}"
            logger.warning("Failed to send notice to Airbrake", exc_info=True)
            return notice

        if notice.error is not None:
            logger.warning("Airbrake rejected notice: %s", notice.error)
        else:
            logger.debug("Airbrake accepted notice %s", notice.id)
        return notice

    def apply_filters(self, notice: Notice) -> Notice | None:
        """Run the filter chain; ``None`` means the notice was dropped."""
        for notice_filter in self._filters:
            result = notice_filter(notice)
            if result is None or result is False:
                return None
            if result is not True:
                notice = result
        return notice

    def filter_sensitive_data(self, notice: Notice) -> Notice:
        """Redact blocklisted keys in the context, params, session and environment."""
        for section in REDACTED_SECTIONS:
            setattr(notice, section, redact(getattr(notice, section), self._blocklist))
        return notice

    def close(self) -> None:
        self.http_client.close()

    def __enter__(self) -> Notifier:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _is_rate_limited(self) -> bool:
        with self._lock:
            return self._clock() < self._rate_limit_reset

    def _process_response(self, notice: Notice, response: httpx.Response) -> None:
        if response.status_code == 401:
            notice.error = "Airbrake: unauthorized - check projectId and projectKey"
            return

        if response.status_code == 429:
            delay = response.headers.get(RATE_LIMIT_DELAY_HEADER)
            if delay:
                try:
                    seconds = float(delay)
                except ValueError:
                    logger.warning("Ignoring malformed %s header: %r", RATE_LIMIT_DELAY_HEADER, delay)
                else:
                    with self._lock:
                        self._rate_limit_reset = self._clock() + seconds
            notice.error = "Airbrake: IP is rate limited"
            return

        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("id") is not None:
            notice.id = body["id"]
            if body.get("url") is not None:
                notice.url = body["url"]
            return

        if isinstance(body, dict) and body.get("message") is not None:
            notice.error = f"Airbrake: {body['message']}"
            return

        notice.error = f"Airbrake: unexpected response - {response.text}"
