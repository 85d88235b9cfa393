"""Structured logging helpers.

Services attach ids to log lines via `extra=build_log_context(...)`; the
formatter installed by configure_logging renders them as key=value pairs.
"""

import logging
from typing import Any
from uuid import UUID

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
CONTEXT_FIELDS = ("request_id", "user_id", "org_id", "ticket_id", "route", "method")


class ContextFormatter(logging.Formatter):
    """Append any log context fields present on the record."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        pairs = [
            f"{field}={getattr(record, field)}"
            for field in CONTEXT_FIELDS
            if getattr(record, field, None)
        ]
        if not pairs:
            return message
        return f"{message} [{' '.join(pairs)}]"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the API process and the CLI."""
    handler = logging.StreamHandler()
    handler.setFormatter(ContextFormatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
    )


def build_log_context(
    *,
    user_id: UUID | str | None = None,
    org_id: UUID | str | None = None,
    ticket_id: UUID | str | None = None,
    request_id: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict for the `extra` argument of logger calls."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if org_id:
        context["org_id"] = str(org_id)
    if ticket_id:
        context["ticket_id"] = str(ticket_id)
    if request_id:
        context["request_id"] = request_id
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
