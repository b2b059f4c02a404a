"""Structured logging helpers (answer-safe)."""

import logging
from typing import Any


def configure_logging(level: str) -> None:
    """Set the root log level once at startup."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def build_log_context(
    *,
    session_id: str | None = None,
    step: str | None = None,
    slot: str | None = None,
    route: str | None = None,
    method: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict without survey answer values."""
    context: dict[str, Any] = {}
    if session_id:
        context["session_id"] = session_id
    if step:
        context["step"] = step
    if slot:
        context["slot"] = slot
    if route:
        context["route"] = route
    if method:
        context["method"] = method
    return context
