"""Configure logging and summarize store events for logs."""

from __future__ import annotations

import json
import sys
from typing import Any

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
    """Configure loguru logger with the specified level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{module}</cyan>:<cyan>{line}</cyan> - "
            "{message}"
        ),
    )


def summarize_event(event: Any) -> dict[str, Any]:
    """Render a compact, JSON-friendly summary of a store event.

    Args:
        event: :class:`~task_workflow.store.StoreEvent` (or None).

    Returns:
        A dictionary suitable for logging or serialization.
    """
    if event is None:
        return {"event": None}

    d: dict[str, Any] = {"event": getattr(event, "kind", event.__class__.__name__)}
    task_id = getattr(event, "task_id", None)
    if task_id is not None:
        d["task_id"] = task_id
    status = getattr(event, "status", None)
    if status is not None:
        d["status"] = getattr(status, "value", str(status))
    error = getattr(event, "error", None)
    if error is not None:
        d["error_type"] = error.__class__.__name__
        detail = str(error)
        d["error"] = (detail[:240] + "…") if len(detail) > 240 else detail
    return d


def pretty(obj: Any, *, indent: int = 2) -> str:
    """Serialize an object as JSON for readable logs."""
    try:
        return json.dumps(obj, indent=indent, default=str)
    except (TypeError, ValueError):
        return str(obj)
