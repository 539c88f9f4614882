"""Load optional workflow configuration from `.taskflow/config.yaml`."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .constants import COLUMN_HIT_MARGIN, CONFIG_FILE, POINTER_VICINITY, STATE_DIR_NAME
from .io_utils import _load_data_with_error


def state_dir_for(project_dir: Path) -> Path:
    return project_dir.resolve() / STATE_DIR_NAME


def load_workflow_config(project_dir: Path) -> tuple[dict[str, Any], str | None]:
    """Load the optional workflow config file.

    Args:
        project_dir: Project root directory.

    Returns:
        A tuple of `(config, error_message)`. If the file is missing, returns `({}, None)`.
    """
    path = state_dir_for(project_dir) / CONFIG_FILE
    if not path.exists():
        return {}, None
    data, err = _load_data_with_error(path, {})
    if err:
        return {}, err
    return data, None


def _get_nested(config: dict[str, Any], *keys: str) -> Any:
    cur: Any = config
    for key in keys:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _positive_number(raw: Any, default: float) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)) or raw < 0:
        return default
    return float(raw)


def get_resolver_config(config: dict[str, Any]) -> dict[str, float]:
    """Extract pointer resolver settings.

    Args:
        config: Workflow configuration dictionary.

    Returns:
        A mapping with `column_margin` and `vicinity`; invalid values fall back
        to the defaults.
    """
    raw = _get_nested(config, "resolver")
    raw = raw if isinstance(raw, dict) else {}
    return {
        "column_margin": _positive_number(raw.get("column_margin"), COLUMN_HIT_MARGIN),
        "vicinity": _positive_number(raw.get("vicinity"), POINTER_VICINITY),
    }


def get_notifications_config(config: dict[str, Any]) -> dict[str, Any]:
    raw = _get_nested(config, "notifications")
    return raw if isinstance(raw, dict) else {}


def get_api_config(config: dict[str, Any]) -> dict[str, Any]:
    """Extract the `api` block (`base_url`, `timeout`) for the HTTP service."""
    raw = _get_nested(config, "api")
    return raw if isinstance(raw, dict) else {}
