"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache

from db.config import load_env_files

logger = logging.getLogger(__name__)

MAX_DATASET_ROWS = 1000

_ALLOWED_MISSING_POLICIES = {"zero", "reject"}
_ALLOWED_LEDGER_BACKENDS = {"memory", "database"}


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_choice_env(name: str, default: str, allowed: set[str]) -> str:
    """
    Read a lower-cased string restricted to ``allowed``.

    Unlike the numeric helpers this raises instead of falling back, so a
    typo cannot silently switch behaviour.
    """

    value = _get_str_env(name, default).lower()
    if value not in allowed:
        raise RuntimeError(
            f"{name}='{value}' is not valid. Allowed values: {sorted(allowed)}."
        )
    return value


def _get_json_object_env(name: str) -> dict[str, float]:
    """
    Read an optional JSON object of metric weights.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None or not raw_value.strip():
        return {}
    try:
        parsed = json.loads(raw_value)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"{name} must be a JSON object of metric weights.") from exc
    if not isinstance(parsed, dict):
        raise RuntimeError(f"{name} must be a JSON object of metric weights.")
    return {str(key): float(value) for key, value in parsed.items()}


@dataclass(frozen=True)
class ReadinessSettings:
    """
    Runtime settings for the readiness scoring pipeline.
    """

    max_rows: int = MAX_DATASET_ROWS
    missing_numeric_policy: str = "zero"
    ledger_backend: str = "memory"
    default_weights: dict[str, float] = field(default_factory=dict)
    default_weight_config_id: str = "default"


@lru_cache(maxsize=1)
def get_readiness_settings() -> ReadinessSettings:
    """
    Return cached readiness settings from environment variables.

    READINESS_MAX_ROWS may lower the row limit but never raise it above 1000.
    """

    max_rows = _get_int_env("READINESS_MAX_ROWS", MAX_DATASET_ROWS)
    if max_rows > MAX_DATASET_ROWS:
        logger.warning(
            "READINESS_MAX_ROWS=%d exceeds the hard limit; using %d.",
            max_rows,
            MAX_DATASET_ROWS,
        )
    return ReadinessSettings(
        max_rows=min(MAX_DATASET_ROWS, max(1, max_rows)),
        missing_numeric_policy=_get_choice_env(
            "READINESS_MISSING_NUMERIC_POLICY", "zero", _ALLOWED_MISSING_POLICIES
        ),
        ledger_backend=_get_choice_env(
            "READINESS_LEDGER_BACKEND", "memory", _ALLOWED_LEDGER_BACKENDS
        ),
        default_weights=_get_json_object_env("READINESS_DEFAULT_WEIGHTS"),
        default_weight_config_id=_get_str_env("READINESS_DEFAULT_WEIGHT_CONFIG_ID", "default"),
    )


def get_log_level() -> int:
    """
    Resolve LOG_LEVEL into a logging level constant.
    """

    name = _get_str_env("LOG_LEVEL", "INFO").upper()
    return getattr(logging, name, logging.INFO)
