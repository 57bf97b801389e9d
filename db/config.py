"""
db/config.py

Environment-driven configuration for the ledger and weight-config database.
"""

from __future__ import annotations

import os
from pathlib import Path

ENV_FILENAMES = (".env", ".env.local")
POSTGRES_DRIVER_PREFIX = "postgresql+psycopg://"


def load_env_files(root: Path | None = None) -> list[Path]:
    """
    Load KEY=VALUE pairs from the project's env files into ``os.environ``.

    Variables already present in the process environment win. Returns the
    files that were read.
    """

    project_root = root or Path(__file__).resolve().parents[1]
    loaded: list[Path] = []
    for filename in ENV_FILENAMES:
        env_path = project_root / filename
        if not env_path.is_file():
            continue

        for raw_line in env_path.read_text(encoding="utf-8").splitlines():
            line = raw_line.strip()
            if line.startswith("export "):
                line = line[len("export "):].lstrip()
            if not line or line.startswith("#") or "=" not in line:
                continue

            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key:
                os.environ.setdefault(key, value)
        loaded.append(env_path)
    return loaded


def normalize_postgres_url(url: str) -> str:
    """
    Rewrite bare postgres URLs to the psycopg (v3) driver form.
    """

    url = url.strip()
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            return POSTGRES_DRIVER_PREFIX + url[len(prefix):]
    return url


def resolve_database_url() -> str:
    """
    Resolve the readiness database URL.

    Priority:
    1) READINESS_DATABASE_URL
    2) DATABASE_URL
    3) CLOUD_DATABASE_URL when ENVIRONMENT is cloud-like
    4) LOCAL_DATABASE_URL
    """

    load_env_files()

    for name in ("READINESS_DATABASE_URL", "DATABASE_URL"):
        value = os.getenv(name, "").strip()
        if value:
            return normalize_postgres_url(value)

    environment = os.getenv("ENVIRONMENT", "local").strip().lower()
    cloud_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    if environment in {"prod", "production", "staging", "cloud"} and cloud_url:
        return normalize_postgres_url(cloud_url)

    local_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if local_url:
        return normalize_postgres_url(local_url)

    raise RuntimeError(
        "READINESS_LEDGER_BACKEND=database needs a database URL. Set "
        "READINESS_DATABASE_URL or DATABASE_URL (LOCAL_DATABASE_URL / "
        "CLOUD_DATABASE_URL are also honoured)."
    )
