"""Environment-driven defaults for the command line.

Values come from the process environment, optionally seeded from a ``.env``
file in the working directory (existing variables win).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from mediabundle.model.bundle_options import DEFAULT_MAX_EMBED_BYTES, DEFAULT_URL_PREFIX

logger = logging.getLogger(__name__)

ENV_REPORTS_DIR = "MEDIABUNDLE_REPORTS_DIR"
ENV_STORAGE_ROOT = "MEDIABUNDLE_STORAGE_ROOT"
ENV_URL_PREFIX = "MEDIABUNDLE_URL_PREFIX"
ENV_MAX_EMBED_BYTES = "MEDIABUNDLE_MAX_EMBED_BYTES"
ENV_WORKERS = "MEDIABUNDLE_WORKERS"
ENV_DEADLINE = "MEDIABUNDLE_DEADLINE"


@dataclass(frozen=True)
class Settings:
    reports_dir: Path | None = None
    storage_root: Path | None = None
    url_prefix: str = DEFAULT_URL_PREFIX
    max_embed_bytes: int = DEFAULT_MAX_EMBED_BYTES
    workers: int | None = None
    deadline_seconds: float | None = None


def _env_path(name: str) -> Path | None:
    value = os.environ.get(name, "").strip()
    return Path(value).expanduser() if value else None


def _env_number(name: str, cast: type[int] | type[float]) -> int | float | None:
    value = os.environ.get(name, "").strip()
    if not value:
        return None
    try:
        return cast(value)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a valid %s", name, value, cast.__name__)
        return None


def load_settings(*, dotenv: bool = True) -> Settings:
    """Read settings from the environment (and ``.env`` when ``dotenv`` is set)."""

    if dotenv:
        load_dotenv(find_dotenv(usecwd=True), override=False)

    max_embed = _env_number(ENV_MAX_EMBED_BYTES, int)
    workers = _env_number(ENV_WORKERS, int)
    deadline = _env_number(ENV_DEADLINE, float)
    return Settings(
        reports_dir=_env_path(ENV_REPORTS_DIR),
        storage_root=_env_path(ENV_STORAGE_ROOT),
        url_prefix=os.environ.get(ENV_URL_PREFIX, "").strip() or DEFAULT_URL_PREFIX,
        max_embed_bytes=int(max_embed) if max_embed is not None else DEFAULT_MAX_EMBED_BYTES,
        workers=int(workers) if workers is not None else None,
        deadline_seconds=float(deadline) if deadline is not None else None,
    )
