"""Options for a single bundling call.

Relocation of videos is only active when both ``owner_id`` and
``storage_root`` are set; without them video references are reported as
skipped and left as written.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_CATEGORY = "media"
DEFAULT_URL_PREFIX = "/uploads"
DEFAULT_MAX_EMBED_BYTES = 20 * 1024 * 1024
MAX_WORKERS_CAP = 8


def default_max_workers() -> int:
    return max(1, min(MAX_WORKERS_CAP, os.cpu_count() or 1))


@dataclass
class BundleOptions:
    """Bundling configuration.

    Defaults embed images up to 20 MiB, never relocate videos and run without
    a deadline.
    """

    # Owner scope for relocated videos (e.g. a book id)
    owner_id: str | None = None

    # Category folder under the owner (e.g. "covers", "marketing-assets")
    category: str = DEFAULT_CATEGORY

    # Directory that receives relocated videos
    storage_root: Path | None = None

    # Public URL prefix that maps onto storage_root
    url_prefix: str = DEFAULT_URL_PREFIX

    # Per-file cap for inlined images; None disables the cap
    max_embed_bytes: int | None = DEFAULT_MAX_EMBED_BYTES

    # Worker threads used to resolve and embed references
    max_workers: int | None = None

    # Overall deadline in seconds; unfinished references are left untouched
    deadline_seconds: float | None = None

    @property
    def relocation_enabled(self) -> bool:
        return bool(self.owner_id) and self.storage_root is not None

    @property
    def effective_max_workers(self) -> int:
        return self.max_workers if self.max_workers is not None else default_max_workers()

    def validate(self) -> None:
        """Raise ValueError for values that would make bundling misbehave."""

        if not self.category or not self.category.strip():
            raise ValueError("category must be a non-empty string")
        if not self.url_prefix.startswith(("/", "http://", "https://")):
            raise ValueError(
                f"url_prefix must start with '/', 'http://' or 'https://', got '{self.url_prefix}'"
            )
        if self.max_embed_bytes is not None and self.max_embed_bytes <= 0:
            raise ValueError(f"max_embed_bytes must be positive, got {self.max_embed_bytes}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise ValueError(f"deadline_seconds must be positive, got {self.deadline_seconds}")

    @classmethod
    def from_cli(
        cls,
        *,
        owner_id: str | None = None,
        category: str = DEFAULT_CATEGORY,
        storage_root: Path | str | None = None,
        url_prefix: str = DEFAULT_URL_PREFIX,
        max_embed_bytes: int | None = DEFAULT_MAX_EMBED_BYTES,
        workers: int | None = None,
        deadline: float | None = None,
    ) -> BundleOptions:
        """Build BundleOptions from CLI argument values.

        A ``max_embed_bytes`` of 0 disables the cap.

        Raises:
            ValueError: If any argument has an invalid value
        """

        options = cls(
            owner_id=owner_id or None,
            category=category,
            storage_root=Path(storage_root).resolve() if storage_root else None,
            url_prefix=url_prefix.rstrip("/") or "/",
            max_embed_bytes=None if max_embed_bytes == 0 else max_embed_bytes,
            max_workers=workers,
            deadline_seconds=deadline,
        )
        options.validate()
        return options
