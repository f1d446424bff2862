"""Writing bundled documents and bundle reports to disk.

Reports are deterministic JSON (sorted keys) so they diff cleanly between
runs. The ``video_url_map`` section can be fed back to the ``rewrite``
command to update other documents that reference the same videos.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from ..types import BundleResult

REPORT_SCHEMA_VERSION = 1


def atomic_write_text(path: Path, data: str, *, encoding: str = "utf-8") -> None:
    """Atomically write text to a file by writing to a temp file then replacing.

    Ensures parent directories exist and minimizes risk of partial writes.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with NamedTemporaryFile("w", encoding=encoding, dir=str(path.parent), delete=False) as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_path = Path(tmp.name)
    os.replace(tmp_path, path)


def default_output_path(html_path: Path) -> Path:
    return html_path.with_name(f"{html_path.stem}_bundled{html_path.suffix or '.html'}")


def result_to_dict(result: BundleResult) -> dict[str, Any]:
    return {
        "schema_version": REPORT_SCHEMA_VERSION,
        "embedded_count": result.embedded_count,
        "relocated_count": result.relocated_count,
        "skipped_count": result.skipped_count,
        "skipped_references": list(result.skipped_references),
        "skip_reasons": {path: reason.value for path, reason in result.skip_reasons.items()},
        "video_url_map": dict(result.video_url_map),
    }


def write_bundle_report(path: Path, result: BundleResult, *, pretty: bool = True) -> None:
    text = json.dumps(
        result_to_dict(result),
        ensure_ascii=False,
        sort_keys=True,
        indent=2 if pretty else None,
    )
    atomic_write_text(path, text + "\n")


def load_replacement_map(path: Path) -> dict[str, str]:
    """Read a replacement map from JSON.

    Accepts either a bundle report (uses its ``video_url_map``) or a plain
    ``{"old": "new"}`` object.

    Raises:
        ValueError: if the file is not a JSON object of strings
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict) and isinstance(data.get("video_url_map"), dict):
        data = data["video_url_map"]
    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ValueError(f"{path} does not contain a mapping of strings")
    return dict(data)


__all__ = [
    "atomic_write_text",
    "default_output_path",
    "load_replacement_map",
    "result_to_dict",
    "write_bundle_report",
]
