from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


def build_search_roots(
    primary: Iterable[str | os.PathLike[str]],
    shared: Iterable[str | os.PathLike[str]] = (),
    *,
    include_subdirectories: bool = True,
) -> list[Path]:
    """Assemble the ordered search roots for an upload.

    ``primary`` directories (e.g. a freshly extracted archive) come first,
    then ``shared`` ones (e.g. the long-term reports directory). Each
    directory is followed by its immediate subdirectories, sorted by name,
    when ``include_subdirectories`` is set. Missing directories are logged and
    skipped; duplicates keep their first position.
    """

    roots: list[Path] = []

    def _add(path: Path) -> None:
        if path not in roots:
            roots.append(path)

    for raw in [*primary, *shared]:
        directory = Path(raw).expanduser().absolute()
        if not directory.is_dir():
            logger.warning("Search directory not found, skipping: %s", directory)
            continue
        _add(directory)
        if not include_subdirectories:
            continue
        try:
            children = sorted(directory.iterdir(), key=lambda p: p.name)
        except OSError as exc:
            logger.warning("Cannot list search directory %s: %s", directory, exc)
            continue
        for child in children:
            if child.is_dir():
                _add(child)

    return roots
