"""Resolve reference strings to files inside an ordered set of search roots.

Probe order, stopping at the first hit:

1. each search root joined with the reference, in root order
2. the parent of each search root joined with the reference
3. each immediate subdirectory of each search root (sorted by name)

A candidate only wins when it is an existing regular file *and* its canonical
path (symlinks and ``..`` resolved) lies inside one of the configured roots.
Anything else, including a file that exists outside the roots, is unresolved.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

from mediabundle.ingest.error_handling import InvalidSearchRootsError
from mediabundle.parser.references import reference_extension, strip_query_and_fragment
from mediabundle.types import MediaReference, ResolvedAsset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchRootSet:
    """Ordered search roots, highest priority first.

    ``roots`` keeps the paths as supplied (absolute); ``canonical`` holds the
    symlink-resolved form used for containment checks.
    """

    roots: tuple[Path, ...]
    canonical: tuple[Path, ...]

    @classmethod
    def from_paths(cls, paths: Iterable[str | os.PathLike[str]] | None) -> SearchRootSet:
        if paths is None or isinstance(paths, (str, bytes)):
            raise InvalidSearchRootsError("search_roots must be a sequence of directory paths")
        roots: list[Path] = []
        for raw in paths:
            path = Path(raw)
            if not path.is_absolute():
                raise InvalidSearchRootsError(f"Search root must be absolute: {raw}", root=raw)
            if not path.is_dir():
                raise InvalidSearchRootsError(f"Search root is not an existing directory: {raw}", root=raw)
            if path not in roots:
                roots.append(path)
        if not roots:
            raise InvalidSearchRootsError("At least one search root is required")
        return cls(roots=tuple(roots), canonical=tuple(p.resolve() for p in roots))

    def __len__(self) -> int:
        return len(self.roots)

    def containing_root(self, path: Path) -> Path | None:
        """First configured root whose canonical form contains ``path``.

        ``path`` must already be canonical (``Path.resolve()``).
        """

        for root, canon in zip(self.roots, self.canonical):
            if path.is_relative_to(canon):
                return root
        return None


def filesystem_path(reference_path: str) -> str:
    """Reference text -> relative filesystem path (query/fragment dropped, %-decoded)."""

    return unquote(strip_query_and_fragment(reference_path))


def _immediate_subdirectories(directory: Path) -> list[Path]:
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        logger.debug("Cannot list %s: %s", directory, exc)
        return []
    return [entry for entry in entries if entry.is_dir()]


def iter_candidate_paths(reference_path: str, roots: SearchRootSet) -> Iterator[Path]:
    """Yield candidate locations for ``reference_path`` in probe order.

    Candidates are not checked for existence or containment here.
    """

    relative = filesystem_path(reference_path)
    if not relative:
        return

    for root in roots.roots:
        yield root / relative

    seen_parents: set[Path] = set()
    for root in roots.roots:
        parent = root.parent
        if parent in seen_parents or parent == root:
            continue
        seen_parents.add(parent)
        yield parent / relative

    for root in roots.roots:
        for subdir in _immediate_subdirectories(root):
            yield subdir / relative


def resolve_reference(reference: MediaReference, roots: SearchRootSet) -> ResolvedAsset | None:
    """Resolve a reference to a contained, existing file, or return None.

    Not-found and containment-rejected candidates are both reported as None;
    the difference is only visible in DEBUG logs.
    """

    rejected = 0
    for candidate in iter_candidate_paths(reference.referenced_path, roots):
        try:
            if not candidate.is_file():
                continue
            canonical = candidate.resolve(strict=True)
        except (OSError, RuntimeError) as exc:
            # RuntimeError: symlink loop on older interpreters
            logger.debug("Skipping candidate %s: %s", candidate, exc)
            continue

        root = roots.containing_root(canonical)
        if root is None:
            rejected += 1
            logger.debug(
                "Rejected %s for '%s': outside search roots", canonical, reference.referenced_path
            )
            continue

        try:
            size = canonical.stat().st_size
        except OSError as exc:
            logger.debug("Cannot stat %s: %s", canonical, exc)
            continue

        logger.debug("Resolved '%s' -> %s", reference.referenced_path, canonical)
        return ResolvedAsset(
            reference=reference,
            absolute_path=canonical,
            size_bytes=size,
            declared_extension=reference_extension(reference.referenced_path),
            search_root=root,
        )

    if rejected:
        logger.debug(
            "Unresolved '%s': %d candidate(s) escaped the search roots",
            reference.referenced_path,
            rejected,
        )
    else:
        logger.debug("Unresolved '%s': not found", reference.referenced_path)
    return None


__all__ = [
    "SearchRootSet",
    "filesystem_path",
    "iter_candidate_paths",
    "resolve_reference",
]
