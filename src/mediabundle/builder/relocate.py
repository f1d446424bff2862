"""Copy video assets into owner-scoped storage and map old references to URLs.

Layout: ``{storage_root}/{owner}/{category}/{name}`` served as
``{url_prefix}/{owner}/{category}/{name}``. The name is derived from the
source basename plus a short hash of owner, category and basename, so
relocating the same file twice lands on the same path.
"""

from __future__ import annotations

import contextlib
import filecmp
import logging
import os
import posixpath
import shutil
from pathlib import Path, PurePosixPath
from tempfile import NamedTemporaryFile
from urllib.parse import quote

from ..ids import compute_deterministic_id, slugify
from ..ingest.error_handling import ErrorContext, ErrorManager, RelocationFailedError
from ..model.bundle_options import BundleOptions
from ..parser.references import strip_query_and_fragment
from ..types import RelocatedAsset, ResolvedAsset, VideoFile
from .classify import VIDEO_EXTENSIONS

logger = logging.getLogger(__name__)


def sanitize_segment(text: str) -> str:
    """Slug safe for both a path segment and a URL segment.

    Raises:
        ValueError: when nothing usable remains after sanitising
    """

    segment = slugify(text)
    if not segment:
        raise ValueError(f"Cannot derive a safe path segment from {text!r}")
    return segment


def deterministic_video_name(owner_id: str, category: str, basename: str) -> str:
    stem, ext = posixpath.splitext(basename)
    suffix = compute_deterministic_id(owner_id, category, basename)[:8]
    safe_stem = slugify(stem) or "video"
    return f"{safe_stem}-{suffix}{ext.lower()}"


def destination_directory(storage_root: Path, owner_id: str, category: str) -> Path:
    """``{storage_root}/{owner}/{category}`` with both segments sanitised.

    Raises:
        ValueError: if owner_id or category sanitise to nothing
    """

    return storage_root / sanitize_segment(owner_id) / sanitize_segment(category)


def _atomic_copy(source: Path, destination: Path) -> None:
    with NamedTemporaryFile(dir=str(destination.parent), prefix=".", suffix=".part", delete=False) as tmp:
        tmp_path = Path(tmp.name)
    try:
        shutil.copyfile(source, tmp_path)
        shutil.copymode(source, tmp_path)
        os.replace(tmp_path, destination)
    finally:
        with contextlib.suppress(OSError):
            tmp_path.unlink()


def store_video(
    source: Path,
    *,
    owner_id: str,
    category: str,
    storage_root: Path,
    url_prefix: str,
) -> tuple[str, Path]:
    """Copy ``source`` into storage; return ``(url, destination_path)``.

    An identical file already at the destination is left in place.

    Raises:
        RelocationFailedError: on any I/O error while copying
        ValueError: if owner_id or category sanitise to nothing
    """

    destination_dir = destination_directory(storage_root, owner_id, category)
    name = deterministic_video_name(owner_id, category, source.name)
    destination = destination_dir / name

    try:
        destination_dir.mkdir(parents=True, exist_ok=True)
        if destination.is_file() and filecmp.cmp(source, destination, shallow=False):
            logger.debug("Video already stored at %s", destination)
        else:
            _atomic_copy(source, destination)
            logger.info("Stored video %s -> %s", source, destination)
    except OSError as exc:
        raise RelocationFailedError(source, destination, cause=exc) from exc

    url = "/".join(
        [url_prefix.rstrip("/"), quote(destination_dir.parent.name), quote(destination_dir.name), quote(name)]
    )
    return url, destination


def relocate_video(
    asset: ResolvedAsset,
    *,
    owner_id: str,
    category: str,
    storage_root: Path,
    url_prefix: str,
) -> RelocatedAsset:
    url, destination = store_video(
        asset.absolute_path,
        owner_id=owner_id,
        category=category,
        storage_root=storage_root,
        url_prefix=url_prefix,
    )
    return RelocatedAsset(reference=asset.reference, destination_url=url, destination_path=destination)


def relocation_map_entries(relocated: RelocatedAsset) -> dict[str, str]:
    """Old reference -> URL, for the path as written and for its bare filename."""

    path = relocated.reference.referenced_path
    entries = {path: relocated.destination_url}
    bare = PurePosixPath(strip_query_and_fragment(path)).name
    if bare and bare != path:
        entries[bare] = relocated.destination_url
    return entries


def find_video_files(directory: Path) -> list[VideoFile]:
    """Recursively list video files under ``directory``, sorted by relative path."""

    videos: list[VideoFile] = []

    def _on_error(exc: OSError) -> None:
        logger.error("Error reading directory %s: %s", exc.filename, exc)

    for dirpath, dirnames, filenames in os.walk(directory, onerror=_on_error):
        dirnames.sort()
        for filename in filenames:
            if posixpath.splitext(filename)[1].lower() not in VIDEO_EXTENSIONS:
                continue
            full_path = Path(dirpath) / filename
            relative = full_path.relative_to(directory).as_posix()
            videos.append(VideoFile(relative_path=relative, full_path=full_path))

    videos.sort(key=lambda v: v.relative_path)
    return videos


def relocate_videos_in_tree(directory: Path, options: BundleOptions) -> dict[str, str]:
    """Relocate every video under an extracted upload tree.

    Returns a map of relative path and bare filename -> URL. When two videos
    share a filename the first (by relative path) keeps the bare-name entry.
    A failed copy is logged and the remaining videos are still processed.

    Raises:
        ValueError: if relocation is not configured in ``options`` or would write
            inside ``directory``
    """

    if not options.relocation_enabled:
        raise ValueError("relocating videos requires owner_id and storage_root")
    assert options.owner_id is not None and options.storage_root is not None
    destination = destination_directory(options.storage_root, options.owner_id, options.category).resolve()
    scanned = directory.resolve()
    if destination.is_relative_to(scanned):
        raise ValueError(f"storage destination {destination} must not be inside {directory}")
    if scanned.is_relative_to(destination):
        raise ValueError(f"storage destination {destination} must not contain {directory}")

    replacements: dict[str, str] = {}
    for video in find_video_files(directory):
        try:
            url, _ = store_video(
                video.full_path,
                owner_id=options.owner_id,
                category=options.category,
                storage_root=options.storage_root,
                url_prefix=options.url_prefix,
            )
        except RelocationFailedError as exc:
            ErrorManager(
                ErrorContext(source_module="relocate", asset_path=video.full_path, owner_id=options.owner_id)
            ).warn("RELOCATE-001", f"Failed to store video {video.relative_path}", exception=exc)
            continue
        replacements[video.relative_path] = url
        replacements.setdefault(video.full_path.name, url)
    return replacements


__all__ = [
    "destination_directory",
    "deterministic_video_name",
    "find_video_files",
    "relocate_video",
    "relocate_videos_in_tree",
    "relocation_map_entries",
    "sanitize_segment",
    "store_video",
]
