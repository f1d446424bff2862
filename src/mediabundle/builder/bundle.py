"""Bundle an HTML document: inline images, relocate videos, rewrite references.

Pipeline:

1. validate search roots and options (the only errors raised to the caller)
2. scan the document once
3. resolve, classify and embed/relocate each reference on a thread pool
4. fold all results into one replacement map
5. rewrite the document once

A reference that cannot be handled is left exactly as written and reported in
``BundleResult.skipped_references``.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from pathlib import Path

from ..ingest.error_handling import (
    ErrorContext,
    ErrorManager,
    RelocationFailedError,
    UnreadableAssetError,
    UnresolvedReferenceError,
    UnsupportedAssetTypeError,
)
from ..ingest.feature_logger import log_asset_decision, log_bundle_configuration, log_error_policy
from ..ingest.resolver import SearchRootSet, resolve_reference
from ..model.bundle_options import BundleOptions
from ..parser.references import scan_references
from ..transform.rewrite import count_references, rewrite_references
from ..types import (
    AssetKind,
    BundleResult,
    EmbeddedAsset,
    MediaReference,
    RelocatedAsset,
    SkipReason,
)
from .classify import classify_extension
from .embed import embed_image
from .output import atomic_write_text, default_output_path
from .relocate import destination_directory, relocate_video, relocation_map_entries

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, dict[str, int | str]], None]


@dataclass
class ReferenceOutcome:
    reference: MediaReference
    embedded: EmbeddedAsset | None = None
    relocated: RelocatedAsset | None = None
    skip_reason: SkipReason | None = None


def _emit(on_progress: ProgressCallback | None, event: str, payload: dict[str, int | str]) -> None:
    if on_progress is not None:
        on_progress(event, payload)


def process_reference(
    reference: MediaReference,
    roots: SearchRootSet,
    options: BundleOptions,
    cancelled: threading.Event | None = None,
) -> ReferenceOutcome:
    """Resolve -> classify -> embed | relocate for one reference.

    Per-reference failures become a skip outcome; nothing is raised. Once
    ``cancelled`` is set no embedding or copy is started for this reference.
    """

    path = reference.referenced_path
    manager = ErrorManager(ErrorContext(source_module="bundle", reference_path=path, owner_id=options.owner_id))

    asset = resolve_reference(reference, roots)
    if asset is None:
        manager.warn("BUNDLE-001", f"Reference not resolved: {path}", exception=UnresolvedReferenceError(path))
        return ReferenceOutcome(reference, skip_reason=SkipReason.UNRESOLVED)

    if cancelled is not None and cancelled.is_set():
        return ReferenceOutcome(reference, skip_reason=SkipReason.DEADLINE_EXCEEDED)

    kind = classify_extension(asset.declared_extension)
    if kind is AssetKind.IMAGE:
        try:
            embedded = embed_image(asset, max_bytes=options.max_embed_bytes)
        except UnreadableAssetError as exc:
            manager.warn("BUNDLE-002", f"Image not embedded: {path}", exception=exc)
            return ReferenceOutcome(reference, skip_reason=SkipReason.UNREADABLE)
        log_asset_decision(path, "embedded", {"bytes": asset.size_bytes, "mime": embedded.mime_type})
        return ReferenceOutcome(reference, embedded=embedded)

    if kind is AssetKind.VIDEO:
        if not options.relocation_enabled:
            log_error_policy("relocate", "relocation-disabled", "leave-unchanged", path)
            return ReferenceOutcome(reference, skip_reason=SkipReason.RELOCATION_DISABLED)
        assert options.owner_id is not None and options.storage_root is not None
        try:
            relocated = relocate_video(
                asset,
                owner_id=options.owner_id,
                category=options.category,
                storage_root=options.storage_root,
                url_prefix=options.url_prefix,
            )
        except RelocationFailedError as exc:
            manager.warn("BUNDLE-003", f"Video not relocated: {path}", exception=exc)
            return ReferenceOutcome(reference, skip_reason=SkipReason.RELOCATION_FAILED)
        log_asset_decision(path, "relocated", {"url": relocated.destination_url})
        return ReferenceOutcome(reference, relocated=relocated)

    # Not reached through bundle(): the scanner only emits image and video
    # extensions. Direct callers may pass any reference.
    log_asset_decision(
        path, "skipped", {"reason": UnsupportedAssetTypeError(path, asset.declared_extension)}
    )
    return ReferenceOutcome(reference, skip_reason=SkipReason.UNSUPPORTED)


def _emit_outcome(on_progress: ProgressCallback | None, outcome: ReferenceOutcome) -> None:
    path = outcome.reference.referenced_path
    if outcome.embedded is not None:
        _emit(on_progress, "reference:embedded", {"path": path})
    elif outcome.relocated is not None:
        _emit(on_progress, "reference:relocated", {"path": path, "url": outcome.relocated.destination_url})
    else:
        reason = outcome.skip_reason.value if outcome.skip_reason else ""
        _emit(on_progress, "reference:skipped", {"path": path, "reason": reason})


def process_references(
    references: Sequence[MediaReference],
    roots: SearchRootSet,
    options: BundleOptions,
    on_progress: ProgressCallback | None = None,
) -> list[ReferenceOutcome]:
    """Process references concurrently; results come back in input order.

    References still pending when the deadline passes are returned as
    ``DEADLINE_EXCEEDED`` skips; already finished work is kept. Workers still
    running at the deadline are not waited for: they start no new embed or
    copy, but a video copy already in progress completes and leaves a stored
    file that no URL map refers to. Re-running the bundle reuses that file.
    """

    if not references:
        return []

    deadline = (
        time.monotonic() + options.deadline_seconds if options.deadline_seconds is not None else None
    )
    workers = min(options.effective_max_workers, len(references))
    outcomes: dict[str, ReferenceOutcome] = {}
    timed_out = False
    cancelled = threading.Event()

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="mediabundle")
    futures: dict[Future[ReferenceOutcome], MediaReference] = {
        executor.submit(process_reference, ref, roots, options, cancelled): ref for ref in references
    }
    try:
        timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
        for future in as_completed(futures, timeout=timeout):
            ref = futures[future]
            try:
                outcome = future.result()
            except Exception as exc:  # unexpected failure in a worker: keep the reference as written
                ErrorManager(
                    ErrorContext(source_module="bundle", reference_path=ref.referenced_path)
                ).error("BUNDLE-099", f"Unexpected error processing {ref.referenced_path}", exception=exc)
                outcome = ReferenceOutcome(ref, skip_reason=SkipReason.INTERNAL_ERROR)
            outcomes[ref.referenced_path] = outcome
            _emit_outcome(on_progress, outcome)
    except FuturesTimeoutError:
        timed_out = True
        cancelled.set()
        log_error_policy(
            "bundle",
            "deadline-exceeded",
            "keep-partial",
            f"{len(references) - len(outcomes)} reference(s) left unchanged",
        )
    finally:
        executor.shutdown(wait=not timed_out, cancel_futures=True)

    ordered: list[ReferenceOutcome] = []
    for ref in references:
        outcome = outcomes.get(ref.referenced_path)
        if outcome is None:
            outcome = ReferenceOutcome(ref, skip_reason=SkipReason.DEADLINE_EXCEEDED)
            _emit_outcome(on_progress, outcome)
        ordered.append(outcome)
    return ordered


def build_replacement_map(outcomes: Iterable[ReferenceOutcome]) -> tuple[dict[str, str], dict[str, str]]:
    """Fold outcomes into ``(replacements, video_url_map)``.

    References as written take precedence over bare-filename aliases; among
    aliases the first in document order wins.
    """

    outcomes = list(outcomes)
    replacements: dict[str, str] = {}
    video_url_map: dict[str, str] = {}
    for outcome in outcomes:
        path = outcome.reference.referenced_path
        if outcome.embedded is not None:
            replacements[path] = outcome.embedded.data_uri
        elif outcome.relocated is not None:
            replacements[path] = outcome.relocated.destination_url
            video_url_map[path] = outcome.relocated.destination_url

    for outcome in outcomes:
        if outcome.relocated is None:
            continue
        for key, url in relocation_map_entries(outcome.relocated).items():
            if key not in replacements:
                replacements[key] = url
                video_url_map[key] = url
    return replacements, video_url_map


def _check_storage_root(options: BundleOptions, roots: SearchRootSet) -> None:
    """Reject a relocation target that overlaps a search root in either direction."""

    if not options.relocation_enabled:
        return
    assert options.owner_id is not None and options.storage_root is not None
    destination = destination_directory(options.storage_root, options.owner_id, options.category).resolve()
    if roots.containing_root(destination) is not None:
        raise ValueError(
            f"storage_root {options.storage_root} must not be inside a search root (videos go to {destination})"
        )
    for canon in roots.canonical:
        if canon.is_relative_to(destination):
            raise ValueError(f"storage_root {options.storage_root} must not contain search root {canon}")


def bundle(
    html: str,
    search_roots: SearchRootSet | Iterable[str | os.PathLike[str]],
    options: BundleOptions | None = None,
    *,
    on_progress: ProgressCallback | None = None,
) -> BundleResult:
    """Bundle ``html`` against ``search_roots``.

    Args:
        html: Raw HTML text (may be malformed)
        search_roots: Absolute, existing directories, highest priority first
        options: Relocation target, limits and deadline
        on_progress: Optional ``(event, payload)`` callback

    Returns:
        BundleResult with the rewritten HTML and counts

    Raises:
        InvalidSearchRootsError: search_roots is empty, relative or missing
        ValueError: options are invalid
    """

    roots = search_roots if isinstance(search_roots, SearchRootSet) else SearchRootSet.from_paths(search_roots)
    options = options or BundleOptions()
    options.validate()
    _check_storage_root(options, roots)
    log_bundle_configuration(options, roots)

    references = scan_references(html)
    _emit(on_progress, "bundle:start", {"references": len(references)})
    if not references:
        _emit(on_progress, "bundle:finalized", {"embedded": 0, "relocated": 0, "skipped": 0})
        return BundleResult(html=html or "")

    outcomes = process_references(references, roots, options, on_progress)
    replacements, video_url_map = build_replacement_map(outcomes)

    bundled = rewrite_references(html, replacements)
    logger.debug("Rewrote %d occurrence(s) of %d key(s)", count_references(html, replacements), len(replacements))

    skip_reasons = {
        o.reference.referenced_path: o.skip_reason
        for o in outcomes
        if o.skip_reason is not None and o.reference.referenced_path not in replacements
    }
    result = BundleResult(
        html=bundled,
        embedded_count=sum(1 for o in outcomes if o.embedded is not None),
        relocated_count=sum(1 for o in outcomes if o.relocated is not None),
        skipped_references=list(skip_reasons),
        video_url_map=video_url_map,
        skip_reasons=skip_reasons,
    )
    logger.info(
        "Bundled %d image(s), relocated %d video(s), skipped %d reference(s)",
        result.embedded_count,
        result.relocated_count,
        result.skipped_count,
    )
    _emit(
        on_progress,
        "bundle:finalized",
        {"embedded": result.embedded_count, "relocated": result.relocated_count, "skipped": result.skipped_count},
    )
    return result


def bundle_file(
    html_path: Path,
    search_roots: Sequence[str | os.PathLike[str]] | None = None,
    options: BundleOptions | None = None,
    *,
    output_path: Path | None = None,
    on_progress: ProgressCallback | None = None,
) -> BundleResult:
    """Bundle an HTML file and write the result next to it (or to ``output_path``).

    Search roots default to the directory containing ``html_path``.
    """

    html_path = Path(html_path).resolve()
    roots = list(search_roots) if search_roots else [html_path.parent]
    html = html_path.read_text(encoding="utf-8")

    result = bundle(html, roots, options, on_progress=on_progress)

    target = output_path if output_path is not None else default_output_path(html_path)
    atomic_write_text(target, result.html)
    logger.info("Wrote bundled HTML to %s", target)
    return result


__all__ = [
    "ProgressCallback",
    "ReferenceOutcome",
    "build_replacement_map",
    "bundle",
    "bundle_file",
    "process_reference",
    "process_references",
]
