"""Centralized decision logging for the bundling pipeline.

These helpers record configuration, per-reference decisions and error
policies for troubleshooting. User-facing progress lives in
``mediabundle.ui.progress``.
"""

from __future__ import annotations

import logging
from typing import Any

from mediabundle.ingest.resolver import SearchRootSet
from mediabundle.model.bundle_options import BundleOptions

logger = logging.getLogger(__name__)


def log_bundle_configuration(options: BundleOptions, roots: SearchRootSet) -> None:
    """Log the bundling configuration decisions for debugging.

    Args:
        options: Bundle options in effect
        roots: Validated search roots, in priority order
    """
    logger.info("Bundle configuration:")
    for index, root in enumerate(roots.roots, start=1):
        logger.info("  Search root %d: %s", index, root)
    logger.info("  Max embed size: %s", options.max_embed_bytes or "unlimited")
    logger.info("  Workers: %d", options.effective_max_workers)
    if options.relocation_enabled:
        logger.info(
            "  Video relocation: %s/%s/%s -> %s",
            options.storage_root,
            options.owner_id,
            options.category,
            options.url_prefix,
        )
    else:
        logger.info("  Video relocation: disabled")
    if options.deadline_seconds is not None:
        logger.info("  Deadline: %.1fs", options.deadline_seconds)


def log_asset_decision(reference_path: str, decision: str, context: dict[str, Any] | None = None) -> None:
    """Log what happened to one reference.

    Args:
        reference_path: The reference as written in the document
        decision: The decision made (e.g., "embedded", "relocated", "skipped")
        context: Optional context information
    """
    if context:
        context_str = ", ".join(f"{k}={v}" for k, v in context.items())
        logger.info("%s: %s (%s)", reference_path, decision, context_str)
    else:
        logger.info("%s: %s", reference_path, decision)


def log_error_policy(feature: str, error_type: str, action: str, details: str | None = None) -> None:
    """Log error handling policy decisions.

    Args:
        feature: Name of the stage encountering the error
        error_type: Type of error (e.g., "unresolved", "unreadable")
        action: Action taken (e.g., "skip", "leave-unchanged")
        details: Optional additional details
    """
    if details:
        logger.warning("%s error policy: %s -> %s (%s)", feature, error_type, action, details)
    else:
        logger.warning("%s error policy: %s -> %s", feature, error_type, action)


__all__ = [
    "log_asset_decision",
    "log_bundle_configuration",
    "log_error_policy",
]
