"""Error taxonomy and structured error logging for the bundling pipeline.

Every per-reference failure is handled where it happens: the pipeline logs it
through :class:`ErrorManager` and leaves that reference untouched. Only
:class:`InvalidSearchRootsError` (a caller mistake) propagates out of
``bundle()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class BundleError(Exception):
    """Base class for all bundling errors."""


class UnresolvedReferenceError(BundleError):
    """Reference not found in any search root, or it escaped the allowed roots."""

    def __init__(self, reference_path: str) -> None:
        self.reference_path = reference_path
        super().__init__(f"Could not resolve reference '{reference_path}' in any search root")


class UnreadableAssetError(BundleError):
    """Asset was found but could not be read (permissions, race-deleted, too large)."""

    def __init__(self, path: Path, cause: Exception | None = None, reason: str | None = None) -> None:
        self.path = path
        self.cause = cause
        self.reason = reason
        message = f"Failed to read asset {path}"
        if reason:
            message += f" ({reason})"
        if cause:
            message += f": {cause}"
        super().__init__(message)


class RelocationFailedError(BundleError):
    """Copying a video asset to long-term storage failed."""

    def __init__(self, source: Path, destination: Path | None = None, cause: Exception | None = None) -> None:
        self.source = source
        self.destination = destination
        self.cause = cause
        message = f"Failed to relocate {source}"
        if destination is not None:
            message += f" to {destination}"
        if cause:
            message += f": {cause}"
        super().__init__(message)


class UnsupportedAssetTypeError(BundleError):
    """Extension is neither an image nor a video. Informational, never raised out of bundle()."""

    def __init__(self, reference_path: str, extension: str) -> None:
        self.reference_path = reference_path
        self.extension = extension
        super().__init__(f"Unsupported asset type '{extension or '<none>'}' for '{reference_path}'")


class InvalidSearchRootsError(BundleError, ValueError):
    """The caller supplied an empty, relative or missing search root."""

    def __init__(self, message: str, root: object | None = None) -> None:
        self.root = root
        super().__init__(message)


@dataclass
class ErrorContext:
    """Context attached to every structured log record."""

    source_module: str | None = None
    reference_path: str | None = None
    asset_path: Path | None = None
    owner_id: str | None = None

    def to_extra(self) -> dict[str, Any]:
        extra: dict[str, Any] = {}
        if self.source_module is not None:
            extra["source_module"] = self.source_module
        if self.reference_path is not None:
            extra["reference_path"] = self.reference_path
        if self.asset_path is not None:
            extra["asset_path"] = str(self.asset_path)
        if self.owner_id is not None:
            extra["owner_id"] = self.owner_id
        return extra


class ErrorManager:
    """Log warnings and errors with an event code and structured extras.

    Records carry ``event_code`` plus the context fields as attributes so
    tests and log processors can filter on them.
    """

    def __init__(self, context: ErrorContext | None = None, log: logging.Logger | None = None) -> None:
        self.context = context or ErrorContext()
        self._logger = log or logger

    def _build_extra(
        self, event_code: str, extra: dict[str, Any] | None, exception: BaseException | None
    ) -> dict[str, Any]:
        data = {"event_code": event_code, **self.context.to_extra()}
        if extra:
            data.update(extra)
        if exception is not None:
            data["exception_class"] = type(exception).__name__
            data["exception_message"] = str(exception)
        return data

    def warn(
        self,
        event_code: str,
        message: str,
        *,
        extra: dict[str, Any] | None = None,
        exception: BaseException | None = None,
    ) -> None:
        self._logger.warning("%s: %s", event_code, message, extra=self._build_extra(event_code, extra, exception))

    def error(
        self,
        event_code: str,
        message: str,
        *,
        extra: dict[str, Any] | None = None,
        exception: BaseException | None = None,
    ) -> None:
        self._logger.error("%s: %s", event_code, message, extra=self._build_extra(event_code, extra, exception))

    def info(self, event_code: str, message: str, *, extra: dict[str, Any] | None = None) -> None:
        self._logger.info("%s: %s", event_code, message, extra=self._build_extra(event_code, extra, None))


__all__ = [
    "BundleError",
    "ErrorContext",
    "ErrorManager",
    "InvalidSearchRootsError",
    "RelocationFailedError",
    "UnreadableAssetError",
    "UnresolvedReferenceError",
    "UnsupportedAssetTypeError",
]
