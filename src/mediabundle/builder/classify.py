from __future__ import annotations

from mediabundle.types import AssetKind

IMAGE_MIME_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}

VIDEO_EXTENSIONS: frozenset[str] = frozenset({".mp4", ".mov", ".webm", ".avi", ".mkv", ".m4v"})

DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"


def normalize_extension(ext: str) -> str:
    """Return ``ext`` lower-cased with a single leading dot ('' stays '')."""

    ext = (ext or "").strip().lower()
    if not ext:
        return ""
    return ext if ext.startswith(".") else f".{ext}"


def classify_extension(ext: str) -> AssetKind:
    normalized = normalize_extension(ext)
    if normalized in IMAGE_MIME_TYPES:
        return AssetKind.IMAGE
    if normalized in VIDEO_EXTENSIONS:
        return AssetKind.VIDEO
    return AssetKind.UNSUPPORTED


def is_candidate_extension(ext: str) -> bool:
    return classify_extension(ext) is not AssetKind.UNSUPPORTED


def mime_type_for(ext: str) -> str:
    """MIME type for an image extension; unknown extensions fall back to image/jpeg."""

    return IMAGE_MIME_TYPES.get(normalize_extension(ext), DEFAULT_IMAGE_MIME_TYPE)
