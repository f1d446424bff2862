from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class SyntaxKind(Enum):
    """Textual form a media reference was discovered in."""

    IMG_SRC = "imgSrc"  # <tag src="...">
    ANCHOR_HREF = "anchorHref"  # <tag href="...">
    CSS_BACKGROUND_URL = "cssBackgroundUrl"  # background-image: url(...)
    GENERIC_URL = "genericUrl"  # bare url(...) in any style


class AssetKind(Enum):
    IMAGE = "image"
    VIDEO = "video"
    UNSUPPORTED = "unsupported"


class SkipReason(Enum):
    """Why a reference was left untouched in the output."""

    UNRESOLVED = "unresolved"
    UNREADABLE = "unreadable"
    RELOCATION_FAILED = "relocation-failed"
    RELOCATION_DISABLED = "relocation-disabled"
    UNSUPPORTED = "unsupported"
    DEADLINE_EXCEEDED = "deadline-exceeded"
    INTERNAL_ERROR = "internal-error"


@dataclass(frozen=True)
class MediaReference:
    """A de-duplicated media reference found in a document.

    - raw_match_text: the first matched markup fragment, e.g. ``src="a.png"``
    - referenced_path: the path exactly as written (dedup identity)
    - syntax_kind: form of the first occurrence
    - occurrences: every raw matched fragment for this path, in document order
    """

    raw_match_text: str
    referenced_path: str
    syntax_kind: SyntaxKind
    occurrences: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedAsset:
    reference: MediaReference
    absolute_path: Path
    size_bytes: int
    declared_extension: str  # lower-cased, with leading dot
    search_root: Path  # first configured root containing absolute_path


@dataclass(frozen=True)
class EmbeddedAsset:
    reference: MediaReference
    mime_type: str
    data_uri: str


@dataclass(frozen=True)
class RelocatedAsset:
    reference: MediaReference
    destination_url: str
    destination_path: Path


@dataclass(frozen=True)
class VideoFile:
    relative_path: str  # POSIX separators, relative to the scanned directory
    full_path: Path


@dataclass
class BundleResult:
    """Outcome of a single bundling call.

    ``video_url_map`` holds every old reference -> relocated URL entry that was
    applied (including bare-filename aliases) so callers can store it and apply
    it to other documents that reference the same files.
    """

    html: str
    embedded_count: int = 0
    relocated_count: int = 0
    skipped_references: list[str] = field(default_factory=list)
    video_url_map: dict[str, str] = field(default_factory=dict)
    skip_reasons: dict[str, SkipReason] = field(default_factory=dict)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_references)
