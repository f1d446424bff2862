from __future__ import annotations

import posixpath
import re

from ..builder.classify import is_candidate_extension
from ..types import MediaReference, SyntaxKind

# Body of a url(...) value. Each form stops at its own closing quote, and the
# unquoted form cannot cross "(", "<", ">" or whitespace, so a url( that never
# closes fails after a bounded scan instead of running to the end of the text.
# Trailing whitespace belongs to the value branch so the two runs never overlap.
_URL_BODY = (
    r"""\(\s*(?:"(?P<{p}dq>[^"<>]*)"\s*|'(?P<{p}sq>[^'<>]*)'\s*|(?P<{p}uq>[^"'()<>\s]+)\s*)?\)"""
)

# One combined pattern so a background url(...) is consumed by the background
# alternative before the bare url(...) alternative can see it.
_REFERENCE_RE = re.compile(
    r"""\b(?P<attr>src|href)\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<uq>[^\s"'<>=`]+))"""
    r"""|background(?:-image)?\s*:\s*url""" + _URL_BODY.format(p="bg")
    + r"""|\burl""" + _URL_BODY.format(p="url"),
    re.IGNORECASE,
)

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")


def strip_query_and_fragment(path: str) -> str:
    for sep in ("?", "#"):
        idx = path.find(sep)
        if idx != -1:
            path = path[:idx]
    return path


def reference_extension(path: str) -> str:
    """Lower-cased extension of a reference, ignoring any query or fragment."""

    return posixpath.splitext(strip_query_and_fragment(path))[1].lower()


def is_excluded_reference(path: str) -> bool:
    """True for references that are never candidates for resolution.

    Covers absolute URLs (http, https and any other scheme, data: included),
    protocol-relative and root-absolute paths, and pure fragments.
    """

    if not path:
        return True
    if _SCHEME_RE.match(path):
        return True
    return path.startswith(("/", "\\", "#"))


def _first_group(m: re.Match[str], prefix: str) -> str | None:
    for name in ("dq", "sq", "uq"):
        value = m.group(prefix + name)
        if value is not None:
            return value
    return None


def _match_path(m: re.Match[str]) -> tuple[str | None, SyntaxKind]:
    if m.group("attr") is not None:
        kind = SyntaxKind.IMG_SRC if m.group("attr").lower() == "src" else SyntaxKind.ANCHOR_HREF
        return _first_group(m, ""), kind
    background = _first_group(m, "bg")
    if background is not None:
        return background, SyntaxKind.CSS_BACKGROUND_URL
    return _first_group(m, "url"), SyntaxKind.GENERIC_URL


def scan_references(html: str | None) -> list[MediaReference]:
    """Find candidate media references in raw HTML text.

    Returns references ordered by first appearance and de-duplicated by the
    path as written; every raw occurrence is kept on the reference. Paths are
    trimmed of surrounding whitespace, otherwise kept exactly (case included).
    Never raises: fragments that do not match are ignored.
    """

    if not html:
        return []

    order: list[str] = []
    first: dict[str, tuple[str, SyntaxKind]] = {}
    occurrences: dict[str, list[str]] = {}

    for m in _REFERENCE_RE.finditer(html):
        raw_path, kind = _match_path(m)
        if raw_path is None:
            continue
        path = raw_path.strip()
        if is_excluded_reference(path):
            continue
        if not is_candidate_extension(reference_extension(path)):
            continue
        if path not in first:
            order.append(path)
            first[path] = (m.group(0), kind)
            occurrences[path] = []
        occurrences[path].append(m.group(0))

    return [
        MediaReference(
            raw_match_text=first[path][0],
            referenced_path=path,
            syntax_kind=first[path][1],
            occurrences=tuple(occurrences[path]),
        )
        for path in order
    ]
