from __future__ import annotations

import hashlib
import re

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9._-]+")
_SLUG_DASHES_RE = re.compile(r"-{2,}")


def compute_deterministic_id(
    owner_id: str,
    category: str,
    basename: str | None = None,
) -> str:
    """Compute a deterministic 16-hex id from the provided components.

    _id = sha1(<owner-id>|<category>|<basename>)[:16]
    If basename is None, omit the trailing separator and basename.
    """

    parts = [owner_id, category]
    if basename is not None:
        parts.append(basename)
    seed = "|".join(parts)
    digest = hashlib.sha1(seed.encode("utf-8")).hexdigest()
    return digest[:16]


def slugify(text: str) -> str:
    """Lower-case ``text`` and reduce it to ``[a-z0-9._-]``.

    Runs of other characters collapse to a single dash; leading and trailing
    dots and dashes are stripped so the result can never be ``.`` or ``..``.
    Returns an empty string when nothing usable remains.
    """

    s = _SLUG_STRIP_RE.sub("-", (text or "").lower())
    s = _SLUG_DASHES_RE.sub("-", s)
    return s.strip(".-")
