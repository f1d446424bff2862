from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

# A key only matches as a whole reference value: the character before it must
# be a delimiter (or start of text) and the one after it must close the value.
_BEFORE = r"""(?<![^\s"'(=,])"""
_AFTER = r"""(?![^\s"')>,])"""


def _compile(keys: Iterable[str]) -> re.Pattern[str] | None:
    ordered = sorted({k for k in keys if k}, key=lambda k: (-len(k), k))
    if not ordered:
        return None
    alternation = "|".join(re.escape(k) for k in ordered)
    return re.compile(f"{_BEFORE}(?:{alternation}){_AFTER}")


def rewrite_references(html: str, replacements: Mapping[str, str]) -> str:
    """Replace every whole-reference occurrence of each key with its value.

    All keys are applied in a single pass with longer keys tried first, so a
    replacement is never rescanned and ``img/a.png`` is not shadowed by
    ``a.png``. Returns a new string.
    """

    pattern = _compile(replacements)
    if pattern is None or not html:
        return html
    return pattern.sub(lambda m: replacements[m.group(0)], html)


def count_references(html: str, keys: Iterable[str]) -> int:
    pattern = _compile(keys)
    if pattern is None or not html:
        return 0
    return sum(1 for _ in pattern.finditer(html))
