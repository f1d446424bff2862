from __future__ import annotations

__all__ = [
    "MediaReference",
    "SyntaxKind",
    "is_excluded_reference",
    "reference_extension",
    "scan_references",
    "strip_query_and_fragment",
]

# Re-export types (explicit alias marks intent for linters)
from ..types import MediaReference as MediaReference
from ..types import SyntaxKind as SyntaxKind

# Re-export primary functions (explicit alias)
from .references import is_excluded_reference as is_excluded_reference
from .references import reference_extension as reference_extension
from .references import scan_references as scan_references
from .references import strip_query_and_fragment as strip_query_and_fragment
