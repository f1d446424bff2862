"""mediabundle - turn HTML reports with relative media references into self-contained documents."""

__version__ = "0.1.0"

__all__ = ["__version__", "bundle", "bundle_file", "rewrite_references"]

from mediabundle.builder.bundle import bundle as bundle
from mediabundle.builder.bundle import bundle_file as bundle_file
from mediabundle.transform.rewrite import rewrite_references as rewrite_references
