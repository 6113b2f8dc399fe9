"""
Static file handling: path resolution, conditional requests, gzip
encoding, directory listings and the dispatcher that ties them together.
"""

from .compression import (
    COMPRESSIBLE_EXTENSIONS,
    CompressionEncoder,
    CompressionPolicy,
    GzipWriter,
)
from .conditional import is_not_modified, parse_http_date, truncate_to_second
from .dispatcher import RequestDispatcher
from .listing import DirectoryLister, ListingEntry
from .resolver import (
    INDEX_FILES,
    PathResolver,
    Redirect,
    RenderListing,
    ResourceMetadata,
    ServeFile,
)

__all__ = [
    "RequestDispatcher",
    "PathResolver",
    "ResourceMetadata",
    "ServeFile",
    "Redirect",
    "RenderListing",
    "INDEX_FILES",
    "DirectoryLister",
    "ListingEntry",
    "CompressionPolicy",
    "CompressionEncoder",
    "GzipWriter",
    "COMPRESSIBLE_EXTENSIONS",
    "truncate_to_second",
    "parse_http_date",
    "is_not_modified",
]
