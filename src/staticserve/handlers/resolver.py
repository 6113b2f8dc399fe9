"""
=============================================================================
PATH RESOLUTION
=============================================================================

Turns a decoded URL path into ONE of three outcomes, or an error:

    ┌──────────────────────┬──────────────────────────────────────────────┐
    │  Outcome             │  Meaning                                     │
    ├──────────────────────┼──────────────────────────────────────────────┤
    │  ServeFile(meta)     │  send this regular file                      │
    │  Redirect(location)  │  301 to the same directory with a slash      │
    │  RenderListing(dir)  │  HTML index of a directory                   │
    ├──────────────────────┼──────────────────────────────────────────────┤
    │  ClientPathRejected  │  404, a segment starts with "."              │
    │  ResourceNotFound    │  404, missing, unreadable, or no index       │
    └──────────────────────┴──────────────────────────────────────────────┘

=============================================================================
PATH SAFETY
=============================================================================

The path is normalized LEXICALLY, anchored at "/":

    "/docs//a.css"          → "docs/a.css"
    "/docs/../index.html"   → "index.html"
    "/../../etc/passwd"     → "etc/passwd"     (cannot climb above root)
    "/"                     → "."

After normalization, any segment starting with "." is refused:

    "/.env"                 → 404
    "/secret/.git/config"   → 404
    "/a/../.htpasswd"       → 404     (checked AFTER normalization)

The answer is the same 404 a missing file gets, so a client cannot tell
a hidden file from an absent one.

=============================================================================
"""

import os
import posixpath
import stat
from dataclasses import dataclass
from typing import Sequence, Union
from urllib.parse import quote

from ..http.errors import ClientPathRejected, ResourceNotFound


INDEX_FILES = ("index.html", "index.xhtml")


@dataclass(frozen=True)
class ResourceMetadata:
    """
    What the server knows about a file system entry, taken from a single
    stat() call so that is_directory and size always agree.
    """

    path: str
    is_directory: bool
    size: int
    modified_at: float

    @classmethod
    def from_stat(cls, path: str, st: os.stat_result) -> "ResourceMetadata":
        return cls(
            path=path,
            is_directory=stat.S_ISDIR(st.st_mode),
            size=st.st_size,
            modified_at=st.st_mtime,
        )


@dataclass(frozen=True)
class ServeFile:
    metadata: ResourceMetadata


@dataclass(frozen=True)
class Redirect:
    location: str


@dataclass(frozen=True)
class RenderListing:
    directory: str
    url_path: str


Resolution = Union[ServeFile, Redirect, RenderListing]


def normalize_path(url_path: str) -> str:
    """
    Normalize a URL path to a root-relative file system path.

        >>> normalize_path("/docs//./a.css")
        'docs/a.css'
        >>> normalize_path("/")
        '.'
    """
    # Single leading slash: normpath treats "//" as a distinct root
    normalized = posixpath.normpath("/" + url_path.lstrip("/"))
    return normalized.lstrip("/") or "."


def is_hidden_path(relative_path: str) -> bool:
    """Check whether any segment of a normalized path starts with '.'."""
    if relative_path == ".":
        return False
    return any(segment.startswith(".") for segment in relative_path.split("/"))


class PathResolver:
    """
    Maps request paths to files under a document root.

    Stateless after construction: one instance is shared by every worker
    thread, and every resolve() call stats the file system afresh.

    Usage:
        resolver = PathResolver("/var/www", list_directories=True)
        outcome = resolver.resolve("/docs")
        # Redirect(location='/docs/')
    """

    def __init__(
        self,
        root: str,
        index_files: Sequence[str] = INDEX_FILES,
        list_directories: bool = False,
    ):
        self.root = os.path.abspath(root)
        self.index_files = tuple(index_files)
        self.list_directories = list_directories

    def resolve(self, url_path: str) -> Resolution:
        """
        Resolve a decoded URL path.

        Raises:
            ClientPathRejected: A path segment is hidden.
            ResourceNotFound:   Nothing servable exists at the path.
        """
        relative = normalize_path(url_path)

        if is_hidden_path(relative):
            raise ClientPathRejected(f"Hidden path segment in {url_path!r}")

        fs_path = self._to_fs_path(relative)
        metadata = self._stat(fs_path)

        if not metadata.is_directory:
            return ServeFile(metadata)

        # ─────────────────────────────────────────────────────────────────
        # DIRECTORIES
        # ─────────────────────────────────────────────────────────────────
        if relative != "." and not url_path.endswith("/"):
            return Redirect(location="/" + quote(relative) + "/")

        for index_name in self.index_files:
            try:
                index_meta = self._stat(os.path.join(fs_path, index_name))
            except ResourceNotFound:
                continue
            if not index_meta.is_directory:
                return ServeFile(index_meta)

        if self.list_directories:
            return RenderListing(directory=fs_path, url_path=url_path)

        raise ResourceNotFound(f"No index file in {url_path!r} and listing is off")

    def _to_fs_path(self, relative: str) -> str:
        if relative == ".":
            return self.root
        return os.path.join(self.root, *relative.split("/"))

    @staticmethod
    def _stat(fs_path: str) -> ResourceMetadata:
        try:
            st = os.stat(fs_path)
        except (OSError, ValueError) as e:
            # ValueError: embedded NUL byte in the path
            raise ResourceNotFound(str(e)) from e
        return ResourceMetadata.from_stat(fs_path, st)
