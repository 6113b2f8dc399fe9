"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to MIME types for the Content-Type header.

=============================================================================
WHY MIME TYPES MATTER
=============================================================================

The MIME type tells the browser how to handle the bytes it receives:

    script.js served as text/plain      → browser refuses to execute it
    image.png served as text/html       → browser renders garbage
    report.pdf as application/pdf       → browser opens its PDF viewer

We detect the type from the extension only. Sniffing file contents would
mean reading bytes before deciding on headers, which a streaming server
wants to avoid.

=============================================================================
EXTENSION RULES
=============================================================================

    "style.css"        → "css"
    "archive.tar.gz"   → "gz"      (text after the LAST dot)
    "Makefile"         → ""        (no dot, no extension)
    "PHOTO.JPG"        → "jpg"     (lookups are case-insensitive)

Unknown or missing extensions fall back to application/octet-stream,
which browsers treat as "download this".

=============================================================================
"""

import posixpath
from types import MappingProxyType
from typing import Mapping


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
#
# Keys are lowercase extensions WITHOUT the leading dot. The table is wrapped
# in a MappingProxyType below, so nothing can add entries while serving.
#
# =============================================================================

MIME_TYPES = MappingProxyType({
    # -------------------------------------------------------------------------
    # COMMON WEB TYPES
    # -------------------------------------------------------------------------
    "html": "text/html",
    "js": "application/javascript",
    "css": "text/css",
    "xml": "text/xml",
    "xhtml": "application/xhtml+xml",
    "txt": "text/plain",
    "json": "application/json",

    # -------------------------------------------------------------------------
    # IMAGES
    # -------------------------------------------------------------------------
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "ico": "image/x-icon",

    # -------------------------------------------------------------------------
    # MEDIA
    # -------------------------------------------------------------------------
    "mp3": "audio/mpeg",
    "ogg": "audio/ogg",
    "m4a": "audio/x-m4a",
    "avi": "video/x-msvideo",
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "ts": "video/mp2t",            # MPEG transport stream, not TypeScript
    "webm": "video/webm",
    "m3u8": "application/vnd.apple.mpegurl",

    # -------------------------------------------------------------------------
    # FONTS
    # -------------------------------------------------------------------------
    "eot": "application/vnd.ms-fontobject",
    "ttf": "font/ttf",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "otf": "font/otf",

    # -------------------------------------------------------------------------
    # DOCUMENTS
    # -------------------------------------------------------------------------
    "pdf": "application/pdf",
    "csv": "text/csv",

    # -------------------------------------------------------------------------
    # ARCHIVES
    # -------------------------------------------------------------------------
    "7z": "application/x-ms-compressed",
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
})

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def file_extension(path: str) -> str:
    """
    Get the extension of a file name: the text after its last dot.

    Only the final path component is considered, so a dot in a directory
    name never leaks into the result.

    Examples:
        >>> file_extension("/site/css/style.css")
        'css'
        >>> file_extension("/site/v1.2/README")
        ''
    """
    name = posixpath.basename(path.replace("\\", "/"))
    _, dot, extension = name.rpartition(".")
    return extension.lower() if dot else ""


class MimeRegistry:
    """
    Read-only lookup table from extension to MIME type.

    Built once at startup and handed to the dispatcher. Instances wrap
    their table in a MappingProxyType, so a registry can be shared by
    every worker thread without locking.

    Usage:
        registry = MimeRegistry()
        registry.lookup("css")                  # 'text/css'
        registry.content_type_for("a/b.PNG")    # 'image/png'
        registry.lookup("nope")                 # 'application/octet-stream'
    """

    def __init__(
        self,
        types: Mapping[str, str] = MIME_TYPES,
        default: str = DEFAULT_MIME_TYPE,
    ):
        self._types = MappingProxyType(
            {ext.lower().lstrip("."): mime for ext, mime in types.items()}
        )
        self.default = default

    def lookup(self, extension: str) -> str:
        """Get the MIME type for an extension (without the dot)."""
        return self._types.get(extension.lower(), self.default)

    def content_type_for(self, path: str) -> str:
        """Get the MIME type for a file path, based on its extension."""
        return self.lookup(file_extension(path))

    def __contains__(self, extension: str) -> bool:
        return extension.lower() in self._types

    def __len__(self) -> int:
        return len(self._types)
