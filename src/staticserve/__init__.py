"""
=============================================================================
staticserve - A THREADED STATIC FILE SERVER
=============================================================================

Serves a directory tree over HTTP/1.1 with:

    - path safety (no escaping the root, no dotfiles)
    - MIME types from file extensions
    - Last-Modified / If-Modified-Since caching
    - on-the-fly gzip for text assets
    - optional HTML directory listings

Quick start:

    $ python -m staticserve --home ./public --port 8080 --listdir

    >>> from staticserve import HTTPServer, ServerConfig
    >>> HTTPServer(ServerConfig(root_dir="./public")).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import HTTPServer, create_app

__all__ = ["HTTPServer", "ServerConfig", "create_app", "__version__"]
