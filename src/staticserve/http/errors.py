"""
=============================================================================
REQUEST ERRORS
=============================================================================

Exceptions raised while resolving and answering a request. Each one
carries the HTTP status it turns into, so the dispatcher can answer any
of them the same way:

    HTTPError                     (base, status_code attribute)
    ├── ResourceNotFound          404  stat / open / readdir failed
    │   └── ClientPathRejected    404  hidden path segment
    ├── MethodRejected            405  not GET or HEAD
    └── ServerFault               500
        └── ListingRenderError    500  directory page could not be built

Both 404 flavours produce the same response. The distinction only exists
in code, never on the wire, so a client cannot probe which dotfiles exist
or which paths are unreadable.

=============================================================================
"""

from .status_codes import HTTPStatus


class HTTPError(Exception):
    """Base class for errors that map directly to an HTTP status."""

    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    public_message: str = "Internal Server Error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.public_message)


class ResourceNotFound(HTTPError):
    status_code = HTTPStatus.NOT_FOUND
    public_message = "File not found"


class ClientPathRejected(ResourceNotFound):
    """A path segment starts with '.'; answered exactly like a missing file."""


class MethodRejected(HTTPError):
    status_code = HTTPStatus.METHOD_NOT_ALLOWED
    public_message = "Method not allowed"


class ServerFault(HTTPError):
    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    public_message = "Internal Server Error"


class ListingRenderError(ServerFault):
    """The directory listing page could not be rendered."""
