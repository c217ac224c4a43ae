class GitProxyError(Exception):
    """Base error for the proxy. Carries the HTTP status the caller sees."""

    status_code = 500
    kind = "internal"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInputError(GitProxyError):
    status_code = 400
    kind = "invalid_input"


class NotAFileError(InvalidInputError):
    """The path names a directory where a file was expected."""


class UpstreamError(GitProxyError):
    """GitHub answered with a non-2xx status, or could not be reached."""

    status_code = 502
    kind = "upstream"


class RefNotFoundError(GitProxyError):
    status_code = 400
    kind = "unresolved_ref"


class BinaryContentError(GitProxyError):
    status_code = 415
    kind = "unsupported_media"


class RangeNotSatisfiableError(GitProxyError):
    status_code = 416
    kind = "range"


class ConfigurationError(GitProxyError):
    status_code = 503
    kind = "configuration"
