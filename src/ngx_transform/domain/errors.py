"""Error taxonomy shared by services and the HTTP layer."""


class TransformError(Exception):
    """Base class for errors reported to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TransformError):
    """Malformed input or a schema mismatch."""

    status_code = 400


class NotFound(TransformError):
    """The requested session does not exist."""

    status_code = 404


class RateLimitExceeded(TransformError):
    """A daily session quota has been used up."""

    status_code = 429


class PreconditionFailed(TransformError):
    """A prerequisite artifact is missing."""

    status_code = 400


class MissingInput(PreconditionFailed):
    """The session has no photo reference."""


class SessionConflict(TransformError):
    """The session changed status under a concurrent request."""

    status_code = 409


class UpstreamFailure(TransformError):
    """An external model or service call failed."""

    status_code = 500


class ConfigurationError(TransformError):
    """Required external credentials are not configured."""

    status_code = 400
