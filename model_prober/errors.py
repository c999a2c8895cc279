"""Error taxonomy for list lookups and model probes."""

UNKNOWN_ERROR = "Unknown error"


class ProberError(Exception):
    """Base class for all prober errors."""

    def __init__(self, message: str | None = None):
        self.message = message or UNKNOWN_ERROR
        super().__init__(self.message)


class PreconditionError(ProberError, ValueError):
    """Raised when an operation is called with a blank credential."""


class TransportError(ProberError):
    """Raised when no HTTP response was obtained from the provider."""


class ProviderError(ProberError):
    """Raised when the provider answers with a non-2xx status.

    Attributes:
        status_code: HTTP status of the response
        message: Provider-reported message, or ``HTTP <status>``
    """

    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        super().__init__(message or f"HTTP {status_code}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class ListLookupError(ProberError):
    """Raised when the model listing could not be fetched."""


def require_credential(api_key: str | None) -> str:
    """Return the credential unchanged, or raise if it is blank."""
    if api_key is None or not api_key.strip():
        raise PreconditionError("An API key is required")
    return api_key
