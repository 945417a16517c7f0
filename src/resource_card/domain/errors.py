"""Error taxonomy for enrichment requests."""


class ResourceCardError(Exception):
    """Base error surfaced to API callers as ``{success: false}``."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(ResourceCardError):
    """Missing or malformed url or dimensions."""

    status_code = 400


class UpstreamFetchFailure(ResourceCardError):
    """Every source in a fallback chain failed.

    The cover chain ends in a screenshot and the favicon chain is optional, so
    neither endpoint flow raises this today.
    """

    status_code = 502


class RenderFailure(ResourceCardError):
    """Browser launch, navigation, evaluation or screenshot failed."""

    status_code = 500


class SessionExpiredOrInvalid(ResourceCardError):
    """The session id is unknown, already used, or past its deadline."""

    status_code = 400

    def __init__(self, message: str = "Invalid or expired session") -> None:
        super().__init__(message)


class ImageDecodeError(Exception):
    """Fetched or captured bytes are not a decodable image."""
