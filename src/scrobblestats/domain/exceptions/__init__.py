"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing
    # str(exception). Don't raise this directly - always use a specific subclass so callers can
    # catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ConfigurationError(DomainException):
    """Application misconfiguration.

    Raised when required configuration is missing or invalid.
    """

    pass


class CredentialsMissingError(ConfigurationError):
    """Spotify client id/secret are not configured.

    Only fixable by configuration. Image resolution treats it as "catalog unavailable"
    and degrades to Last.fm images or a placeholder - never fatal.
    """

    def __init__(
        self,
        message: str = (
            "SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET are not configured. "
            "Get credentials at https://developer.spotify.com/dashboard"
        ),
    ) -> None:
        super().__init__(message)


class ExternalServiceError(DomainException):
    """External service (Last.fm, Spotify) returned an error or could not be reached."""

    def __init__(
        self,
        message: str,
        service: str = "unknown",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.status_code = status_code


class TokenExchangeError(ExternalServiceError):
    """The client-credentials exchange did not succeed.

    Transient by nature - the next get_token() call simply tries again.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, service="spotify", status_code=status_code)


class RateLimitExceededError(ExternalServiceError):
    """External service kept answering 429 after all retries."""

    def __init__(
        self, message: str, service: str = "unknown", retry_after: int | None = None
    ) -> None:
        super().__init__(message, service=service, status_code=429)
        self.retry_after = retry_after


class UpstreamFormatError(DomainException):
    """A response lacked the nested field we expected.

    Raised by the payload normalisers and always recovered locally (next shape branch,
    empty list, or original value). Should never reach an end user.
    """

    def __init__(self, message: str, payload_path: str = "") -> None:
        super().__init__(message)
        self.payload_path = payload_path


class NoTagsAvailableError(DomainException):
    """Neither user.getTopTags nor the sampling fallback produced any tag."""

    def __init__(self, username: str, period: str, reason: str = "") -> None:
        message = f"Could not load tags for user '{username}' (period={period})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.username = username
        self.period = period
        self.reason = reason


__all__ = [
    "DomainException",
    "ConfigurationError",
    "CredentialsMissingError",
    "ExternalServiceError",
    "TokenExchangeError",
    "RateLimitExceededError",
    "UpstreamFormatError",
    "NoTagsAvailableError",
]
