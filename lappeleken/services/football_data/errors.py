"""
Error taxonomy for the match data collaborator.

Every failure reaching the game session is one of a small closed set of
kinds, each with a message that can be shown to players as is.
"""
from enum import Enum
from typing import Optional


class ApiErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    NETWORK_ERROR = "network_error"
    SERVER_ERROR = "server_error"
    DECODING_ERROR = "decoding_error"
    INVALID_CONFIGURATION = "invalid_configuration"
    UNKNOWN = "unknown"


class FootballDataError(Exception):
    """
    A failed match data request.

    Attributes:
        kind: Error category
        status_code: HTTP status for server errors
        detail: Technical detail for logs (never shown to players)
    """

    def __init__(
        self,
        kind: ApiErrorKind,
        detail: str = "",
        status_code: Optional[int] = None,
    ):
        self.kind = kind
        self.detail = detail
        self.status_code = status_code
        super().__init__(self._describe())

    def _describe(self) -> str:
        label = self.kind.value
        if self.kind == ApiErrorKind.SERVER_ERROR and self.status_code is not None:
            label = f"server_error({self.status_code})"
        return f"{label}: {self.detail}" if self.detail else label

    @property
    def user_message(self) -> str:
        return user_friendly_message(self)

    @classmethod
    def rate_limited(cls, detail: str = "") -> "FootballDataError":
        return cls(ApiErrorKind.RATE_LIMITED, detail)

    @classmethod
    def network(cls, detail: str = "") -> "FootballDataError":
        return cls(ApiErrorKind.NETWORK_ERROR, detail)

    @classmethod
    def server(cls, status_code: int, detail: str = "") -> "FootballDataError":
        return cls(ApiErrorKind.SERVER_ERROR, detail, status_code=status_code)

    @classmethod
    def decoding(cls, detail: str = "") -> "FootballDataError":
        return cls(ApiErrorKind.DECODING_ERROR, detail)

    @classmethod
    def invalid_configuration(cls, detail: str = "") -> "FootballDataError":
        return cls(ApiErrorKind.INVALID_CONFIGURATION, detail)


def user_friendly_message(error: Exception) -> str:
    """Message suitable for players; unknown exceptions get a generic one."""
    if not isinstance(error, FootballDataError):
        return "An unexpected error occurred. Please try again."

    if error.kind == ApiErrorKind.RATE_LIMITED:
        return "Too many requests. Please wait a moment and try again."
    if error.kind == ApiErrorKind.NETWORK_ERROR:
        return "Please check your internet connection and try again."
    if error.kind == ApiErrorKind.SERVER_ERROR:
        if error.status_code is not None and error.status_code >= 500:
            return "The football data service is temporarily unavailable. Please try again later."
        return "There was a problem with your request. Please try again."
    if error.kind == ApiErrorKind.DECODING_ERROR:
        return "There was a problem processing the match data. Please try again."
    if error.kind == ApiErrorKind.INVALID_CONFIGURATION:
        return "There was a configuration error. Please restart the app."
    return "An unexpected error occurred. Please try again."
