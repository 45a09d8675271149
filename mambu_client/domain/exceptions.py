"""Domain-specific exceptions"""

from typing import Optional


class DomainException(Exception):
    """Base exception for every error raised by the SDK"""

    pass


class LocalValidationError(DomainException):
    """Request rejected locally; nothing was sent to the server"""

    pass


class UnknownEntityKind(LocalValidationError):
    """Entity kind has no registered resource path"""

    pass


class UnsupportedRelationship(LocalValidationError):
    """Entity kind cannot own the requested entity kind"""

    pass


class InvalidUrlComposition(LocalValidationError):
    """Ids, owned kind or action do not fit the requested operation"""

    pass


class MissingScheduleConfig(LocalValidationError):
    """Schedule settings needed for the first repayment date are absent"""

    pass


class TransportError(DomainException):
    """Network-level failure: connection refused, timeout, protocol fault"""

    pass


class ApiCallError(DomainException):
    """
    Remote platform rejected the request.

    Carries the platform's numeric return code and message verbatim, plus
    the HTTP status the rejection arrived with.
    """

    def __init__(self, code: int, message: str, status_code: Optional[int] = None):
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.status_code = status_code


class ResponseDecodeError(DomainException):
    """Response body does not match the declared result shape"""

    pass
