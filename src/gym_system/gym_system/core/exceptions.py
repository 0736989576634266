class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class QRParseError(ValidationError):
    """Raised when a scanned QR payload is not a recognized shape."""


class RegistrationError(ValidationError):
    """Raised when a registration is rejected (missing fields, duplicate name)."""


class AuthenticationError(DomainError):
    """Raised when login credentials or a QR login are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class RemoteError(DomainError):
    """Raised when the remote store did not accept a mutation.

    Only identity and admin paths raise this; attendance degrades to unsynced.
    """
