"""Domain errors raised by the credential store, the token codec and the Auth Service."""


class AuthServiceError(Exception):
    """Base class. `message` is safe to show to the client."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AuthServiceError):
    """Missing or malformed input."""
    status_code = 400


class ConflictError(AuthServiceError):
    """A unique field (username or email) is already taken."""
    status_code = 409


class AuthenticationError(AuthServiceError):
    """Unknown email or wrong password."""
    status_code = 401


class TokenError(AuthServiceError):
    status_code = 401


class TokenInvalidError(TokenError):
    """Tampered, malformed or wrongly signed token."""


class TokenExpiredError(TokenError):
    """Well formed and correctly signed, but past its `exp`."""


class StoreUnavailableError(AuthServiceError):
    """The database could not be reached or timed out."""
    status_code = 503
