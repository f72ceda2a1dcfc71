"""
Auth Service: registration, login and token verification on top of the
Credential Store, the password hasher and the token codec.

Stateless; one instance is shared by every request.
"""

import logging
from typing import Optional

from .errors import AuthenticationError, TokenInvalidError, ValidationError
from .models import MAX_FIELD_LENGTH
from .store import CredentialStore, UserRecord
from .utils import PasswordHasher, TokenCodec

logger = logging.getLogger(__name__)

REGISTERED_MESSAGE = "User registered successfully"
USER_NOT_FOUND = "User not found"
INVALID_CREDENTIALS = "Invalid credentials"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


class AuthService:

    def __init__(self, store: CredentialStore, hasher: PasswordHasher, codec: TokenCodec,
                 unify_login_errors: bool = False):
        self.store = store
        self.hasher = hasher
        self.codec = codec
        # With unified errors an unknown email is indistinguishable from a wrong password
        self.unify_login_errors = unify_login_errors

    def register(self, username: Optional[str], email: Optional[str], password: Optional[str]) -> str:
        """
        Creates the user and returns a confirmation message. No token is issued;
        the client has to log in afterwards.

        Raises:
            ValidationError, ConflictError, StoreUnavailableError
        """
        if _is_blank(username) or _is_blank(email) or not password:
            raise ValidationError("Username, email and password are required")
        if "@" not in email:
            raise ValidationError("Invalid email address")
        if len(username) > MAX_FIELD_LENGTH or len(email) > MAX_FIELD_LENGTH:
            raise ValidationError(f"Username and email must be at most {MAX_FIELD_LENGTH} characters")

        logger.info(f"Registration attempt for email: {email}")
        password_hash = self.hasher.hash(password)
        user_id = self.store.insert_user(username, email, password_hash)
        logger.info(f"Registration successful for user_id: {user_id}")
        return REGISTERED_MESSAGE

    def login(self, email: Optional[str], password: Optional[str]) -> str:
        """
        Checks the credentials and returns a signed token valid for one hour.

        Raises:
            ValidationError, AuthenticationError, StoreUnavailableError
        """
        if _is_blank(email) or not password:
            raise ValidationError("Email and password are required")

        logger.info(f"Login attempt for user: {email}")
        user = self.store.find_user_by_email(email)
        if user is None:
            logger.warning(f"Login failed: no user with email {email}")
            if self.unify_login_errors:
                # Same bcrypt cost as a real mismatch so timing does not reveal the account
                self.hasher.verify_dummy(password)
                raise AuthenticationError(INVALID_CREDENTIALS)
            raise AuthenticationError(USER_NOT_FOUND)

        if not self.hasher.verify(password, user.password_hash):
            logger.warning(f"Login failed: wrong password for user_id {user.id}")
            raise AuthenticationError(INVALID_CREDENTIALS)

        token = self.codec.issue(user.id)
        logger.info(f"Login successful for user_id: {user.id}")
        return token

    def verify_token(self, token: Optional[str]) -> int:
        """
        Returns the user id of a valid token.

        Raises:
            TokenExpiredError: signature fine, past expiry (prompt re-login).
            TokenInvalidError: tampered, malformed or missing.
        """
        return self.codec.verify(token or "")

    def get_profile(self, token: Optional[str]) -> UserRecord:
        """Verifies the token and loads the user it belongs to."""
        user_id = self.verify_token(token)
        user = self.store.find_user_by_id(user_id)
        if user is None:
            logger.warning(f"Valid token for unknown user_id {user_id}")
            raise TokenInvalidError("Invalid token")
        return user
