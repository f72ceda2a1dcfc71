"""Credential Store: durable persistence of user records with uniqueness enforcement."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import exc, or_, select
from sqlalchemy.orm import sessionmaker

from .db import SchemaGuard
from .errors import ConflictError, StoreUnavailableError, ValidationError
from .models import MAX_FIELD_LENGTH, User

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "Email already registered"
USERNAME_TAKEN = "Username already taken"


@dataclass(frozen=True)
class UserRecord:
    """Full stored record. Holds the hash, so never serialize it to a client."""
    id: int
    username: str
    email: str
    password_hash: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, user: User) -> "UserRecord":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            password_hash=user.password_hash,
            created_at=user.created_at,
        )


class CredentialStore:
    """
    Every operation runs in its own session/transaction, so the store is safe
    to share between concurrent requests. Uniqueness is left to the table's
    UNIQUE constraints; no application-level locking.
    """

    def __init__(self, session_factory: sessionmaker, schema: Optional[SchemaGuard] = None):
        self._session_factory = session_factory
        self._schema = schema

    def _ensure_schema(self):
        if self._schema is not None and not self._schema.ensure():
            raise StoreUnavailableError("User store is unavailable")

    def insert_user(self, username: str, email: str, password_hash: str) -> int:
        """
        Persists a new user and returns its id.

        Raises:
            ValidationError: any field is empty or longer than its column.
            ConflictError: username or email already exists.
            StoreUnavailableError: the database failed or timed out.
        """
        if not username or not email or not password_hash:
            raise ValidationError("Username, email and password are required")
        if len(username) > MAX_FIELD_LENGTH or len(email) > MAX_FIELD_LENGTH:
            raise ValidationError(f"Username and email must be at most {MAX_FIELD_LENGTH} characters")

        self._ensure_schema()
        with self._session_factory() as session:
            try:
                # Pre-check only to name the duplicated field; the constraint decides.
                conflict = self._conflict_message(session, username, email)
                if conflict:
                    raise ConflictError(conflict)

                new_user = User(username=username, email=email, password_hash=password_hash)
                session.add(new_user)
                session.commit()
                logger.info(f"User created with ID: {new_user.id}")
                return new_user.id
            except exc.IntegrityError as e:
                # Lost a race against a concurrent insert with the same username/email
                session.rollback()
                logger.warning(f"Unique constraint violated while inserting user: {e.orig}")
                raise ConflictError("Username or email already exists")
            except exc.DataError as e:
                # Value rejected by the column type (e.g. MySQL strict mode)
                session.rollback()
                logger.warning(f"Rejected user data: {e.orig}")
                raise ValidationError("Invalid username or email")
            except exc.SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Database error during user creation: {e}", exc_info=True)
                raise StoreUnavailableError("User store is unavailable")

    def find_user_by_email(self, email: str) -> Optional[UserRecord]:
        """Exact match on the stored email. Returns None when absent."""
        return self._find_one(User.email == email)

    def find_user_by_id(self, user_id: int) -> Optional[UserRecord]:
        return self._find_one(User.id == user_id)

    def _find_one(self, criterion) -> Optional[UserRecord]:
        self._ensure_schema()
        with self._session_factory() as session:
            try:
                user = session.execute(select(User).where(criterion)).scalar_one_or_none()
            except exc.SQLAlchemyError as e:
                logger.error(f"Database error during user lookup: {e}", exc_info=True)
                raise StoreUnavailableError("User store is unavailable")
            return UserRecord.from_model(user) if user else None

    @staticmethod
    def _conflict_message(session, username: str, email: str) -> Optional[str]:
        rows = session.execute(
            select(User.username, User.email).where(or_(User.email == email, User.username == username))
        ).all()
        if any(row.email == email for row in rows):
            return EMAIL_TAKEN
        if any(row.username == username for row in rows):
            return USERNAME_TAKEN
        return None
