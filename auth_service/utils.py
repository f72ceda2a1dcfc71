"""Funciones de utilidad para el servicio de autenticación: hash de contraseñas y manejo de JWT."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from .config import DEFAULT_BCRYPT_ROUNDS
from .errors import TokenExpiredError, TokenInvalidError, ValidationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# Fixed lifetime, not configurable
ACCESS_TOKEN_EXPIRE_MINUTES = 60


# --- Hash de contraseñas ---

class PasswordHasher:
    """bcrypt through passlib, with a tunable work factor."""

    def __init__(self, rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
        )

        self._dummy_hash: Optional[str] = None

    def hash(self, password: str) -> str:
        """
        Genera el hash (con sal aleatoria) de una contraseña plana.

        Raises:
            ValidationError: bcrypt rejects the password (e.g. it contains NUL bytes).
        """
        try:
            return self._context.hash(password)
        except ValueError as e:
            logger.warning(f"Password rejected by bcrypt: {e}")
            raise ValidationError("Password contains unsupported characters")

    def verify_dummy(self, plain_password: str) -> bool:
        """Runs a full bcrypt compare against a throwaway hash at the configured cost."""
        if self._dummy_hash is None:
            self._dummy_hash = self._context.hash("dummy-password-for-timing")
        return self.verify(plain_password, self._dummy_hash)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """
        Verifica una contraseña plana contra un hash almacenado.

        A stored value that is not a bcrypt hash never matches.
        """
        try:
            return self._context.verify(plain_password, hashed_password)
        except (ValueError, TypeError) as e:
            logger.warning(f"Stored password hash could not be parsed: {e}")
            return False


# --- Utilidades para Tokens JWT ---

class TokenCodec:
    """Issues and checks HS256 tokens whose only claim is the user id."""

    def __init__(self, secret_key: str, algorithm: str = ALGORITHM,
                 expire_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.lifetime = timedelta(minutes=expire_minutes)

    def issue(self, user_id: int, now: Optional[datetime] = None) -> str:
        """
        Genera un token de acceso JWT para `user_id`.

        Args:
            user_id: id del usuario autenticado, único claim de la aplicación.
            now: instante de emisión; por defecto la hora actual en UTC.

        Returns:
            String del JWT codificado.
        """
        issued_at = now or datetime.now(timezone.utc)
        to_encode = {"id": user_id, "exp": issued_at + self.lifetime}
        return jwt.encode(to_encode, self._secret_key, algorithm=self.algorithm)

    def decode(self, token: str) -> Dict:
        """
        Decodifica y valida firma y expiración.

        Raises:
            TokenExpiredError: el token es auténtico pero ya expiró.
            TokenInvalidError: firma incorrecta, formato inválido o claims ausentes.
        """
        if not token:
            raise TokenInvalidError("Missing token")
        try:
            return jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"require_exp": True},
            )
        except ExpiredSignatureError:
            logger.info("Token rejected: expired.")
            raise TokenExpiredError("Token has expired")
        except JWTError as e:
            logger.warning(f"Token rejected: {e}")
            raise TokenInvalidError("Invalid token")

    def verify(self, token: str) -> int:
        """Returns the user id carried by a valid token."""
        payload = self.decode(token)
        user_id = payload.get("id")
        # bool is an int subclass, reject it explicitly
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            logger.warning("Token rejected: missing or non-integer 'id' claim.")
            raise TokenInvalidError("Invalid token")
        return user_id
