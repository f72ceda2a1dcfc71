"""Define el modelo de la tabla 'users' usando SQLAlchemy ORM."""

from sqlalchemy import Column, DateTime, Integer, String, func

from .db import Base

MAX_FIELD_LENGTH = 255


class User(Base):
    """
    Modelo SQLAlchemy que representa la tabla 'users'.
    Almacena las credenciales de los usuarios registrados.
    """
    __tablename__ = "users"

    # Clave primaria autoincremental
    id = Column(Integer, primary_key=True, index=True)

    username = Column(String(MAX_FIELD_LENGTH), unique=True, index=True, nullable=False)

    # Email del usuario, usado como identificador para el login
    email = Column(String(MAX_FIELD_LENGTH), unique=True, index=True, nullable=False)

    # Hash bcrypt de la contraseña. La columna se llama 'password' en el esquema
    # original, pero nunca contiene texto plano.
    password_hash = Column("password", String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<User id={self.id} username={self.username!r}>"
