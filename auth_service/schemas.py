"""Modelos Pydantic (schemas) para validación de datos de entrada/salida en el Servicio de Autenticación."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

# --- Schemas de Usuario ---

class RegisterRequest(BaseModel):
    """
    Datos del formulario de registro.

    Los campos son opcionales a propósito: la validación de vacíos la hace
    AuthService para que el mensaje y el status sean los del dominio.
    """
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    """Datos del formulario de inicio de sesión."""
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    """Perfil público del usuario (excluye el hash de la contraseña)."""
    id: int
    username: str
    email: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# --- Schemas de Respuesta ---

class MessageResponse(BaseModel):
    message: str


class TokenResponse(BaseModel):
    """Token JWT devuelto tras un login exitoso."""
    token: str


class DashboardResponse(BaseModel):
    message: str
    user: UserResponse


class TokenPayload(BaseModel):
    """Resultado de /verify: el id del usuario dueño de un token válido."""
    id: int


class ErrorResponse(BaseModel):
    error: str
