"""FastAPI application for the signup/login Auth Service."""

import logging
import time
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.routing import Match
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from . import schemas
from .config import Settings, load_settings
from .db import SchemaGuard, build_engine, build_session_factory
from .errors import AuthServiceError, TokenError, TokenInvalidError, ValidationError
from .metrics import OPERATION_COUNT, REQUEST_COUNT, REQUEST_LATENCY
from .service import AuthService
from .store import CredentialStore
from .utils import PasswordHasher, TokenCodec

logger = logging.getLogger(__name__)

# Statuses the existing frontend relies on: every register failure is a 500,
# every login failure a 400 and every token failure a 403.
LEGACY_STATUS = {
    "/register": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "/login": status.HTTP_400_BAD_REQUEST,
}

OPERATIONS = {
    "/register": "register",
    "/login": "login",
    "/dashboard": "verify",
    "/verify": "verify",
}


def error_status(request: Request, error: AuthServiceError, settings: Settings) -> int:
    if settings.distinct_error_status:
        return error.status_code
    if isinstance(error, TokenError):
        return status.HTTP_403_FORBIDDEN
    return LEGACY_STATUS.get(request.url.path, error.status_code)


# --- Dependencias ---

def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def route_label(request: Request) -> str:
    """Route template for metric labels; unknown paths share one series."""
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match != Match.NONE:
            return route.path
    return "other"


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """Extracts the token from `Authorization: Bearer <token>`. The scheme is case-insensitive."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise TokenInvalidError("Missing or malformed Authorization header")
    return token.strip()


def build_auth_service(settings: Settings, session_factory, schema: Optional[SchemaGuard] = None) -> AuthService:
    return AuthService(
        store=CredentialStore(session_factory, schema),
        hasher=PasswordHasher(rounds=settings.bcrypt_rounds),
        codec=TokenCodec(settings.jwt_secret_key),
        unify_login_errors=settings.unify_login_errors,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Builds the application. Settings are resolved once here and handed to
    the engine, the codec and the service; handlers never read the environment.
    """
    settings = settings or load_settings()

    logging.basicConfig(level=settings.log_level, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    engine = build_engine(settings)
    schema = SchemaGuard(engine)
    schema.ensure()
    session_factory = build_session_factory(engine)

    app = FastAPI(
        title="Auth Service",
        description="Handles user registration, authentication, and token verification.",
        version="1.0.0"
    )
    app.state.settings = settings
    app.state.engine = engine
    app.state.schema = schema
    app.state.auth_service = build_auth_service(settings, session_factory, schema)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Middleware para Métricas ---
    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        start_time = time.time()
        response = None
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
        except HTTPException as http_exc:
            status_code = http_exc.status_code
            raise http_exc
        except Exception as exc:
            logger.error(f"Unhandled exception during request processing: {exc}", exc_info=True)
            response = JSONResponse(status_code=500, content={"error": "Internal Server Error"})
        finally:
            latency = time.time() - start_time
            endpoint = route_label(request)
            final_status_code = getattr(response, 'status_code', status_code)

            REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency)
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=endpoint,
                status_code=final_status_code
            ).inc()

        return response

    # --- Manejo de errores ---
    @app.exception_handler(AuthServiceError)
    async def auth_error_handler(request: Request, exc: AuthServiceError):
        operation = OPERATIONS.get(request.url.path, "other")
        OPERATION_COUNT.labels(operation=operation, outcome=type(exc).__name__).inc()

        status_code = error_status(request, exc, settings)
        headers = None
        if status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(status_code=status_code, content={"error": exc.message}, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Rejected request body on {request.url.path}: {exc.errors()}")
        return await auth_error_handler(request, ValidationError("Invalid request body"))

    # --- Endpoints de Salud y Métricas ---
    @app.get("/metrics", tags=["Monitoring"])
    def metrics():
        """Exposes application metrics for Prometheus."""
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health", tags=["Monitoring"])
    def health_check():
        """Performs a basic health check of the service."""
        return {"status": "ok", "service": "auth_service"}

    # --- Endpoints de API ---
    @app.post("/register", response_model=schemas.MessageResponse, tags=["Authentication"])
    def register(payload: schemas.RegisterRequest, service: AuthService = Depends(get_auth_service)):
        """Registers a new user. The client must log in separately afterwards."""
        message = service.register(payload.username, payload.email, payload.password)
        OPERATION_COUNT.labels(operation="register", outcome="success").inc()
        return {"message": message}

    @app.post("/login", response_model=schemas.TokenResponse, tags=["Authentication"])
    def login(payload: schemas.LoginRequest, service: AuthService = Depends(get_auth_service)):
        """Authenticates by email and password and returns a JWT valid for one hour."""
        token = service.login(payload.email, payload.password)
        OPERATION_COUNT.labels(operation="login", outcome="success").inc()
        return {"token": token}

    @app.get("/dashboard", response_model=schemas.DashboardResponse, tags=["Protected"])
    def dashboard(token: str = Depends(bearer_token), service: AuthService = Depends(get_auth_service)):
        """Protected resource: the profile of the token's owner."""
        user = service.get_profile(token)
        OPERATION_COUNT.labels(operation="verify", outcome="success").inc()
        return {"message": "Welcome to Dashboard", "user": schemas.UserResponse.model_validate(user)}

    @app.get("/verify", response_model=schemas.TokenPayload, tags=["Internal"])
    def verify(token: Optional[str] = None, service: AuthService = Depends(get_auth_service)):
        """
        Valida un token JWT (pasado como query parameter 'token') y devuelve el id del usuario.
        Usado por otros servicios o un gateway.
        """
        user_id = service.verify_token(token)
        OPERATION_COUNT.labels(operation="verify", outcome="success").inc()
        return {"id": user_id}

    return app
