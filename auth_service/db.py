"""Configuración de la conexión a la base de datos usando SQLAlchemy."""

import logging
import threading
from sqlalchemy import create_engine, exc
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import Settings

logger = logging.getLogger(__name__)

# Clase base para los modelos declarativos (User hereda de ella)
Base = declarative_base()


def build_engine(settings: Settings) -> Engine:
    """
    Creates the SQLAlchemy engine with bounded timeouts.

    pool_pre_ping=True discards dead connections before handing them out.
    """
    url = make_url(settings.database_url)
    timeout = settings.db_timeout_seconds
    kwargs = {"pool_pre_ping": True}

    if url.get_backend_name() == "sqlite":
        # Los endpoints síncronos corren en el threadpool de FastAPI
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout}
    else:
        kwargs["pool_timeout"] = timeout
        if url.get_backend_name() == "mysql":
            # PyMySQL only accepts whole seconds > 0
            seconds = max(1, int(timeout))
            kwargs["connect_args"] = {
                "connect_timeout": seconds,
                "read_timeout": seconds,
                "write_timeout": seconds,
            }

    engine = create_engine(url, **kwargs)
    logger.info(f"Database engine created for backend '{url.get_backend_name()}' (host: {url.host or 'local'}).")
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    """Cada operación del store abre su propia sesión a partir de esta fábrica."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> bool:
    """
    Crea las tablas si no existen.

    Returns False (after logging) when the database is unreachable; the service
    still starts and SchemaGuard retries on the next store call.
    """
    # Importado aquí para registrar el modelo en Base.metadata
    from . import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables verified/created.")
        return True
    except exc.SQLAlchemyError as e:
        logger.error(f"Error initializing database: {e}", exc_info=True)
        return False


class SchemaGuard:
    """
    Recuerda si las tablas ya fueron creadas. Mientras no lo estén, cada
    llamada a `ensure()` reintenta `init_db`, así el servicio se recupera
    cuando la base de datos arranca después que el pod de la aplicación.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.ready = False
        self._lock = threading.Lock()

    def ensure(self) -> bool:
        if self.ready:
            return True
        with self._lock:
            if not self.ready:
                self.ready = init_db(self.engine)
        return self.ready
