"""ASGI entry point: `uvicorn auth_service.main:app` or `python -m auth_service`."""

import uvicorn

from .app import create_app
from .config import load_settings

settings = load_settings()
app = create_app(settings)


def run():
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
