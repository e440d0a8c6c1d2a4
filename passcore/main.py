from __future__ import annotations

from fastapi import FastAPI

from .env_settings import get_options
from .log_config import setup_logging
from .routers.password import router as password_router


def create_app() -> FastAPI:
    opts = get_options()
    setup_logging(level=opts.log_level, retention_days=opts.log_retention_days, max_size_mb=opts.log_max_size_mb)

    app = FastAPI(title="PassCore")
    app.include_router(password_router)
    return app
