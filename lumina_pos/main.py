from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .core.config import settings
from .core.errors import (
    ConflictError,
    EmptyCartError,
    InsufficientPaymentError,
    NoActiveShiftError,
    NotFoundError,
    PersistenceFailure,
    PosError,
)
from .core.log import configure_logging
from .middleware.idempotency import install_idempotency
from .routers import cart, health, pos, products, reports, session
from .terminal import Terminal, terminal_from_settings

logger = structlog.get_logger(__name__)

# Orden importa: subclases antes que PosError
STATUS = [
    (NotFoundError, 404),
    (NoActiveShiftError, 409),
    (ConflictError, 409),
    (InsufficientPaymentError, 422),
    (EmptyCartError, 422),
    (PersistenceFailure, 503),
    (PosError, 400),
]


def _status_for(exc: PosError) -> int:
    for cls, status in STATUS:
        if isinstance(exc, cls):
            return status
    return 400


async def pos_error_handler(request: Request, exc: PosError):
    status = _status_for(exc)
    log = logger.error if status >= 500 else logger.warning
    log("request_rejected", path=request.url.path, error=exc.code, detail=exc.message)
    body = {"detail": exc.code, "message": exc.message}
    remaining = getattr(exc, "remaining", None)
    if remaining is not None:
        body["remaining"] = float(remaining)
    return JSONResponse(status_code=status, content=body)


async def value_error_handler(request: Request, exc: ValueError):
    logger.warning("request_rejected", path=request.url.path, error="INVALID", detail=str(exc))
    return JSONResponse(status_code=422, content={"detail": "INVALID", "message": str(exc)})


def create_app(terminal: Optional[Terminal] = None) -> FastAPI:
    configure_logging(settings.log_level, settings.log_json)

    app = FastAPI(title=settings.app_name, version=settings.app_version)
    app.state.terminal = terminal or terminal_from_settings()

    app.add_exception_handler(PosError, pos_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    install_idempotency(app)

    app.include_router(health.router)
    app.include_router(session.router)
    app.include_router(cart.router)
    app.include_router(pos.router)
    app.include_router(products.router)
    app.include_router(reports.router)
    return app


app = create_app()
