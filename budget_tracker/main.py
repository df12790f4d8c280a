import uuid
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, settings as default_settings
from .database import build_storage
from .errors import ErrorKind, LedgerError
from .logging_config import get_logger, setup_logging, trace_id_var
from .routers import auth as auth_router
from .routers import categories as categories_router
from .routers import transactions as transactions_router
from .services.ledger import LedgerService


logger = get_logger("api")

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.AUTH: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.ACCESS_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def create_app(
    service: Optional[LedgerService] = None,
    config: Optional[Settings] = None,
) -> FastAPI:
    config = config or default_settings
    setup_logging(config)

    app = FastAPI(title="Budget Tracker – Ledger API", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.ledger = service or LedgerService(build_storage(config), config)

    @app.middleware("http")
    async def trace_id_middleware(request: Request, call_next):
        trace_id = request.headers.get("X-Trace-ID") or uuid.uuid4().hex
        token = trace_id_var.set(trace_id)
        try:
            response = await call_next(request)
        finally:
            trace_id_var.reset(token)
        response.headers["X-Trace-ID"] = trace_id
        return response

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        headers = {"WWW-Authenticate": "Bearer"} if exc.kind == ErrorKind.AUTH else None
        return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)

    @app.get("/health")
    def health():
        return {"status": "ok", "storage": app.state.ledger.storage_type}

    app.include_router(auth_router.router)
    app.include_router(transactions_router.router)
    app.include_router(categories_router.router)

    return app
