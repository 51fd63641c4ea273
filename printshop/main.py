from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import traceback
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from printshop.config import settings
from printshop.api.v1.router import api_router
from printshop.core.exceptions import PrintShopError
from printshop.database import Database


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Build the connection pool
    - Create missing tables

    Shutdown:
    - Close the pool
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    database = Database(settings)
    await database.create_all()
    app.state.database = database

    yield

    await database.dispose()
    logger.info("Shutting down...")


OPENAPI_TAGS = [
    {"name": "Authentication", "description": "Branch login with cookie or bearer JWT"},
    {"name": "Branches", "description": "Branches, branch logins and employees"},
    {"name": "Orders", "description": "Order intake and per-branch order IDs"},
    {"name": "Tasks", "description": "Production task lifecycle and payment"},
    {"name": "Sent Orders", "description": "Orders routed to the main branch"},
    {"name": "Inventory", "description": "Per-branch stock and the product catalog"},
    {"name": "Payments", "description": "Recorded payments against task balances"},
    {"name": "Credits", "description": "Prepaid customer credit ledger"},
    {"name": "Reports", "description": "Per-branch sales reports"},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Multi-branch print shop backend: orders, production tasks, stock and payments.",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


def _error_response(
    request: Request,
    status_code: int,
    message,
    exc: Exception,
    details: Optional[list] = None,
) -> JSONResponse:
    error_detail = {
        "error": message,
        "type": type(exc).__name__,
        "path": str(request.url.path),
        "method": request.method,
    }
    if details is not None:
        error_detail["details"] = details
    if settings.DEBUG:
        error_detail["traceback"] = traceback.format_exc()
    return JSONResponse(status_code=status_code, content=jsonable_encoder(error_detail))


@app.exception_handler(PrintShopError)
async def print_shop_error_handler(request: Request, exc: PrintShopError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _error_response(request, exc.status_code, exc.message, exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = _error_response(request, exc.status_code, exc.detail, exc)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}" for err in errors
    )
    return _error_response(request, 422, message or "Invalid request", exc, details=errors)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Anything unhandled becomes a 500 carrying the exception message."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error_response(request, 500, str(exc), exc)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint with database validation."""
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    # Check database connectivity
    try:
        database: Database = request.app.state.database
        async with database.session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)
    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("printshop.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
