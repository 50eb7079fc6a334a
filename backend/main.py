from contextlib import asynccontextmanager
import logging

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from config import CORS_ORIGINS
from database import classify_store_error, init_db
from errors import InventoryError
from routers import (
    auth,
    borrowers,
    devices,
    health,
    history,
    loans,
    public_devices,
    setup,
    token,
)
from routers.auth import limiter
from services.auth import authorize_request, dummy_password_hash

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup: Initialize the database
    init_db()
    # Hash the unknown-user comparison value before the first login arrives
    dummy_password_hash()
    yield


app = FastAPI(
    title="Radio Inventory API",
    description="Backend API for the radio inventory",
    version="1.0.0",
    lifespan=lifespan,
    # Every route passes the session gate; public ones are allow-listed by name
    dependencies=[Depends(authorize_request)],
)

# Configure rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(InventoryError)
async def inventory_error_handler(request: Request, exc: InventoryError):
    if exc.status_code >= 500:
        logger.error(
            "request failed",
            extra={"path": request.url.path, "kind": exc.kind},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "kind": exc.kind},
    )


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    # Reads outside transaction() still get the classified response
    return await inventory_error_handler(request, classify_store_error(exc))


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(setup.router, prefix="/api/setup", tags=["setup"])
app.include_router(auth.router, prefix="/api/admin/auth", tags=["auth"])
app.include_router(token.router, prefix="/api/auth", tags=["auth"])
app.include_router(devices.router, prefix="/api/admin/devices", tags=["devices"])
app.include_router(history.router, prefix="/api/admin/history", tags=["history"])
app.include_router(public_devices.router, prefix="/api/devices", tags=["kiosk"])
app.include_router(borrowers.router, prefix="/api/borrowers", tags=["kiosk"])
app.include_router(loans.router, prefix="/api/loans", tags=["kiosk"])
