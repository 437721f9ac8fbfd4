from contextlib import asynccontextmanager
import logging
import traceback
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.deps import DB
from app.api.v1.router import api_router
from app.core.exceptions import StorefrontError
from app.database import init_db, get_db_session


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def build_operator_account(email: str, password: str):
    """Operator ``User`` for the configured credentials; not yet persisted."""
    from app.models.user import User
    from app.core.security import get_password_hash

    return User(
        name="Storefront Operator",
        email=email.lower(),
        phone="0000000000",
        id_number=f"OPERATOR-{uuid.uuid4().hex}",
        password_hash=get_password_hash(password),
        is_admin=True,
        is_active=True,
    )


async def auto_seed_operator():
    """
    Create the operator account from OPERATOR_EMAIL / OPERATOR_PASSWORD
    when no operator exists yet. Does nothing when either is unset.
    """
    from sqlalchemy import select, func
    from sqlalchemy.exc import SQLAlchemyError
    from app.models.user import User

    if not settings.OPERATOR_EMAIL or not settings.OPERATOR_PASSWORD:
        return

    try:
        async with get_db_session() as session:
            result = await session.execute(
                select(func.count(User.id)).where(User.is_admin == True)  # noqa: E712
            )
            operator_count = result.scalar() or 0

            if operator_count > 0:
                logger.info(f"Found {operator_count} operator(s). Skipping auto-seed.")
                return

            operator = build_operator_account(settings.OPERATOR_EMAIL, settings.OPERATOR_PASSWORD)
            session.add(operator)
            logger.info(f"Created operator account: {operator.email}")

    except SQLAlchemyError as e:
        logger.error(f"Auto-seed error: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create tables that do not exist yet
    - Seed the operator account if configured
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()
    await auto_seed_operator()

    yield

    # Shutdown
    logger.info("Shutting down...")


# OpenAPI Tags with detailed descriptions
OPENAPI_TAGS = [
    {"name": "Plates", "description": "Plate catalog and public text availability check"},
    {"name": "Orders", "description": "Checkout with plate reservation, payment and lifecycle"},
    {"name": "Users", "description": "Registration, login and profile"},
]

FULL_API_DESCRIPTION = """
## Custom Plates Storefront API

Order customized vehicle license plates. Every ordered plate text is
reserved atomically with its order, so no two customers can buy the same
text.

### Plate Tiers

| Tier | Format | Price (KES) |
|------|--------|-------------|
| **special** | 1-7 letters/digits containing `00` | 20,000 |
| **standard_custom** | 4-7 letters/digits, at most one heart | 40,000 |
| **prestige** | 4-7 letters/digits, optional background 1-3 | 80,000 |

Express shipping adds 500.

### Authentication

Send `Authorization: Bearer <token>` from `/api/v1/users/login`, or an
`X-Guest-Id` header for guest checkout.

### Error Codes

| Code | Description |
|------|-------------|
| 400 | Validation failed, or plate text no longer available |
| 401 | Unauthorized - Invalid/expired token |
| 403 | Forbidden - Not the owner / not an operator |
| 404 | Not Found - Resource doesn't exist |
| 409 | Conflict - Invalid order status transition |
| 422 | Unprocessable Entity - Malformed request body |
| 503 | Storage temporarily unavailable, safe to retry |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=FULL_API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
    swagger_ui_parameters={
        "deepLinking": True,
        "persistAuthorization": True,
    },
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


def _with_cors_headers(request: Request, response: JSONResponse) -> JSONResponse:
    origin = request.headers.get("origin", "")

    # Add CORS headers if origin is allowed
    if origin in settings.cors_origins_list or "*" in settings.cors_origins_list:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "*"

    return response


@app.exception_handler(StorefrontError)
async def storefront_exception_handler(request: Request, exc: StorefrontError):
    """Render domain errors with their kind and HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")

    response = JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.message,
            "type": exc.kind,
            "details": exc.details,
            "path": str(request.url.path),
            "method": request.method,
        },
    )
    return _with_cors_headers(request, response)


# Global exception handler for anything the services did not anticipate
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return error information; the traceback only in DEBUG."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")

    error_detail = {
        "error": str(exc) if settings.DEBUG else "Internal server error",
        "type": type(exc).__name__,
        "path": str(request.url.path),
        "method": request.method,
    }
    if settings.DEBUG:
        error_detail["traceback"] = traceback.format_exc()

    response = JSONResponse(
        status_code=500,
        content=error_detail
    )
    return _with_cors_headers(request, response)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check(db: DB):
    """Health check endpoint with database validation."""
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    from datetime import datetime, timezone

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
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        health_status["checks"]["database"] = "connected"
    except (SQLAlchemyError, OSError) as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
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
