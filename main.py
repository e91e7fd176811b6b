"""
Main FastAPI application entry point.
"""
import time
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from starlette import status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from config import Settings, validate_settings
from database import Base, build_engine, build_session_factory
from alembic_runner import run_migrations

# Import models to register with SQLAlchemy Base
from Login_module.User.user_model import User
from Coupon_module.Coupon_model import Coupon
from Medicine_module.Medicine_model import Medicine
from Orders_module.Order_model import Order, OrderItem, OrderStatusHistory

# Routers
from Login_module.Auth.Auth_router import router as auth_router
from Coupon_module.Coupon_router import router as coupon_router
from Orders_module.Order_router import router as order_router

from Notification_module.email_service import EmailService
from Notification_module.dispatcher import EmailDispatcher

# Scheduler
from Login_module.Token.scheduler import start_scheduler, shutdown_scheduler

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger(__name__)


def _route_path(request: Request) -> str:
    """
    Path to log for a request: the matched route template when there is one,
    so path parameters such as reset tokens never reach the log.
    """
    route = request.scope.get("route")
    if route is not None and getattr(route, "path", None):
        return route.path
    for candidate in request.app.router.routes:
        match, _ = candidate.matches(request.scope)
        if match != Match.NONE and getattr(candidate, "path", None):
            return candidate.path
    return request.url.path


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log HTTP requests and responses with status codes."""

    async def dispatch(self, request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"{request.method} {_route_path(request)} | Status: 500 (SERVER_ERROR) | "
                f"Error: {str(e)} | Duration: {duration:.3f}s | IP: {client_ip}"
            )
            raise

        duration = time.time() - start_time
        status_code = response.status_code
        if 200 <= status_code < 300:
            status_category = "SUCCESS"
        elif 300 <= status_code < 400:
            status_category = "REDIRECT"
        elif 400 <= status_code < 500:
            status_category = "CLIENT_ERROR"
        else:
            status_category = "SERVER_ERROR"

        log_message = (
            f"{request.method} {_route_path(request)} | "
            f"Status: {status_code} ({status_category}) | "
            f"Duration: {duration:.3f}s | "
            f"IP: {client_ip}"
        )
        if status_code >= 500:
            logger.error(log_message)
        else:
            logger.info(log_message)
        return response


def initialize_database(app: FastAPI):
    """
    Bring the schema up to date: Alembic migrations when enabled,
    otherwise create the tables straight from the models.
    """
    settings: Settings = app.state.settings
    engine = app.state.engine

    try:
        if settings.RUN_MIGRATIONS:
            logger.info("Running database migrations...")
            run_migrations(engine.url.render_as_string(hide_password=False))
            logger.info("Database migrations completed successfully")
        else:
            Base.metadata.create_all(bind=engine)
            logger.info("Database tables created from models")
    except OperationalError as e:
        logger.error(f"Failed to connect to database during startup: {e}")
        logger.warning("Schema setup will be retried on next startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown."""
    settings: Settings = app.state.settings
    logger.info("Starting application...")
    initialize_database(app)

    scheduler = None
    if settings.ENABLE_SCHEDULER:
        scheduler = start_scheduler(app.state.session_factory, settings.RESET_TOKEN_SWEEP_MINUTES)
    logger.info("Application started successfully")
    yield
    logger.info("Shutting down application...")
    shutdown_scheduler(scheduler)
    logger.info("Application shutdown complete")


def _format_validation_errors(exc):
    """Return consistent error structure for 422 responses."""
    detail_list = []
    errors = exc.errors() if hasattr(exc, "errors") else []

    for err in errors:
        loc = err.get("loc", [])
        source = loc[0] if loc else "body"
        field = loc[-1] if len(loc) > 1 else loc[0] if loc else None
        detail_list.append({
            "source": source,
            "field": field,
            "message": err.get("msg"),
            "type": err.get("type")
        })
    return detail_list


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "message": "Request validation failed.",
            "details": _format_validation_errors(exc)
        }
    )


async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    """Handle Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "message": "Validation failed.",
            "details": _format_validation_errors(exc)
        }
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """Database failures never leak driver details to the client."""
    logger.error(f"Database error on {request.method} {_route_path(request)}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"status": "error", "message": "Internal server error"}
    )


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the application. All shared state (settings, engine, session
    factory, email dispatcher) hangs off app.state.
    An already configured engine may be passed in instead of one built from DATABASE_URL.
    """
    settings = settings or Settings()
    validate_settings(settings)

    app = FastAPI(
        title="MedStore API",
        version="1.0.0",
        lifespan=lifespan
    )

    if engine is None:
        engine = build_engine(settings.DATABASE_URL)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.dispatcher = EmailDispatcher(EmailService(settings))

    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(ValidationError, pydantic_validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)

    # CORS configuration
    allowed_origins = settings.allowed_origins
    if allowed_origins == ["*"]:
        logger.warning("CORS is set to allow all origins. This is not recommended for production.")

    # Middleware
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=allowed_origins != ["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Requested-With"],
    )

    app.include_router(auth_router)
    app.include_router(coupon_router)
    app.include_router(order_router)

    @app.get("/")
    def root():
        """Root endpoint with API information."""
        return {
            "status": "success",
            "message": "MedStore API",
            "version": "1.0.0",
            "endpoints": {
                "auth": "/auth",
                "coupons": "/coupons",
                "orders": "/orders"
            },
            "docs": "/docs",
            "redoc": "/redoc"
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint for container orchestration."""
        return {
            "status": "healthy",
            "service": "MedStore API"
        }

    return app


# Run application
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8030,
        reload=False,
        log_level="info",
        access_log=False
    )
