import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import PasswordHasher, TokenService
from .config import Settings, get_settings
from .database import Database
from .errors import StorefrontError
from .messaging import EventPublisher
from .routers import order_router, product_router, user_router
from .schemas import HealthOut

logger = logging.getLogger(__name__)


def _error_body(message: str, error: Optional[str] = None) -> dict:
    return {"success": False, "message": message, "error": error}


def _describe_validation_error(exc: RequestValidationError) -> str:
    path_params = []
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if not loc:
            continue
        name = loc[-1] if len(loc) > 1 else loc[0]
        if loc[0] == "path":
            path_params.append(name)
        elif name not in fields:
            fields.append(name)

    if path_params:
        return f"Invalid {', '.join(path_params)} parameter"
    if fields:
        return f"Missing or invalid fields: {', '.join(fields)}"
    return "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.error)
        headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, exc.error),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_error_body(_describe_validation_error(exc), str(exc.errors())),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body("Internal server error", str(exc)),
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; run with ``uvicorn storefront.main:create_app --factory``."""
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Storefront API",
        description="Accounts, product catalog and order placement",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    database = Database(settings.database_url, echo=settings.sql_echo, log_queries=settings.log_queries)
    # Create database tables
    database.create_all()

    app.state.settings = settings
    app.state.database = database
    app.state.password_hasher = PasswordHasher(settings.password_schemes)
    app.state.token_service = TokenService(
        settings.secret_key,
        algorithm=settings.algorithm,
        expire_minutes=settings.access_token_expire_minutes,
    )
    app.state.event_publisher = (
        EventPublisher(settings.rabbitmq_url, settings.events_exchange) if settings.rabbitmq_url else None
    )

    register_exception_handlers(app)

    app.include_router(user_router.router)
    app.include_router(product_router.router)
    app.include_router(order_router.router)

    @app.get("/health", response_model=HealthOut)
    def health_check():
        return HealthOut(status="ok")

    logger.info("Storefront API configured (database=%s)", database.engine.url.render_as_string(hide_password=True))
    return app
