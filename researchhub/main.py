from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.clock import utcnow
from .core.database import create_db_and_tables
from .core.errors import AppError, RateLimited
from .core.logging import configure_logging
from .core.rate_limit import RateLimiter
from .core.settings import settings
from .models.User import User # Import models to register them with SQLModel
from .models.UserSession import UserSession
from .models.UserPreferences import UserPreferences

from .auth.router import router as auth_router
from .users.router import router as users_router
from .admin.router import router as admin_router

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_db_and_tables()
    logger.info("%s API started (%s)", settings.PROJECT_NAME, settings.ENVIRONMENT)
    yield
    logger.info("%s API shutting down", settings.PROJECT_NAME)

app = FastAPI(title=settings.PROJECT_NAME, version=settings.VERSION, lifespan=lifespan)

# Shared by every rate-limited auth route
app.state.auth_rate_limiter = RateLimiter(
    max_attempts=settings.AUTH_RATE_LIMIT_MAX_ATTEMPTS,
    window_ms=settings.AUTH_RATE_LIMIT_WINDOW_MS,
)
# Every /api request, per client address
app.state.api_rate_limiter = RateLimiter(
    max_attempts=settings.API_RATE_LIMIT_MAX_REQUESTS,
    window_ms=settings.API_RATE_LIMIT_WINDOW_MS,
)

@app.middleware("http")
async def limit_api_requests(request: Request, call_next):
    if not request.url.path.startswith("/api/"):
        return await call_next(request)

    key = request.client.host if request.client else "unknown"
    decision = request.app.state.api_rate_limiter.check(key)
    if not decision.allowed:
        logger.warning("Rate limited %s on %s, retry after %ss", key, request.url.path, decision.retry_after)
        exc = RateLimited(decision.retry_after, "Too many requests from this IP, please try again later.")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)
    return await call_next(request)

# Added last so it wraps everything, 429s included
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL.rstrip("/")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(admin_router)

@app.exception_handler(AppError)
async def handle_app_error(request: Request, exc: AppError):
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.reason)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)

@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    details = [
        {"field": ".".join(str(p) for p in err["loc"] if p != "body"), "message": err["msg"]}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder({"error": "Validation failed", "reason": "validationFailed", "details": details}),
    )

@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"error": str(exc) if settings.is_development else "Internal server error"}
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

@app.get("/api/health")
def health():
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT,
    }

@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}"}
