import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from blogger.config import settings
from blogger.exceptions import BlogAPIError, Unauthenticated
from blogger.media import media_host
from blogger.middleware import RequestTimingMiddleware
from blogger.routers import articles, auth, users
from blogger.schemas import format_errors

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    media_host.configure()
    logger.info("Blogger API %s starting (env=%s)", VERSION, settings.APP_ENV)
    yield
    # Shutdown
    logger.info("Blogger API shutting down")

app = FastAPI(
    title="Blogger API",
    description="Blogging REST API with JWT auth, ownership rules, likes and comments",
    version=VERSION,
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestTimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    # Browsers reject credentials combined with a wildcard origin.
    allow_credentials=settings.FRONTEND_URL != "*",
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)


# Error handlers
@app.exception_handler(BlogAPIError)
async def blog_api_error_handler(request: Request, exc: BlogAPIError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"detail": "Validation error", "errors": format_errors(exc.errors())},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"detail": "Internal server error"}
    if settings.DEBUG:
        content["error"] = str(exc)
    return JSONResponse(status_code=500, content=content)


# Routers
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(articles.router)


@app.get("/")
async def root():
    return {"message": "Welcome to the Blogger API!", "version": VERSION, "status": "running"}


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}
