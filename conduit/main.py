import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from conduit.config import settings
from conduit.exceptions import NotFoundError, ValidationError
from conduit.middleware import RequestLogMiddleware, configure_logging
from conduit.routers import articles, tags, users

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    logger.info("Starting Conduit API (env=%s)", settings.APP_ENV)
    yield
    logger.info("Conduit API shutting down")


app = FastAPI(
    title="Conduit API",
    description="Articles, comments, tags, favorites and the follow feed",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(articles.router)
app.include_router(users.router)
app.include_router(tags.router)


# Domain errors -> HTTP
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.info("Not found on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=422, content=exc.to_dict())


@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
