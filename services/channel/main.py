"""Main application for Channel Service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse

from shared.database import close_db, init_db

from .config import settings
from .errors import (
    ChannelNameTaken,
    ChannelServiceError,
    DuplicateMembership,
    InvalidChannelOperation,
    NotFound,
    PermissionDenied,
)
from .middleware import AuthMiddleware
from .routers import channels, health, members, messages
from .services.kafka_producer import KafkaProducer

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Checked in order; subclasses before their bases
ERROR_STATUS_CODES = [
    (NotFound, status.HTTP_404_NOT_FOUND),
    (DuplicateMembership, status.HTTP_409_CONFLICT),
    (ChannelNameTaken, status.HTTP_409_CONFLICT),
    (PermissionDenied, status.HTTP_403_FORBIDDEN),
    (InvalidChannelOperation, status.HTTP_400_BAD_REQUEST),
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    logger.info("Starting Channel Service...")

    init_db(settings.database_url, echo=settings.database_echo)
    logger.info("Database initialized")

    kafka_producer = KafkaProducer(settings.kafka_bootstrap_servers, settings.kafka_topic)
    app.state.kafka_producer = kafka_producer
    if not settings.kafka_enabled:
        logger.info("Kafka disabled, channel events will not be published")
    else:
        try:
            await kafka_producer.start()
        except Exception as e:
            logger.warning(f"Continuing without Kafka, events will not be published: {e}")

    logger.info("Channel Service started successfully")

    yield

    logger.info("Shutting down Channel Service...")
    await kafka_producer.stop()
    await close_db()
    logger.info("Channel Service shut down successfully")


app = FastAPI(
    title="Channel Service",
    description="Channels, memberships and access control for the chat backend",
    version=settings.service_version,
    lifespan=lifespan,
    swagger_ui_parameters={
        "persistAuthorization": True,
    },
)


@app.exception_handler(ChannelServiceError)
async def channel_service_error_handler(request: Request, exc: ChannelServiceError):
    """Translate domain errors into HTTP responses."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS_CODES if isinstance(exc, error_type)),
        status.HTTP_400_BAD_REQUEST,
    )
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def custom_openapi():
    """Customize OpenAPI schema to add bearer security."""
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    components = openapi_schema.setdefault("components", {})
    components.setdefault("securitySchemes", {})["HTTPBearer"] = {
        "type": "http",
        "scheme": "bearer",
        "bearerFormat": "JWT",
    }

    for path, path_item in openapi_schema["paths"].items():
        if not path.startswith("/health"):
            for operation in path_item.values():
                if isinstance(operation, dict):
                    operation["security"] = [{"HTTPBearer": []}]

    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi  # type: ignore

# Middleware runs in reverse order of registration
app.add_middleware(AuthMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["Health"])
app.include_router(channels.router, tags=["Channels"])
app.include_router(members.router, tags=["Members"])
app.include_router(messages.router, tags=["Messages"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "status": "running",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.channel.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True,
    )
