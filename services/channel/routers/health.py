"""Liveness and readiness checks."""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import get_db

from ..config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": settings.service_name}


@router.get("/health/ready")
async def readiness_check(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    """Ready once the database answers.

    Kafka is reported but not required: events are best effort.
    """
    producer = getattr(request.app.state, "kafka_producer", None)
    body = {
        "service": settings.service_name,
        "database": "connected",
        "kafka": "connected" if producer is not None and producer.started else "disconnected",
    }

    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Readiness check could not reach the database: {e}")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {**body, "status": "not_ready", "database": "disconnected"}

    return {**body, "status": "ready"}
