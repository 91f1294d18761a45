from fastapi import APIRouter, Response
import redis

from promptgate.core.config import settings
from promptgate.storage.redis_store import get_redis_client


router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness probe - always returns 200 if app is running."""
    return {"status": "ok"}


@router.get("/ready")
def readiness(response: Response) -> dict:
    """Readiness probe - returns 503 if the entitlement store is unavailable."""
    if settings.storage_backend != "redis":
        return {"status": "ready", "storage": settings.storage_backend}
    try:
        get_redis_client().ping()
        return {"status": "ready", "storage": "redis"}
    except redis.RedisError as e:
        response.status_code = 503
        return {"status": "not_ready", "error": str(e)}
