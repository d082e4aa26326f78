"""Dependency providers wiring repositories into services per request."""

from __future__ import annotations

from typing import Annotated

import redis
from fastapi import Depends
from sqlalchemy.orm import Session

from app.adapters.redis_client import get_redis_client
from app.core.config import settings
from app.core.database import get_db
from app.repositories.health_repository import HealthRepository
from app.repositories.user_repository import UserRepository
from app.services.health_service import HealthService
from app.services.user_service import UserService

DbSession = Annotated[Session, Depends(get_db)]


def get_user_service(db: DbSession) -> UserService:
    return UserService(UserRepository(db))


def get_health_service(
    db: DbSession,
    redis_client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> HealthService:
    return HealthService(
        HealthRepository(redis_client, db),
        service_name=settings.app.service_name,
        instance_id=settings.app.instance_id,
    )
