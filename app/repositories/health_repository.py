import redis
from sqlalchemy.orm import Session

from app.core.database import ping_db


class HealthRepository:
    """Connectivity probes for the service's backing stores."""

    def __init__(self, redis_client: redis.Redis, db: Session):
        self.redis_client = redis_client
        self.db = db

    def redis_ping(self) -> None:
        self.redis_client.ping()

    def db_ping(self) -> None:
        ping_db(self.db)
