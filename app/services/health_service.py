from __future__ import annotations

import logging
from dataclasses import dataclass

from app.repositories.health_repository import HealthRepository

logger = logging.getLogger(__name__)

STATUS_OK = "OK"
REDIS_UNAVAILABLE = "redis unavailable"
DB_UNAVAILABLE = "database unavailable"


@dataclass(frozen=True)
class HealthStatus:
    healthy: bool
    message: str
    service_name: str
    instance_id: str


class HealthService:
    """Probe Redis, then the database, and report the first failure."""

    def __init__(self, repository: HealthRepository, service_name: str, instance_id: str) -> None:
        self.repository = repository
        self.service_name = service_name
        self.instance_id = instance_id

    def check(self) -> HealthStatus:
        probes = (
            (self.repository.redis_ping, REDIS_UNAVAILABLE),
            (self.repository.db_ping, DB_UNAVAILABLE),
        )
        for probe, failure_message in probes:
            try:
                probe()
            except Exception as exc:
                logger.error(
                    "health.check_failed",
                    extra={
                        "dependency": failure_message.split()[0],
                        "error_type": type(exc).__name__,
                        "error_msg": str(exc),
                    },
                )
                return self._status(False, failure_message)

        return self._status(True, STATUS_OK)

    def _status(self, healthy: bool, message: str) -> HealthStatus:
        return HealthStatus(
            healthy=healthy,
            message=message,
            service_name=self.service_name,
            instance_id=self.instance_id,
        )
