from app.repositories.health_repository import HealthRepository
from app.repositories.user_repository import DuplicateRecordError, UserRepository

__all__ = ["DuplicateRecordError", "HealthRepository", "UserRepository"]
