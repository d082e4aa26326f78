from app.schemas.health import HealthCheckResponse
from app.schemas.user import (
    DataResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UpdateProfileRequest,
    UserResponse,
)

__all__ = [
    "DataResponse",
    "HealthCheckResponse",
    "LoginRequest",
    "MessageResponse",
    "RegisterRequest",
    "UpdateProfileRequest",
    "UserResponse",
]
