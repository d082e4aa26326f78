from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.deps import get_user_service
from app.core.auth import get_current_user_id
from app.core.rate_limit import enforce_ip_rate_limit, enforce_user_rate_limit
from app.schemas.user import (
    DataResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UpdateProfileRequest,
    UserResponse,
)
from app.services.user_service import UserService

UserServiceDep = Annotated[UserService, Depends(get_user_service)]
CurrentUserId = Annotated[str, Depends(get_current_user_id)]

public_router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(enforce_ip_rate_limit)],
)

self_router = APIRouter(
    prefix="/self",
    tags=["Self"],
    dependencies=[Depends(enforce_user_rate_limit)],
)


@public_router.post(
    "/register",
    response_model=DataResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
def register(payload: RegisterRequest, service: UserServiceDep) -> DataResponse[UserResponse]:
    """Create an account.

    Throttled per client address. Returns 400 when the username or email is
    already registered.
    """
    user = service.create_user(
        username=payload.username,
        password=payload.password,
        display_name=payload.display_name,
        email=payload.email,
    )
    return DataResponse[UserResponse](
        data=UserResponse.model_validate(user),
        message="Register an user successfully!",
    )


@public_router.post("/login", response_model=DataResponse[str])
def login(payload: LoginRequest, service: UserServiceDep) -> DataResponse[str]:
    """Exchange username and password for a bearer token."""
    token = service.login(payload.username, payload.password)
    return DataResponse[str](data=token, message="Logged in successfully!")


@self_router.get("/info", response_model=DataResponse[UserResponse])
def get_profile(user_id: CurrentUserId, service: UserServiceDep) -> DataResponse[UserResponse]:
    user = service.get_user_by_id(user_id)
    return DataResponse[UserResponse](
        data=UserResponse.model_validate(user),
        message="User profile retrieved successfully!",
    )


@self_router.put("/info", response_model=MessageResponse)
def update_profile(
    payload: UpdateProfileRequest,
    user_id: CurrentUserId,
    service: UserServiceDep,
) -> MessageResponse:
    service.update_user_by_id(user_id, display_name=payload.display_name, email=payload.email)
    return MessageResponse(message="Edit current user successfully!")
