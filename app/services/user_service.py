"""Account operations: registration, login, profile read and update.

The service owns password hashing and token issuance; persistence goes
through ``UserRepository``. Failures are raised as ``AppError`` subclasses so
the global exception handlers render them consistently.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Callable

from app.core.errors import AuthenticationAppError, ConflictAppError, ValidationAppError
from app.core.security import create_access_token, hash_password, verify_password
from app.models.user import User
from app.repositories.user_repository import DuplicateRecordError, UserRepository

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "invalid username or password"


def _user_hash(user_id: str) -> str:
    return hashlib.sha256(user_id.encode()).hexdigest()[:16]


class UserService:
    """Business logic for user accounts.

    Args:
        repository: Persistence gateway for users.
        password_hasher: Callable producing a password hash.
        password_verifier: Callable checking a plain password against a hash.
        token_issuer: Callable signing an access token for a user id.
    """

    def __init__(
        self,
        repository: UserRepository,
        *,
        password_hasher: Callable[[str], str] = hash_password,
        password_verifier: Callable[[str, str], bool] = verify_password,
        token_issuer: Callable[[str], str] = create_access_token,
    ) -> None:
        self.repository = repository
        self._hash_password = password_hasher
        self._verify_password = password_verifier
        self._issue_token = token_issuer

    def create_user(self, username: str, password: str, display_name: str, email: str) -> User:
        """Register a new account.

        Raises:
            ConflictAppError: If the username or email is already taken.
        """
        user = User(
            username=username,
            password=self._hash_password(password),
            display_name=display_name,
            email=email,
        )
        try:
            created = self.repository.create(user)
        except DuplicateRecordError as exc:
            logger.info("user.create_conflict")
            raise ConflictAppError(
                code="user_already_exists",
                message="username or email already exists",
            ) from exc

        logger.info("user.created", extra={"user_hash": _user_hash(created.id)})
        return created

    def login(self, username: str, password: str) -> str:
        """Exchange credentials for a signed access token.

        Unknown usernames and wrong passwords produce the same error so the
        response does not reveal which accounts exist.

        Raises:
            ValidationAppError: If the credentials do not match an account.
        """
        user = self.repository.get_by_username(username)
        if user is None or not self._verify_password(password, user.password):
            logger.info("user.login_failed", extra={"user_found": user is not None})
            raise ValidationAppError(
                code="invalid_credentials",
                message=INVALID_CREDENTIALS_MESSAGE,
            )

        token = self._issue_token(user.id)
        logger.info("user.logged_in", extra={"user_hash": _user_hash(user.id)})
        return token

    def get_user_by_id(self, user_id: str) -> User:
        """Load the authenticated user's account.

        Raises:
            AuthenticationAppError: If the token's subject no longer exists.
        """
        user = self.repository.get_by_id(user_id)
        if user is None:
            raise self._unknown_subject()
        return user

    def update_user_by_id(self, user_id: str, display_name: str, email: str) -> User:
        """Update display name and email of the authenticated user.

        Raises:
            AuthenticationAppError: If the token's subject no longer exists.
            ConflictAppError: If the email belongs to another account.
        """
        try:
            user = self.repository.update_by_id(user_id, display_name=display_name, email=email)
        except DuplicateRecordError as exc:
            raise ConflictAppError(code="email_already_exists", message="email already exists") from exc

        if user is None:
            raise self._unknown_subject()

        logger.info("user.updated", extra={"user_hash": _user_hash(user_id)})
        return user

    @staticmethod
    def _unknown_subject() -> AuthenticationAppError:
        return AuthenticationAppError(code="unauthorized", message="Unauthorized")
