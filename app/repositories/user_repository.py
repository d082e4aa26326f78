from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.models.user import User


class DuplicateRecordError(Exception):
    """Raised when a write violates a unique constraint."""


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def create(self, user: User) -> User:
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return user

    def get_by_id(self, user_id: str) -> User | None:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_username(self, username: str) -> User | None:
        return self.db.query(User).filter(User.username == username).first()

    def update_by_id(self, user_id: str, display_name: str, email: str) -> User | None:
        user = self.get_by_id(user_id)
        if not user:
            return None
        user.display_name = display_name
        user.email = email
        self._commit()
        self.db.refresh(user)
        return user

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise DuplicateRecordError(str(exc.orig)) from exc
