import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import User

from . import exceptions

logger = logging.getLogger(__name__)


class UserDirectory:
    def __init__(self, db: Session):
        self.db = db

    def get_or_create(self, phone: str) -> User:
        try:
            user = self.db.query(User).filter(User.phone == phone).first()
            if user:
                return user
            user = User(phone=phone)
            self.db.add(user)
            try:
                self.db.commit()
            except IntegrityError:
                # Lost a race on the unique phone index; the other insert won.
                self.db.rollback()
                user = self.db.query(User).filter(User.phone == phone).one()
                return user
            self.db.refresh(user)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("User directory get-or-create failed: %s", type(exc).__name__)
            raise exceptions.BackendUnavailable("user directory unavailable") from exc
        logger.info("Registered new user id=%s", user.id)
        return user

    def get_by_id(self, user_id: int) -> User:
        try:
            user = self.db.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as exc:
            raise exceptions.BackendUnavailable("user directory unavailable") from exc
        if not user:
            raise exceptions.NotFoundError("user not found")
        return user

    def list_users(self, *, page: int, limit: int, search: str | None = None) -> tuple[list[User], int]:
        query = self.db.query(User)
        if search:
            query = query.filter(User.phone.like(f"%{search}%"))
        try:
            total = query.count()
            users = query.order_by(User.id).offset((page - 1) * limit).limit(limit).all()
        except SQLAlchemyError as exc:
            raise exceptions.BackendUnavailable("user directory unavailable") from exc
        return users, total
