from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mobileorder.errors import ErrCode
from mobileorder.models.user import User, UserRole


class UserRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_user(self, email: str) -> User:
        """New accounts always start as customers."""
        try:
            taken = self.db.query(User.id).filter(User.email == email).first()
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to load user")
        if taken:
            raise ErrCode.CONFLICT.wrap(None, "this email address is already registered")

        user = User(email=email, role=UserRole.CUSTOMER)
        try:
            self.db.add(user)
            self.db.flush()
        except IntegrityError as e:
            # lost a race with a concurrent sign-up
            raise ErrCode.CONFLICT.wrap(e, "this email address is already registered")
        except SQLAlchemyError as e:
            raise ErrCode.INSERT_DATA_FAILED.wrap(e, "failed to create user")
        return user

    def get_user_by_email(self, email: str) -> User:
        try:
            user = self.db.query(User).filter(User.email == email).first()
        except SQLAlchemyError as e:
            raise ErrCode.GET_DATA_FAILED.wrap(e, "failed to load user")
        if not user:
            raise ErrCode.NO_DATA.wrap(None, "no user with this email address")
        return user
