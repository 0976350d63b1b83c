"""User service - handles user lookup, creation and credential checks"""

from sqlalchemy.orm import Session
from typing import Optional
import logging

from wateradmin.models.user import User
from wateradmin.core.roles import UserRole
from wateradmin.core.security import get_password_hash, verify_password
from wateradmin.core.exceptions import InvalidCredentialsError, ResourceAlreadyExistsError

logger = logging.getLogger(__name__)

# Checked against when the email is unknown so both failure paths cost one bcrypt round.
_DUMMY_PASSWORD_HASH = get_password_hash("not-a-real-password")


class UserService:
    """Service for user management"""

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    @staticmethod
    def create_user(
        db: Session,
        *,
        name: str,
        email: str,
        password: str,
        role: UserRole = UserRole.USER,
    ) -> User:
        """
        Create new user

        Raises:
            ResourceAlreadyExistsError: If the email is taken
        """
        email = UserService.normalize_email(email)
        if UserService.get_user_by_email(db, email):
            raise ResourceAlreadyExistsError("User")

        user = User(
            name=name,
            email=email,
            password_hash=get_password_hash(password),
            role=UserRole(role).value,
        )
        db.add(user)
        db.commit()
        db.refresh(user)

        logger.info(f"Created user: {user.email} (role: {user.role})")
        return user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> User:
        """
        Authenticate user by email and password

        Raises:
            InvalidCredentialsError: Unknown email or wrong password; callers
                cannot tell which.
        """
        user = UserService.get_user_by_email(db, email)

        if not user:
            verify_password(password, _DUMMY_PASSWORD_HASH)
            logger.info("Login failed for unknown email")
            raise InvalidCredentialsError()

        if not verify_password(password, user.password_hash):
            logger.info(f"Login failed for user {user.id}")
            raise InvalidCredentialsError()

        logger.info(f"User authenticated: {user.id}")
        return user

    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == UserService.normalize_email(email)).first()


# Singleton instance
user_service = UserService()
