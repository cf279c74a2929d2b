"""User registration and authentication."""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shop_api.errors import Conflict, Unauthorized, ValidationError
from shop_api.models import User
from shop_api.security import hash_password, verify_password

logger = logging.getLogger(__name__)


class AccountService:
    """Service for user accounts."""

    def register(self, db: Session, username: str, email: str, password: str) -> User:
        """
        Create a new account.

        Args:
            db: Database session
            username: Display name
            email: Login email, unique across users
            password: Plain-text password, stored only as a bcrypt hash

        Returns:
            The created user

        Raises:
            ValidationError: If any field is missing
            Conflict: If the email is already registered
        """
        if not username or not email or not password:
            raise ValidationError("All fields are required")

        if db.query(User.id).filter(User.email == email).first() is not None:
            raise Conflict("User already exists")

        user = User(username=username, email=email, password=hash_password(password))
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same email
            db.rollback()
            raise Conflict("User already exists")
        db.refresh(user)

        logger.info("User registered", extra={"user_id": user.id})
        return user

    def authenticate(self, db: Session, email: str, password: str) -> User:
        """
        Check credentials.

        Raises:
            ValidationError: If email or password is missing
            Unauthorized: If the email is unknown or the password is wrong
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = db.query(User).filter(User.email == email).first()
        if user is None or not verify_password(password, user.password):
            raise Unauthorized("Invalid email or password")
        return user
