"""Authentication API router."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
import logging

from shop_api.auth import current_user, login_session, logout_session
from shop_api.database import get_db
from shop_api.dependencies import get_account_service, get_session
from shop_api.errors import Unauthorized
from shop_api.monitoring import auth_attempts_counter, auth_failures_counter
from shop_api.schemas import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RegisterRequest,
    UserResponse,
)
from shop_api.services.account_service import AccountService
from shop_api.sessions import Session as HttpSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["authentication"])


@router.get("/me", response_model=MeResponse)
async def me(session: HttpSession = Depends(get_session)):
    """Current session identity, or null when not logged in."""
    return {"user": current_user(session)}


@router.post("/register", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: RegisterRequest,
    db: Session = Depends(get_db),
    account_service: AccountService = Depends(get_account_service)
):
    """Create an account."""
    account_service.register(db, request.username, request.email, request.password)
    return {"message": "User registered successfully"}


@router.post("/login", response_model=LoginResponse)
def login(
    request: LoginRequest,
    db: Session = Depends(get_db),
    session: HttpSession = Depends(get_session),
    account_service: AccountService = Depends(get_account_service)
):
    """Check credentials and establish a session."""
    auth_attempts_counter.add(1, {"type": "login"})

    try:
        user = account_service.authenticate(db, request.email, request.password)
    except Unauthorized:
        auth_failures_counter.add(1, {"reason": "invalid_credentials"})
        logger.warning("Login failed: Invalid credentials")
        raise

    login_session(session, user)
    logger.info("User logged in successfully", extra={"user_id": user.id})

    return {"message": "Login successful", "user": UserResponse.model_validate(user)}


@router.post("/logout", response_model=MessageResponse)
async def logout(session: HttpSession = Depends(get_session)):
    """Destroy the session."""
    logout_session(session)
    return {"message": "Logged out"}
