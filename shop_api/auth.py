"""Session-based authentication utilities."""
from typing import Any, Dict, Optional
import logging

from fastapi import Depends

from shop_api.dependencies import get_session
from shop_api.errors import Unauthorized
from shop_api.models import User
from shop_api.monitoring import auth_failures_counter
from shop_api.sessions import Session

logger = logging.getLogger(__name__)

USER_ID_KEY = "user_id"


def login_session(session: Session, user: User) -> None:
    """
    Bind a user to the session.

    The session id is regenerated so an id issued before login cannot be
    reused afterwards; the cart carries over.
    """
    session.regenerate()
    session[USER_ID_KEY] = user.id
    session["username"] = user.username
    session["email"] = user.email


def logout_session(session: Session) -> None:
    session.destroy()


def current_user(session: Session) -> Optional[Dict[str, Any]]:
    """Identity stored in the session, or None for anonymous sessions."""
    user_id = session.get(USER_ID_KEY)
    if user_id is None:
        return None
    return {
        "id": user_id,
        "username": session.get("username"),
        "email": session.get("email"),
    }


def require_user(session: Session = Depends(get_session)) -> int:
    """
    Require an authenticated session.

    Returns:
        User ID

    Raises:
        Unauthorized: If no user is logged in
    """
    user_id = session.get(USER_ID_KEY)
    if user_id is None:
        auth_failures_counter.add(1, {"reason": "no_session"})
        logger.warning("Authentication failed: No user in session")
        raise Unauthorized("Unauthorized")
    return user_id
