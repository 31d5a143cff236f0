import hmac
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import Depends, Header, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, INTERNAL_API_TOKEN, SECRET_KEY
from .database import get_db
from .models import ADMIN_ROLES, User

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

security = HTTPBearer()


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed access token for a user

    Args:
        user: User the token is issued to
        expires_delta: Token lifetime (default ACCESS_TOKEN_EXPIRE_MINUTES)
    """
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(user.id), "email": user.email, "role": user.role, "exp": expire}
    return jose_jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_access_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode an access token

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Get current user from bearer token"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        logger.error(f"Token missing user ID claim. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    try:
        user = db.query(User).filter(User.id == int(user_id)).first()
    except ValueError as e:
        raise HTTPException(status_code=401, detail="Invalid token claims") from e

    if not user or not user.is_active:
        logger.warning(f"Authentication failed for user {user_id}: unknown or inactive")
        raise HTTPException(status_code=401, detail="User not found or inactive")

    logger.debug(f"User authenticated: {user.email}")
    return user


def require_roles(*roles: str):
    """Dependency factory: allow only users holding one of the given roles"""

    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.warning(f"User {user.email} ({user.role}) denied; requires one of {roles}")
            raise HTTPException(status_code=403, detail="You do not have permission to do that")
        return user

    return _check


require_admin = require_roles(*ADMIN_ROLES)


optional_security = HTTPBearer(auto_error=False)


async def require_staff_or_internal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
    x_internal_token: Optional[str] = Header(default=None, alias="X-Internal-Token"),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """
    Allow either the outbox worker (shared internal token) or an admin user.

    Returns the authenticated user, or None for internal calls.
    """
    if x_internal_token and hmac.compare_digest(x_internal_token, INTERNAL_API_TOKEN):
        return None

    user = await get_current_user(credentials, db)
    if user.role not in ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="You do not have permission to do that")
    return user
