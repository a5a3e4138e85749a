"""JWT utilities for the authentication boundary.

Responsibilities:
- Create HS256-signed access tokens with expirations (used by the identity service and tests).
- Resolve the current user from a bearer token, refusing banned or suspended accounts.
- Offer an optional variant for read endpoints that also serve anonymous viewers.
"""

# ============================================
# Imports and Dependencies
# ============================================
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pydantic import BaseModel
from sqlalchemy.orm import Session

from memestack.core.config import settings
from memestack.core.database import get_db
from memestack.core.exceptions import (
    AccountSuspendedException,
    AuthenticationException,
    InvalidTokenException,
)
from memestack.modules.users.models import User

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login", auto_error=False)

ALGORITHM = settings.algorithm
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes


# ============================================
# Token Data Model
# ============================================
class TokenData(BaseModel):
    """
    Schema to store token data.
    """

    id: Optional[int] = None


# ============================================
# Token Creation Function
# ============================================
def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token signed with the shared secret.

    - Clones payload, normalizes user_id to int, and sets exp claim.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})

    if "user_id" in to_encode:
        try:
            to_encode["user_id"] = int(to_encode["user_id"])
        except ValueError:
            logger.error(f"Invalid user_id format: {to_encode['user_id']}")
            raise ValueError("Invalid user_id format")

    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


# ============================================
# Token Verification Function
# ============================================
def verify_access_token(token: str) -> TokenData:
    """Verify JWT access token (exp/user_id) and return TokenData or raise."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"JWT Error: {str(e)}")
        raise InvalidTokenException()

    user_id = payload.get("user_id")
    if user_id is None:
        logger.warning("User ID not found in token payload")
        raise InvalidTokenException()
    try:
        return TokenData(id=int(user_id))
    except (TypeError, ValueError):
        logger.warning(f"Invalid user_id in token payload: {user_id}")
        raise InvalidTokenException()


def _load_user(db: Session, token_data: TokenData) -> User:
    user = db.query(User).filter(User.id == token_data.id).first()
    if user is None:
        raise AuthenticationException(
            error_code="invalid_credentials", message="Invalid Credentials"
        )

    if user.is_banned:
        raise AccountSuspendedException()
    if user.is_suspended:
        raise AccountSuspendedException(until=user.suspended_until.isoformat())
    return user


# ============================================
# Current User Retrieval Functions
# ============================================
def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Return the authenticated user; 401 on bad tokens, 403 on banned accounts."""
    user = _load_user(db, verify_access_token(token))
    request.state.user = user
    return user


def get_optional_user(
    request: Request,
    token: Optional[str] = Depends(optional_oauth2_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Like `get_current_user`, but anonymous requests resolve to None."""
    if not token:
        return None
    user = _load_user(db, verify_access_token(token))
    request.state.user = user
    return user

