from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status, Request
from jose import JWTError, jwt

from .config import get_settings
from .models import User
from .schemas import TokenData
from .database import get_db
from sqlalchemy.orm import Session

import logging
from fastapi import Header, Cookie
logger = logging.getLogger("uvicorn.error")

# --- JWT Token Handling ---
# Accounts and logins belong to the identity service. This module only verifies
# its tokens; create_access_token produces the same format for tooling and tests.

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Creates a JWT access token."""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_access_token(token: str) -> Optional[TokenData]:
    """Returns the token's subject, or None when the token is invalid or expired."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        logger.info("JWT decode failed: %s", e)
        return None
    username = payload.get("sub")
    if not username:
        return None
    return TokenData(username=username)

def _token_from_request(request: Request, authorization: Optional[str], cookie_token: Optional[str]) -> Optional[str]:
    # Bearer header wins over the cookie
    if authorization:
        scheme, _, value = authorization.partition(" ")
        if scheme == "Bearer" and value:
            return value
        logger.info("Authorization header present but not Bearer.")
    return cookie_token or request.cookies.get("access_token")

def get_user(db: Session, username: str) -> Optional[User]:
    """Retrieves an account by username."""
    return db.query(User).filter(User.username == username).first()

def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    authorization: Optional[str] = Header(None),
    access_token: Optional[str] = Cookie(None),
) -> User:
    """
    Resolves the acting account from ``Authorization: Bearer <token>`` or the
    ``access_token`` cookie.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
    )

    token = _token_from_request(request, authorization, access_token)
    if not token:
        raise credentials_exception

    token_data = decode_access_token(token)
    if token_data is None:
        raise credentials_exception

    user = get_user(db, token_data.username)
    if user is None:
        logger.info("Token subject %s has no account", token_data.username)
        raise credentials_exception
    return user

def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Inactive user")
    return current_user
