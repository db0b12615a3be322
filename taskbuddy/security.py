from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException, Request, status
from jose import JWTError, jwt

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, SECRET_KEY
from .schemas.auth import SessionUser, TokenData

ALGORITHM = "HS256"
TOKEN_COOKIE = "token"


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_token_from_request(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header.split(" ", 1)[1].strip()
    return request.cookies.get(TOKEN_COOKIE)


def decode_token(token: str) -> Optional[TokenData]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id: str = payload.get("sub")
        if not user_id:
            return None
        return TokenData(user_id=user_id, email=payload.get("email"))
    except JWTError:
        return None


def token_expiry(token: str) -> Optional[datetime]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    exp = payload.get("exp")
    return datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None


def get_optional_user(request: Request) -> Optional[SessionUser]:
    """Session user if the request carries a valid token, else None."""
    token = get_token_from_request(request)
    if not token:
        return None
    token_data = decode_token(token)
    if not token_data or not token_data.user_id:
        return None
    return SessionUser(id=token_data.user_id, email=token_data.email)


async def get_current_user(request: Request) -> SessionUser:
    """Get current user from JWT token."""
    token = get_token_from_request(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data = decode_token(token)
    if not token_data or not token_data.user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return SessionUser(id=token_data.user_id, email=token_data.email)
