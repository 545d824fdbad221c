# core/security.py
from datetime import timedelta
from typing import Optional, Dict, Any

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlmodel import Session

from core.database import get_session
from core.config import settings
from models.models import User, utcnow


# ========================================
# 🔑 JWT / APP CONFIG
# ========================================
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM or "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

# login lives in the identity service; this API only verifies its tokens
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


# ========================================
# 🔑 Token Helpers
# ========================================
def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def create_token_for_user(user: User) -> str:
    return create_access_token({"sub": user.email, "user_id": user.id, "company_id": user.company_id})


def decode_token(token: str) -> dict:
    """Decode JWT and return payload."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
            headers={"WWW-Authenticate": "Bearer"},
        )


# ========================================
# 👤 Authentication & Role Checks
# ========================================
def get_current_user(token: str = Depends(oauth2_scheme), session: Session = Depends(get_session)) -> User:
    """Extract user from token and load full record from DB."""
    payload = decode_token(token)
    user_id = payload.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token payload")

    user = session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is inactive")
    # platform admins stay reachable so they can resume what they paused
    if user.is_paused and not user.is_hyper_admin:
        raise HTTPException(status_code=403, detail=f"Account is paused: {user.pause_reason or 'no reason given'}")
    return user


def get_current_hyper_admin(current_user: User = Depends(get_current_user)) -> User:
    """Only platform hyper-admins."""
    if not current_user.is_hyper_admin:
        raise HTTPException(status_code=403, detail="Platform admin privileges required")
    return current_user


def get_current_company_admin(current_user: User = Depends(get_current_user)) -> User:
    """Company admins of their own company, or hyper-admins."""
    if not (current_user.is_hyper_admin or (current_user.is_company_admin and current_user.company_id)):
        raise HTTPException(status_code=403, detail="Company admin privileges required")
    return current_user
