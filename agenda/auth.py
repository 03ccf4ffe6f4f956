# agenda/auth.py

from datetime import timedelta
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlmodel import Session, select

from agenda.config import settings
from agenda.db import get_session
from agenda.models import User
from agenda.timeutils import utc_now

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def find_user(session: Session, email: str) -> Optional[User]:
    return session.exec(
        select(User).where(User.email == normalize_email(email))
    ).first()


def authenticate_user(session: Session, email: str, password: str) -> Optional[User]:
    """The matching user, or None when the email is unknown or the password is wrong."""
    user = find_user(session, email)
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def create_access_token(user: User, expires_minutes: Optional[int] = None) -> str:
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes
    claims = {
        "sub": user.email,
        "role": user.role,
        "exp": utc_now() + timedelta(minutes=expires_minutes),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    token: str = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> dict:
    """
    Resolve the bearer token to ``{"id", "email", "role"}``.

    The role is read from the database, not the token, so a changed account
    takes effect on the next request.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        raise _unauthorized("Invalid token")

    email = payload.get("sub")
    if email is None:
        raise _unauthorized("Invalid token")

    user = find_user(session, email)
    if user is None:
        raise _unauthorized("User not found")

    return {"id": user.id, "email": user.email, "role": user.role}
