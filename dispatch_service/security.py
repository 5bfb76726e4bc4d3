from datetime import datetime, timedelta, timezone
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader
from jose import jwt, JWTError
from passlib.context import CryptContext

from .config import settings

# PBKDF2 sidesteps the bcrypt backend version issues and its 72-byte input limit
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Malformed hash in configuration
        return False


def authenticate_operator(email: str, password: str) -> bool:
    if email.strip().lower() != settings.ADMIN_EMAIL.strip().lower():
        return False
    return verify_password(password, settings.ADMIN_PASSWORD_HASH)


def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
    if expires_minutes is None:
        expires_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
    exp = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {"sub": subject, "type": "access", "exp": exp}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict:
    # jose checks the signature and the exp claim
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


async def get_current_operator(
        token: Annotated[str | None, Depends(api_key_header)]
) -> str:
    """
    Decodes the JWT from the 'Authorization: Bearer ...' header and returns the operator's email.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if not token:
        raise credentials_exception
    try:
        scheme, jwt_token = token.split()
        if scheme.lower() != "bearer":
            raise credentials_exception
        payload = decode_token(jwt_token)
    except (JWTError, ValueError, AttributeError):
        raise credentials_exception

    subject = payload.get("sub")
    if not subject or payload.get("type") != "access":
        raise credentials_exception
    return subject
