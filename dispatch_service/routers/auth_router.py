import logging

from fastapi import APIRouter, HTTPException, status

from .. import schemas
from ..config import settings
from ..security import authenticate_operator, create_access_token

logger = logging.getLogger("dispatch_service")

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/token", response_model=schemas.Token)
def login(credentials: schemas.LoginRequest):
    """
    Exchange operator credentials for a signed, expiring access token.
    """
    if not authenticate_operator(credentials.email, credentials.password):
        logger.warning(f"Rejected operator login for {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied",
            headers={"WWW-Authenticate": "Bearer"},
        )
    token = create_access_token(subject=credentials.email.strip().lower())
    return schemas.Token(access_token=token, expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60)
