# agenda/routers/auth_routes.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session

from agenda.auth import authenticate_user, create_access_token, normalize_email
from agenda.db import get_session
from agenda.schemas import Token

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
):
    # OAuth2 password flow: "username" carries the email
    user = authenticate_user(session, form_data.username, form_data.password)
    if user is None:
        logger.info("Failed login for %s", normalize_email(form_data.username))
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return Token(access_token=create_access_token(user))
