from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from .. import models, schemas
from ..auth import SessionToken, create_access_token, get_current_user
from ..core import accounts
from ..database import get_db

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_payload(user: models.User, session_token: SessionToken) -> dict:
    return {
        "token": session_token.token,
        "tokenType": "bearer",
        "expiresAt": session_token.expires_at.isoformat(),
        "expirationMs": session_token.expiration_ms,
        "user": schemas.dump(schemas.UserOut, user),
    }

@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: schemas.UserCreate, db: Session = Depends(get_db)):
    user = accounts.register_user(db, payload.email, payload.password)
    return schemas.envelope("User registered successfully", **_token_payload(user, create_access_token(user.id)))

@router.post("/login")
def login(payload: schemas.UserLogin, db: Session = Depends(get_db)):
    user, session_token = accounts.login(db, payload.email, payload.password)
    return schemas.envelope("Login successful", **_token_payload(user, session_token))

@router.post("/refresh")
def refresh(current_user: models.User = Depends(get_current_user)):
    """Issue a fresh token before the current one expires."""
    return schemas.envelope("Token refreshed", **_token_payload(current_user, create_access_token(current_user.id)))

@router.get("/me")
def me(current_user: models.User = Depends(get_current_user)):
    return schemas.envelope("User fetched", user=schemas.dump(schemas.UserOut, current_user))

@router.get("/stats")
def user_stats(current_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    stats = accounts.user_stats(db, current_user)
    return schemas.envelope("User stats fetched", stats=schemas.camel_keys(stats))

@router.put("/password")
def change_password(
    payload: schemas.PasswordChange,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    accounts.change_password(db, current_user, payload.current_password, payload.new_password)
    return schemas.envelope("Password updated successfully")
