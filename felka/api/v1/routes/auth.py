from fastapi import APIRouter, Depends, HTTPException
from jose import JWTError
from sqlalchemy.orm import Session
from felka.db.session import get_db
from felka.schemas.auth import LoginRequest, MeOut, RefreshRequest, TokenPair
from felka.models.user import User
from felka.core.security import verify_password, create_access_token, create_refresh_token, decode_token
from felka.api.deps import get_current_user

router = APIRouter(tags=["auth"])

@router.post("/auth/login", response_model=TokenPair)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email.strip().lower()).first()
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    return TokenPair(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )


@router.post("/auth/refresh", response_model=TokenPair)
def refresh(body: RefreshRequest, db: Session = Depends(get_db)):
    try:
        payload = decode_token(body.refresh_token, expected_type="refresh")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    user = db.get(User, payload.get("sub"))
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="User not found or inactive")
    return TokenPair(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )

@router.get("/auth/me", response_model=MeOut)
def me(me: User = Depends(get_current_user)):
    """Current actor as seen by the scheduling module."""
    return MeOut(
        id=me.id,
        email=me.email,
        fullName=me.full_name or "",
        role=me.role,
        companyName=me.company_name or "",
        phone=me.phone or "",
    )
