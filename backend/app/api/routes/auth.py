from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import select
from app.api.deps import db
from app.schemas.auth import LoginIn, RegisterIn, TokenOut
from app.models.account import Account
from app.core.security import hash_password, verify_password, create_access_token

router = APIRouter(prefix="/auth", tags=["auth"])

@router.post("/register", response_model=TokenOut)
def register(body: RegisterIn, s: Session = Depends(db)):
    exists = s.execute(select(Account).where(Account.identity == body.identity)).scalar_one_or_none()
    if exists:
        raise HTTPException(status_code=409, detail="account_exists")
    s.add(Account(identity=body.identity, password_hash=hash_password(body.password)))
    s.commit()
    return {"access_token": create_access_token(sub=body.identity), "identity": body.identity}

@router.post("/login", response_model=TokenOut)
def login(body: LoginIn, s: Session = Depends(db)):
    a = s.execute(select(Account).where(Account.identity == body.identity)).scalar_one_or_none()
    if not a or not verify_password(body.password, a.password_hash):
        raise HTTPException(status_code=401, detail="bad_credentials")
    return {"access_token": create_access_token(sub=a.identity), "identity": a.identity}
