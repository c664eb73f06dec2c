from functools import lru_cache

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from app.db.session import SessionLocal
from app.core.config import settings
from app.core.security import decode_token
from app.services.context import LendingContext, build_context
from app.services.loan_state_machine import LoanStateMachine

bearer = HTTPBearer()

def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()

@lru_cache
def lending_context() -> LendingContext:
    return build_context(settings)

def lending(s: Session = Depends(db), ctx: LendingContext = Depends(lending_context)) -> LoanStateMachine:
    return LoanStateMachine(s, ctx)

def current_user(creds: HTTPAuthorizationCredentials = Depends(bearer)) -> str:
    try:
        claims = decode_token(creds.credentials)
    except Exception:
        raise HTTPException(status_code=401, detail="invalid_token")
    sub = claims.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="invalid_token")
    return sub

def require_admin(u: str = Depends(current_user), ctx: LendingContext = Depends(lending_context)) -> str:
    if u != ctx.admin_identity:
        raise HTTPException(status_code=403, detail="admin_only")
    return u
