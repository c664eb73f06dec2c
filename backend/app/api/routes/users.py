from fastapi import APIRouter, Depends, Query
from app.api.deps import lending, require_admin, current_user
from app.schemas.user import UserProfileOut, VerifyIn
from app.services.credit_gate import MIN_CREDIT_SCORE
from app.services.loan_state_machine import LoanStateMachine

router = APIRouter(prefix="/users", tags=["users"])

@router.get("/{identity}", response_model=UserProfileOut)
def get_profile(
    identity: str,
    include_score: bool = Query(default=False),
    sm: LoanStateMachine = Depends(lending),
    u=Depends(current_user),
):
    out = UserProfileOut(identity=identity, verified=sm.store.is_verified(identity))
    if include_score:
        # read fresh from the oracle; scores are never stored
        out.credit_score = sm.gate.credit_score(identity)
        out.eligible = out.verified and out.credit_score > MIN_CREDIT_SCORE
    return out

@router.post("/{identity}/verify", response_model=UserProfileOut)
def verify_user(identity: str, body: VerifyIn, sm: LoanStateMachine = Depends(lending), admin=Depends(require_admin)):
    p = sm.verify_user(admin, identity, body.verified)
    return UserProfileOut(identity=p.identity, verified=p.verified)
