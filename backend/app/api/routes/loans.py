from datetime import timedelta

from fastapi import APIRouter, Depends, Query

from app.api.deps import lending, current_user, require_admin
from app.models.loan import LoanStatus
from app.schemas.loan import LoanRequestIn, LoanOut, RepaymentQuoteOut, RepaidOut
from app.services.loan_state_machine import LoanStateMachine, due_at

router = APIRouter(prefix="/loans", tags=["loans"])


@router.get("", response_model=list[LoanOut])
def list_loans(
    borrower: str | None = Query(default=None),
    status: LoanStatus | None = Query(default=None),
    limit: int = Query(default=200, ge=1, le=1000),
    sm: LoanStateMachine = Depends(lending),
    u=Depends(current_user),
):
    return sm.store.list_loans(borrower=borrower, status=status, limit=limit)


@router.post("", response_model=LoanOut)
def request_loan(body: LoanRequestIn, sm: LoanStateMachine = Depends(lending), u: str = Depends(current_user)):
    loan_id = sm.request(
        borrower=u,
        amount=body.amount,
        duration=timedelta(seconds=body.duration_seconds),
        collateral_asset=body.collateral_asset,
        collateral_token_id=body.collateral_token_id,
    )
    return sm.get_loan(loan_id)


@router.get("/{loan_id}", response_model=LoanOut)
def get_loan(loan_id: int, sm: LoanStateMachine = Depends(lending), u=Depends(current_user)):
    return sm.get_loan(loan_id)


@router.get("/{loan_id}/repayment", response_model=RepaymentQuoteOut)
def repayment_quote(loan_id: int, sm: LoanStateMachine = Depends(lending), u=Depends(current_user)):
    q = sm.repayment_quote(loan_id)
    ln = sm.get_loan(loan_id)
    return RepaymentQuoteOut(
        loan_id=q.loan_id,
        principal=q.principal,
        interest_rate=q.interest_rate,
        interest=q.interest,
        total_repayment=q.total_repayment,
        due_at=due_at(ln),
        is_due=sm.is_due(loan_id),
    )


@router.post("/{loan_id}/approve", response_model=LoanOut)
def approve_loan(loan_id: int, sm: LoanStateMachine = Depends(lending), admin: str = Depends(require_admin)):
    sm.approve(admin, loan_id)
    return sm.get_loan(loan_id)


@router.post("/{loan_id}/repay", response_model=RepaidOut)
def repay_loan(loan_id: int, sm: LoanStateMachine = Depends(lending), u: str = Depends(current_user)):
    total = sm.repay(u, loan_id)
    return RepaidOut(loan_id=loan_id, total_repayment=total)


@router.post("/{loan_id}/check-default", response_model=LoanOut)
def check_default(loan_id: int, sm: LoanStateMachine = Depends(lending), u=Depends(current_user)):
    sm.check_default(loan_id)
    return sm.get_loan(loan_id)
