from sqlalchemy import select
from sqlalchemy.orm import Session
from app.models.loan_event import LoanEvent

LOAN_REQUESTED = "LoanRequested"
LOAN_APPROVED = "LoanApproved"
LOAN_REPAID = "LoanRepaid"
LOAN_DEFAULTED = "LoanDefaulted"
COLLATERAL_LIQUIDATED = "CollateralLiquidated"


def emit_event(
    s: Session,
    name: str,
    loan_id: int,
    borrower: str,
    amount: int | None = None,
    details: dict | None = None,
):
    # no commit here: the event belongs to the caller's transaction
    row = LoanEvent(
        name=name,
        loan_id=loan_id,
        borrower=borrower,
        amount=amount,
        details=details,
    )
    s.add(row)
    s.flush()
    return row


def list_events(
    s: Session,
    loan_id: int | None = None,
    name: str | None = None,
    limit: int = 200,
) -> list[LoanEvent]:
    q = select(LoanEvent).order_by(LoanEvent.id.asc())
    if loan_id is not None:
        q = q.where(LoanEvent.loan_id == loan_id)
    if name:
        q = q.where(LoanEvent.name == name)
    return list(s.execute(q.limit(limit)).scalars().all())
