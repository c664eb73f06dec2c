from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.errors import AlreadyFinalized, LoanNotFound, PreconditionFailed
from app.models.collateral_lock import CollateralLock  # noqa: F401  (loans.lock_id target)
from app.models.loan import Loan, LoanStatus
from app.models.user_profile import UserProfile


class LedgerStore:
    """Loan records and per-user verification flags.

    Never commits; every mutation joins the caller's transaction.
    """

    def __init__(self, s: Session):
        self.s = s

    def create(self, loan: Loan) -> int:
        loan.status = LoanStatus.REQUESTED
        self.s.add(loan)
        self.s.flush()
        return loan.id

    def get(self, loan_id: int, *, for_update: bool = False) -> Loan:
        if loan_id is None or int(loan_id) <= 0:
            raise LoanNotFound()
        q = select(Loan).where(Loan.id == int(loan_id))
        if for_update:
            q = q.with_for_update()
        ln = self.s.execute(q).scalar_one_or_none()
        if ln is None:
            raise LoanNotFound()
        return ln

    def list_loans(
        self,
        borrower: str | None = None,
        status: LoanStatus | None = None,
        limit: int = 200,
    ) -> list[Loan]:
        q = select(Loan).order_by(Loan.id.asc())
        if borrower:
            q = q.where(Loan.borrower == borrower)
        if status is not None:
            q = q.where(Loan.status == status)
        return list(self.s.execute(q.limit(limit)).scalars().all())

    def _finalize(self, loan_id: int, status: LoanStatus, when: datetime | None) -> None:
        # compare-and-set: only a loan still in `requested` may move
        res = self.s.execute(
            update(Loan)
            .where(Loan.id == int(loan_id), Loan.status == LoanStatus.REQUESTED)
            .values(status=status, closed_at=when)
        )
        if res.rowcount == 0:
            self.get(loan_id)
            raise AlreadyFinalized()

    def mark_repaid(self, loan_id: int, when: datetime | None = None) -> None:
        self._finalize(loan_id, LoanStatus.REPAID, when)

    def mark_defaulted(self, loan_id: int, when: datetime | None = None) -> None:
        self._finalize(loan_id, LoanStatus.DEFAULTED, when)

    def mark_approved(self, loan_id: int, when: datetime) -> None:
        res = self.s.execute(
            update(Loan)
            .where(
                Loan.id == int(loan_id),
                Loan.status == LoanStatus.REQUESTED,
                Loan.approved_at.is_(None),
            )
            .values(approved_at=when)
        )
        if res.rowcount == 0:
            ln = self.get(loan_id)
            if ln.status.is_terminal:
                raise AlreadyFinalized()
            raise PreconditionFailed("loan_already_approved")

    def get_profile(self, user: str) -> UserProfile | None:
        return self.s.get(UserProfile, user)

    def is_verified(self, user: str) -> bool:
        p = self.get_profile(user)
        return bool(p is not None and p.verified)

    def set_verified(self, user: str, verified: bool) -> UserProfile:
        p = self.get_profile(user)
        if p is None:
            p = UserProfile(identity=user, verified=bool(verified))
            self.s.add(p)
        else:
            p.verified = bool(verified)
        self.s.flush()
        return p
