"""Loan lifecycle: request, approve, repay and default detection.

    (none) --request--> requested --approve--> requested (approved_at set)
    requested --repay--> repaid           [terminal]
    requested --check_default--> defaulted [terminal]

Each public operation is one transaction over the ledger tables, the
collateral vault and the value token: it commits as a whole or leaves no
trace. Interest is a flat percentage of principal; duration only decides
when a loan may be declared in default.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.core.errors import AlreadyFinalized, PreconditionFailed, Unauthorized
from app.models.loan import Loan
from app.models.user_profile import UserProfile
from app.services.collateral_vault import CollateralVault, LockHandle
from app.services.context import LendingContext
from app.services.credit_gate import CreditGate
from app.services.events import (
    COLLATERAL_LIQUIDATED,
    LOAN_APPROVED,
    LOAN_DEFAULTED,
    LOAN_REPAID,
    LOAN_REQUESTED,
    emit_event,
)
from app.services.ledger_store import LedgerStore
from app.services.unit_of_work import Compensations, atomic

logger = logging.getLogger(__name__)

INTEREST_RATE_PERCENT = 5


def total_repayment(amount: int, interest_rate: int) -> int:
    return int(amount) + int(amount) * int(interest_rate) // 100


def _duration_seconds(duration: timedelta | int) -> int:
    if isinstance(duration, timedelta):
        return int(duration.total_seconds())
    return int(duration)


def _checked(fn, *args) -> None:
    if not fn(*args):
        raise RuntimeError(f"{fn.__name__} returned false")


def due_at(loan: Loan) -> datetime:
    return loan.issued_at + timedelta(seconds=int(loan.duration_seconds))


@dataclass(frozen=True)
class RepaymentQuote:
    loan_id: int
    principal: int
    interest_rate: int
    interest: int
    total_repayment: int


class LoanStateMachine:
    def __init__(self, s: Session, ctx: LendingContext):
        self.s = s
        self.ctx = ctx
        self.compensations = Compensations()
        self.store = LedgerStore(s)
        self.gate = CreditGate(self.store, ctx.oracle)
        self.vault = CollateralVault(
            s,
            ctx.assets,
            ctx.vault_identity,
            clock=ctx.clock,
            compensations=self.compensations,
        )

    def _require_admin(self, caller: str) -> None:
        if caller != self.ctx.admin_identity:
            raise Unauthorized("admin_only")

    @staticmethod
    def _handle(loan: Loan) -> LockHandle:
        return LockHandle(
            lock_id=loan.lock_id,
            asset=loan.collateral_asset,
            token_id=int(loan.collateral_token_id),
        )

    # reads

    def get_loan(self, loan_id: int) -> Loan:
        return self.store.get(loan_id)

    def repayment_quote(self, loan_id: int) -> RepaymentQuote:
        ln = self.store.get(loan_id)
        total = total_repayment(ln.amount, ln.interest_rate)
        return RepaymentQuote(
            loan_id=ln.id,
            principal=int(ln.amount),
            interest_rate=int(ln.interest_rate),
            interest=total - int(ln.amount),
            total_repayment=total,
        )

    def is_due(self, loan_id: int) -> bool:
        ln = self.store.get(loan_id)
        return self.ctx.clock() > due_at(ln)

    # administration

    def verify_user(self, caller: str, user: str, verified: bool = True) -> UserProfile:
        self._require_admin(caller)
        with atomic(self.s, self.compensations):
            profile = self.store.set_verified(user, verified)
        logger.info("user %s verified=%s", user, verified)
        return profile

    # lifecycle

    def request(
        self,
        borrower: str,
        amount: int,
        duration: timedelta | int,
        collateral_asset: str,
        collateral_token_id: int,
    ) -> int:
        amount = int(amount)
        seconds = _duration_seconds(duration)
        if amount <= 0:
            raise PreconditionFailed("amount_must_be_positive")
        if seconds < 0:
            raise PreconditionFailed("duration_must_not_be_negative")
        if int(collateral_token_id) < 0:
            raise PreconditionFailed("token_id_invalid")

        with atomic(self.s, self.compensations):
            self.gate.require_eligible(borrower)
            handle = self.vault.lock(collateral_asset, collateral_token_id, borrower)
            # only id allocation is serialized; the oracle read and transfer are not
            with self.ctx.locks.allocation:
                loan_id = self.store.create(
                    Loan(
                        borrower=borrower,
                        amount=amount,
                        interest_rate=INTEREST_RATE_PERCENT,
                        duration_seconds=seconds,
                        collateral_asset=handle.asset,
                        collateral_token_id=handle.token_id,
                        lock_id=handle.lock_id,
                        issued_at=self.ctx.clock(),
                    )
                )
            emit_event(self.s, LOAN_REQUESTED, loan_id, borrower, amount)

        logger.info(
            "loan %s requested by %s: amount=%s collateral=%s:%s",
            loan_id,
            borrower,
            amount,
            collateral_asset,
            collateral_token_id,
        )
        return loan_id

    def approve(self, caller: str, loan_id: int) -> None:
        self._require_admin(caller)

        with self.ctx.locks.hold(loan_id):
            with atomic(self.s, self.compensations):
                ln = self.store.get(loan_id, for_update=True)
                borrower, amount = ln.borrower, int(ln.amount)

                self.store.mark_approved(ln.id, self.ctx.clock())
                emit_event(self.s, LOAN_APPROVED, ln.id, borrower, amount)

                if not self.ctx.value_token.transfer(borrower, amount):
                    raise PreconditionFailed("disbursement_failed")
                self.compensations.add(
                    f"reclaim disbursement of loan {loan_id}",
                    _checked,
                    self.ctx.value_token.reclaim,
                    borrower,
                    amount,
                )

        logger.info("loan %s approved: %s disbursed to %s", loan_id, amount, borrower)

    def repay(self, caller: str, loan_id: int) -> int:
        with self.ctx.locks.hold(loan_id):
            with atomic(self.s, self.compensations):
                ln = self.store.get(loan_id, for_update=True)
                if ln.borrower != caller:
                    raise Unauthorized("not_borrower")
                if ln.status.is_terminal:
                    raise AlreadyFinalized()

                borrower = ln.borrower
                total = total_repayment(ln.amount, ln.interest_rate)
                if not self.ctx.value_token.transfer_from(borrower, self.ctx.reserve_identity, total):
                    raise PreconditionFailed("repayment_transfer_failed")
                self.compensations.add(
                    f"refund repayment of loan {loan_id}",
                    _checked,
                    self.ctx.value_token.refund,
                    borrower,
                    total,
                )

                handle = self._handle(ln)
                self.store.mark_repaid(ln.id, self.ctx.clock())
                self.vault.release(handle, borrower)
                emit_event(self.s, LOAN_REPAID, ln.id, borrower, details={"total_repayment": total})

        logger.info("loan %s repaid by %s: %s", loan_id, borrower, total)
        return total

    def check_default(self, loan_id: int) -> None:
        with self.ctx.locks.hold(loan_id):
            with atomic(self.s, self.compensations):
                ln = self.store.get(loan_id, for_update=True)
                if ln.status.is_terminal:
                    raise AlreadyFinalized()

                now = self.ctx.clock()
                if now <= due_at(ln):
                    raise PreconditionFailed("loan_not_due")

                borrower = ln.borrower
                handle = self._handle(ln)
                self.store.mark_defaulted(ln.id, now)
                self.vault.seize(handle, self.ctx.admin_identity)
                emit_event(self.s, LOAN_DEFAULTED, ln.id, borrower)
                emit_event(
                    self.s,
                    COLLATERAL_LIQUIDATED,
                    ln.id,
                    borrower,
                    details={"asset": handle.asset, "token_id": handle.token_id, "to": self.ctx.admin_identity},
                )

        logger.info("loan %s defaulted; collateral seized to %s", loan_id, self.ctx.admin_identity)
