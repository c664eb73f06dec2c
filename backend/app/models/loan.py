import enum

from sqlalchemy import BigInteger, CheckConstraint, Integer, DateTime, func, ForeignKey, String, Enum
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base


class LoanStatus(str, enum.Enum):
    REQUESTED = "requested"
    REPAID = "repaid"
    DEFAULTED = "defaulted"

    @property
    def is_terminal(self) -> bool:
        return self is not LoanStatus.REQUESTED


class Loan(Base):
    __tablename__ = "loans"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    borrower: Mapped[str] = mapped_column(String(128), index=True)
    amount: Mapped[int] = mapped_column(BigInteger)
    interest_rate: Mapped[int] = mapped_column(Integer)
    duration_seconds: Mapped[int] = mapped_column(BigInteger)

    # collateral reference; never updated after insert
    collateral_asset: Mapped[str] = mapped_column(String(128))
    collateral_token_id: Mapped[int] = mapped_column(BigInteger)
    lock_id: Mapped[int] = mapped_column(ForeignKey("collateral_locks.id"), unique=True)

    issued_at: Mapped[DateTime] = mapped_column(DateTime)
    status: Mapped[LoanStatus] = mapped_column(
        Enum(LoanStatus, name="loan_status", values_callable=lambda e: [m.value for m in e]),
        default=LoanStatus.REQUESTED,
        index=True,
    )
    approved_at: Mapped[DateTime | None] = mapped_column(DateTime, nullable=True)
    closed_at: Mapped[DateTime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_loans_amount_positive"),
        {"sqlite_autoincrement": True},
    )
