from sqlalchemy import BigInteger, Integer, DateTime, func, String, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base


class LoanEvent(Base):
    __tablename__ = "loan_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now(), index=True)

    name: Mapped[str] = mapped_column(String(64), index=True)
    loan_id: Mapped[int] = mapped_column(Integer, index=True)
    borrower: Mapped[str] = mapped_column(String(128), index=True)
    amount: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    details: Mapped[dict | None] = mapped_column(JSON, nullable=True)


Index("ix_loan_events_loan", LoanEvent.loan_id, LoanEvent.id)
