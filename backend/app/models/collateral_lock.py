import enum

from sqlalchemy import BigInteger, Integer, DateTime, func, String, Enum, Index
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base


class CustodyState(str, enum.Enum):
    LOCKED = "locked"
    RELEASED = "released"
    SEIZED = "seized"


class CollateralLock(Base):
    __tablename__ = "collateral_locks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    asset: Mapped[str] = mapped_column(String(128))
    token_id: Mapped[int] = mapped_column(BigInteger)
    depositor: Mapped[str] = mapped_column(String(128))
    holder: Mapped[str] = mapped_column(String(128))
    state: Mapped[CustodyState] = mapped_column(
        Enum(CustodyState, name="custody_state", values_callable=lambda e: [m.value for m in e]),
        default=CustodyState.LOCKED,
        index=True,
    )

    created_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now())
    closed_at: Mapped[DateTime | None] = mapped_column(DateTime, nullable=True)


Index("ix_collateral_locks_asset_token", CollateralLock.asset, CollateralLock.token_id)
