from sqlalchemy import String, Boolean, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from app.db.base import Base

class UserProfile(Base):
    __tablename__ = "user_profiles"
    identity: Mapped[str] = mapped_column(String(128), primary_key=True)
    verified: Mapped[bool] = mapped_column(Boolean, default=False)
    updated_at: Mapped[DateTime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())
