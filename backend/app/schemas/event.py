from pydantic import BaseModel
from datetime import datetime


class EventOut(BaseModel):
    id: int
    created_at: datetime | None
    name: str
    loan_id: int
    borrower: str
    amount: int | None
    details: dict | None

    class Config:
        from_attributes = True
