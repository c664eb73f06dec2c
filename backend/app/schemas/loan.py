from pydantic import BaseModel, Field, field_validator
from datetime import datetime

from app.models.loan import LoanStatus

class LoanRequestIn(BaseModel):
    amount: int = Field(gt=0)
    duration_seconds: int = Field(ge=0)
    collateral_asset: str
    collateral_token_id: int = Field(ge=0)

    @field_validator("collateral_asset")
    @classmethod
    def asset_trim(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("collateral_asset is required")
        return v

class LoanOut(BaseModel):
    id: int
    borrower: str
    amount: int
    interest_rate: int
    duration_seconds: int
    collateral_asset: str
    collateral_token_id: int
    issued_at: datetime
    status: LoanStatus
    approved_at: datetime | None = None
    closed_at: datetime | None = None

    class Config:
        from_attributes = True

class RepaymentQuoteOut(BaseModel):
    loan_id: int
    principal: int
    interest_rate: int
    interest: int
    total_repayment: int
    due_at: datetime
    is_due: bool

class RepaidOut(BaseModel):
    loan_id: int
    total_repayment: int
