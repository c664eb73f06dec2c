from pydantic import BaseModel, Field, field_validator


class MintAssetIn(BaseModel):
    asset: str
    token_id: int = Field(ge=0)
    owner: str

    @field_validator("asset", "owner")
    @classmethod
    def not_blank(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class FundIn(BaseModel):
    owner: str
    amount: int = Field(gt=0)


class AllowanceIn(BaseModel):
    amount: int = Field(ge=0)


class WalletOut(BaseModel):
    identity: str
    balance: int
    allowance: int


class AssetOut(BaseModel):
    asset: str
    token_id: int
    owner: str | None
