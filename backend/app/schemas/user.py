from pydantic import BaseModel

class VerifyIn(BaseModel):
    verified: bool = True

class UserProfileOut(BaseModel):
    identity: str
    verified: bool
    credit_score: int | None = None
    eligible: bool | None = None
