from pydantic import BaseModel, field_validator

class LoginIn(BaseModel):
    identity: str
    password: str

class RegisterIn(BaseModel):
    identity: str
    password: str

    @field_validator("identity")
    @classmethod
    def identity_trim(cls, v: str):
        v = v.strip()
        if not v:
            raise ValueError("identity is required")
        if len(v) > 128:
            raise ValueError("identity too long")
        return v

    @field_validator("password")
    @classmethod
    def password_min(cls, v: str):
        v = str(v)
        if len(v) < 6:
            raise ValueError("password must be at least 6 characters")
        return v

class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    identity: str
