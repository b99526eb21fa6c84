from __future__ import annotations

from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    user_name: str = Field(..., alias="userName", min_length=1, max_length=15)
    password: str = Field(..., min_length=1)

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "example": {"userName": "vaxorcist", "password": "correct horse battery staple"}
        },
    }


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class RefreshRequest(BaseModel):
    refresh_token: str
