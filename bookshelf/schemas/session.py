from pydantic import BaseModel, ConfigDict, Field


class SessionCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    password: str = Field(..., min_length=1)


class SessionRecord(BaseModel):
    """Stored under session:<token>; also the response body"""
    token: str
    expires: str
