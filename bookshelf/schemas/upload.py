from pydantic import BaseModel, ConfigDict, Field


class CoverUploadRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    filename: str = Field(..., min_length=1)
    data: str = Field(..., min_length=1, description="data:<type>;base64,<payload>")


class CoverUploadResponse(BaseModel):
    key: str
    url: str
