from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CompareRequest(_Request):
    category: str
    criteria: dict[str, Any] = Field(default_factory=dict)
    skip_cache: bool = Field(default=False, alias="skipCache")


class RecommendationRequest(CompareRequest):
    use_ai: bool = Field(default=True, alias="useAi")


class ErrorResponse(BaseModel):
    errorCode: str
    message: str


class CacheInvalidateResponse(BaseModel):
    ok: bool
    cleared: int
    enabled: bool


class HealthResponse(BaseModel):
    ok: bool
    cache: str
    ai_configured: bool
