"""
Pydantic schemas for API request/response models.
"""

from typing import Any

from pydantic import BaseModel, Field

from services.models import Bot, Feature, Tag


class APIResponse(BaseModel):
    """The envelope every mutating endpoint answers with."""

    done: bool
    reason: str | None = None
    context: str | None = None

    @classmethod
    def ok(cls, reason: str | None = None, context: str | None = None) -> "APIResponse":
        return cls(done=True, reason=reason, context=context)

    @classmethod
    def err_small(cls, reason: str, context: str | None = None) -> "APIResponse":
        return cls(done=False, reason=reason, context=context)


class PackCreatedResponse(APIResponse):
    id: str


class ImportRequest(BaseModel):
    """Body of an import; only the Custom source reads ``ext_data``."""

    ext_data: dict[str, Any] | None = None


class ImportSourceListItem(BaseModel):
    id: str
    name: str


class ImportSourceList(BaseModel):
    sources: list[ImportSourceListItem]


class BotSettingsContext(BaseModel):
    tags: list[Tag] = Field(default_factory=list)
    features: list[Feature] = Field(default_factory=list)


class BotSettingsResponse(BaseModel):
    bot: Bot
    context: BotSettingsContext


class HealthResponse(BaseModel):
    status: str
    data: dict[str, Any] = Field(default_factory=dict)
