"""Pydantic models describing the classification service payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from classipy.domain.model import ClassificationStatus


class ReasonerBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ClassificationStatusResponse(ReasonerBaseModel):
    id: str | None = None
    status: ClassificationStatus
    error_message: str | None = Field(default=None, alias="errorMessage")
    developer_message: str | None = Field(default=None, alias="developerMessage")

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value
