"""Minimal Pydantic models for the Cloud Storage bucket IAM API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class GcsBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ConditionPayload(GcsBaseModel):
    expression: str
    title: str | None = None
    description: str | None = None


class BindingPayload(GcsBaseModel):
    role: str
    members: list[str] = Field(default_factory=list[str])
    condition: ConditionPayload | None = None


class PolicyPayload(GcsBaseModel):
    kind: str | None = None
    resource_id: str | None = Field(default=None, alias="resourceId")
    version: int = 0
    etag: str | None = None
    bindings: list[BindingPayload] = Field(default_factory=list["BindingPayload"])


class ErrorDetail(GcsBaseModel):
    code: int | None = None
    message: str = ""


class ErrorResponse(GcsBaseModel):
    error: ErrorDetail
