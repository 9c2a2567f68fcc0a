"""Esquemas del relay."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class UserIdRequest(BaseModel):
    username: str = Field(default="", description="Username a resolver (se hace strip).")

    @field_validator("username", mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> str:
        if not value:
            return ""
        return str(value).strip()


class UserIdResponse(BaseModel):
    id: Any


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    ok: bool = True
    service: str
    version: str
