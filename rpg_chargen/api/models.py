"""Pydantic request/response models for API endpoints."""

from typing import Any

from pydantic import BaseModel


class CreateCharacter(BaseModel):
    name: str
    props: dict[str, Any] = {}


class UpdateProps(BaseModel):
    props: dict[str, Any]
