"""Pydantic payloads for computers and components.

The ``*Create`` models are the persistence-level validation gate: CRUD
helpers push every new record through them before it touches the session.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

SERIAL_MAX = 20
ORDER_MAX = 20


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class ComputerCreate(BaseModel):
    serial_number: str = Field(min_length=1, max_length=SERIAL_MAX)
    computer_model_id: int
    computer_condition_id: Optional[int] = None
    run_status_id: Optional[int] = None
    order_number: Optional[str] = Field(default=None, max_length=ORDER_MAX)
    history: Optional[str] = None

    @field_validator("serial_number", mode="before")
    @classmethod
    def strip_serial(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("order_number", "history", mode="before")
    @classmethod
    def blank_optional(cls, value: object) -> object:
        return _blank_to_none(value)


class ComponentCreate(BaseModel):
    component_type_id: int
    computer_id: Optional[int] = None
    component_condition_id: Optional[int] = None
    serial_number: Optional[str] = Field(default=None, max_length=SERIAL_MAX)
    order_number: Optional[str] = Field(default=None, max_length=ORDER_MAX)
    description: Optional[str] = None

    @field_validator("serial_number", "order_number", "description", mode="before")
    @classmethod
    def blank_optional(cls, value: object) -> object:
        return _blank_to_none(value)


class ComputerOut(BaseModel):
    id: int
    serial_number: str
    order_number: Optional[str] = None
    history: Optional[str] = None
    model_name: Optional[str] = None
    condition_name: Optional[str] = None
    run_status_name: Optional[str] = None
    created_at: str

    # ``model_name`` is a field here, not pydantic's namespace.
    model_config = {"from_attributes": True, "protected_namespaces": ()}


class ComponentOut(BaseModel):
    id: int
    type_name: Optional[str] = None
    serial_number: Optional[str] = None
    order_number: Optional[str] = None
    description: Optional[str] = None
    condition_value: Optional[str] = None
    computer_serial_number: Optional[str] = None
    is_spare: bool
    created_at: str

    model_config = {"from_attributes": True}


def describe_validation_error(exc) -> str:
    """Flatten a pydantic ``ValidationError`` into ``field: message`` pairs."""

    parts = []
    for error in exc.errors():
        field = ".".join(str(piece) for piece in error.get("loc", ())) or "record"
        parts.append(f"{field}: {error.get('msg', 'invalid value')}")
    return ", ".join(parts)
