"""Pydantic request models for the warehouse HTTP service."""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .catalog import VEGETABLES, normalize_vegetable


ALLOWED_VEGETABLES = [v.value for v in VEGETABLES]


class OrderRequest(BaseModel):
    items: List[str] = Field(..., min_length=1, description="One entry per unit, e.g. ['Tomato', 'Tomato'].")
    model_config = ConfigDict(
        json_schema_extra={"example": {"items": ["Tomato", "Tomato", "Corn"]}}
    )

    @field_validator("items")
    @classmethod
    def validate_items(cls, value: List[str]) -> List[str]:
        out: List[str] = []
        for item in value:
            veg = normalize_vegetable(item)
            if veg is None:
                raise ValueError(f"items must be drawn from {ALLOWED_VEGETABLES}")
            out.append(veg.value)
        return out


class ChatMessageRequest(BaseModel):
    message: str = Field(..., description="Free-text order or confirmation", min_length=1, max_length=4000)


class ConfirmationRequest(BaseModel):
    decision: Literal["PROCEED", "SCRATCH"] = Field(..., description="How to resolve the pending shortage.")


class ArrivalRequest(BaseModel):
    agent_id: Optional[str] = Field(
        default=None,
        description="Agent that reached its target; may be omitted when a single agent is active.",
    )


class WarehouseCommandRequest(BaseModel):
    action: str = Field(..., description="One of: order, chat, confirm, arrive, home, settle, reset, init.")
    agent_id: Optional[str] = Field(default=None, description="Agent for arrive/home.")
    items: Optional[List[str]] = Field(default=None, description="Unit list for order.")
    text: Optional[str] = Field(default=None, description="Utterance for chat.")
    decision: Optional[str] = Field(default=None, description="PROCEED or SCRATCH for confirm.")
    max_steps: Optional[int] = Field(default=None, ge=1, description="Arrival budget for settle.")
