"""Time-slot catalog entry — a named window with its own multiplier."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

from pydantic import BaseModel, Field


class TimeSlot(BaseModel):
    """A selectable time window.

    ``start_time``/``end_time`` are for display and selection only; the engine
    never compares them with a clock.  The caller picks slots by ``id``.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    start_time: str = Field(description="HH:mm")
    end_time: str = Field(description="HH:mm")
    multiplier: Decimal = Field(default=Decimal("1"))
    priority: int = Field(default=1, description="Higher priority is applied first")
