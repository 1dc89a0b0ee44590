"""Factor catalog — multiplicative and additive pricing rules.

A factor's effective value is either its scalar ``value`` or an override
picked from its ``lookup`` by the campaign field named in ``key``:

  - **keyed**: exact match on the field value (``{"HIGH": 1.5, "PREMIUM": 2}``)
  - **slab**:  first ``min ≤ x ≤ max`` band on a numeric field
               (``5–10 screens → ×1.2``)

Either way a miss falls back to ``value``.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator


class FactorType(str, Enum):
    MULTIPLIER = "MULTIPLIER"
    ADDITIVE = "ADDITIVE"


class KeyedLookup(BaseModel):
    """Override values keyed by the string form of a campaign field."""

    kind: Literal["keyed"] = "keyed"
    values: dict[str, Decimal] = Field(default_factory=dict)


class SlabBand(BaseModel):
    """One range band.  ``max=None`` leaves the band open upwards."""

    min: Decimal
    max: Decimal | None = None
    value: Decimal

    def contains(self, x: Decimal) -> bool:
        if self.max is None:
            return x >= self.min
        return self.min <= x <= self.max


class SlabLookup(BaseModel):
    """Range-matched overrides for numeric campaign fields.  First matching band wins."""

    kind: Literal["slab"] = "slab"
    bands: list[SlabBand] = Field(default_factory=list)


FactorLookup = Annotated[Union[KeyedLookup, SlabLookup], Field(discriminator="kind")]


class Factor(BaseModel):
    """One pricing rule attached to a version.

    Priority runs 1–10 and higher numbers are applied first.  Range and sign
    rules are checked at authoring time by ``validate_config``.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(description="Display label, copied into the breakdown")
    key: str = Field(description="Stable identifier; names the campaign field used by ``lookup``")
    type: FactorType
    enabled: bool = True
    priority: int = Field(default=1)
    value: Decimal = Field(default=Decimal("1"), description="Scalar used when no lookup override applies")
    lookup: Optional[FactorLookup] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_config_map(cls, data: Any) -> Any:
        # {"config": {"HIGH": 1.5}} from older admin payloads becomes a keyed lookup
        if not isinstance(data, dict) or "config" not in data:
            return data
        data = dict(data)
        legacy = data.pop("config")
        if data.get("lookup") is None and legacy:
            if isinstance(legacy, dict) and "kind" in legacy:
                data["lookup"] = legacy
            else:
                data["lookup"] = {"kind": "keyed", "values": legacy}
        return data
