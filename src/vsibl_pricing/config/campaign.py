"""Campaign booking parameters — the engine's per-request input."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SlotPriority(str, Enum):
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    PREMIUM = "PREMIUM"


class AdFormat(str, Enum):
    IMAGE = "IMAGE"
    GIF = "GIF"
    MP4 = "MP4"
    WEBM = "WEBM"


# Field names a factor ``key`` may reference.  Both the wire (camelCase) and
# attribute (snake_case) spellings resolve to the attribute.
CAMPAIGN_FIELD_ALIASES: dict[str, str] = {
    "screenCount": "screen_count",
    "impressionsPerDay": "impressions_per_day",
    "totalDays": "total_days",
    "slotPriority": "slot_priority",
    "adFormat": "ad_format",
    "screen_count": "screen_count",
    "impressions_per_day": "impressions_per_day",
    "total_days": "total_days",
    "slot_priority": "slot_priority",
    "ad_format": "ad_format",
}

NUMERIC_CAMPAIGN_FIELDS = frozenset({"screen_count", "impressions_per_day", "total_days"})

ENUM_CAMPAIGN_FIELDS: dict[str, type[Enum]] = {
    "slot_priority": SlotPriority,
    "ad_format": AdFormat,
}


def campaign_field_for_key(key: str) -> str | None:
    """Map a factor key to a ``CampaignInput`` attribute, or None if it names no field."""
    return CAMPAIGN_FIELD_ALIASES.get(key)


class CampaignInput(BaseModel):
    """Caller-supplied booking parameters.

    Counts are plain integers here; the business minimums (≥ 1) are checked by
    ``engine.validator.validate_campaign_input`` so that every violation can be
    reported at once instead of failing on the first.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    screen_count: int = Field(alias="screenCount", description="Screens the ad runs on")
    impressions_per_day: int = Field(alias="impressionsPerDay", description="Plays per screen per day")
    total_days: int = Field(alias="totalDays", description="Campaign duration (days)")
    slot_priority: SlotPriority = Field(default=SlotPriority.NORMAL, alias="slotPriority")
    ad_format: AdFormat = Field(default=AdFormat.IMAGE, alias="adFormat")
    time_slots: list[str] = Field(
        default_factory=list,
        alias="timeSlots",
        description="Ids of the selected time slots. Unknown ids are ignored by the engine.",
    )

    def field_value(self, key: str) -> int | str | None:
        """Value of the campaign field a factor key refers to (enum values as strings)."""
        attr = campaign_field_for_key(key)
        if attr is None:
            return None
        value = getattr(self, attr)
        if isinstance(value, Enum):
            return value.value
        return value
