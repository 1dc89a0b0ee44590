"""Exception taxonomy for the pricing core.

Pure functions (engine, validator) never raise these; they return values.
Services raise them so the web layer can map each to a response code:

    ConfigNotFoundError    → 404
    VersionNotFoundError   → 404
    ValidationFailedError  → 400 (with the full ``errors`` list)
    ConfigIntegrityError   → 400/409 on the admin path
"""

from __future__ import annotations


class PricingError(Exception):
    """Base class for every pricing-core error."""


class ConfigNotFoundError(PricingError):
    """No active pricing configuration could be resolved."""

    def __init__(self, message: str = "No active pricing configuration found"):
        super().__init__(message)


class VersionNotFoundError(PricingError):
    """A referenced pricing version does not exist."""


class ValidationFailedError(PricingError):
    """Campaign input broke one or more business rules."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class UnknownTimeSlotError(ValidationFailedError):
    """Selected time-slot ids that the active version does not define."""

    def __init__(self, slot_ids: list[str], errors: list[str]):
        self.slot_ids = list(slot_ids)
        super().__init__(errors)


class ConfigIntegrityError(PricingError):
    """Rejected config authoring: invalid rules or a mutation of a published version."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class SnapshotExistsError(PricingError):
    """A pricing snapshot is already bound to this campaign."""


class CampaignNotFoundError(PricingError):
    """A snapshot was written for a campaign that does not exist."""


class VersionNumberConflictError(PricingError):
    """Another writer took this version number first."""
