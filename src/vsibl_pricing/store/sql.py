"""
SQLAlchemy pricing store.

Tables:
  pricing_configs             one row; active_version_id is the live pointer
  pricing_versions            version_number unique per config
  pricing_factors             child rows of a version, ``position`` keeps declaration order
  pricing_time_slots          child rows of a version, ``position`` keeps declaration order
  campaigns                   minimal campaign row
  campaign_pricing_snapshots  one per campaign, breakdown as JSON

Decimal amounts are stored as their exact string form so that a price read
back is bit-identical to the price written, on any backend.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    TypeDecorator,
    UniqueConstraint,
    create_engine,
    func,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
    selectinload,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool

from vsibl_pricing.config.factor import Factor
from vsibl_pricing.config.time_slot import TimeSlot
from vsibl_pricing.errors import (
    CampaignNotFoundError,
    SnapshotExistsError,
    VersionNotFoundError,
    VersionNumberConflictError,
)
from vsibl_pricing.models.records import (
    CampaignPricingSnapshot,
    CampaignRecord,
    PricingConfigRecord,
    PricingVersion,
)
from vsibl_pricing.models.results import PricingBreakdownStep

logger = logging.getLogger(__name__)


class DecimalText(TypeDecorator):
    """Exact decimal stored as text."""

    impl = String(64)
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Optional[str]:
        if value is None:
            return None
        return str(Decimal(value))

    def process_result_value(self, value: Any, dialect) -> Optional[Decimal]:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


# ═══════════════════════════════════════════════════════════════════════════
# ORM tables
# ═══════════════════════════════════════════════════════════════════════════

class PricingConfigRow(Base):
    __tablename__ = "pricing_configs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    # Plain column rather than a FK: versions already reference the config
    active_version_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False,
    )


class PricingVersionRow(Base):
    __tablename__ = "pricing_versions"
    __table_args__ = (
        UniqueConstraint("config_id", "version_number", name="uq_pricing_version_number"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    config_id: Mapped[str] = mapped_column(ForeignKey("pricing_configs.id"), nullable=False, index=True)
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    base_price: Mapped[Decimal] = mapped_column(DecimalText, nullable=False)
    token_usd_price: Mapped[Decimal] = mapped_column(DecimalText, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="DRAFT")
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    factors: Mapped[list["PricingFactorRow"]] = relationship(
        back_populates="version",
        cascade="all, delete-orphan",
        order_by="PricingFactorRow.position",
    )
    time_slots: Mapped[list["PricingTimeSlotRow"]] = relationship(
        back_populates="version",
        cascade="all, delete-orphan",
        order_by="PricingTimeSlotRow.position",
    )


class PricingFactorRow(Base):
    __tablename__ = "pricing_factors"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    version_id: Mapped[str] = mapped_column(ForeignKey("pricing_versions.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)
    value: Mapped[Decimal] = mapped_column(DecimalText, nullable=False)
    # Serialized KeyedLookup / SlabLookup, decimals as strings
    lookup: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    version: Mapped[PricingVersionRow] = relationship(back_populates="factors")


class PricingTimeSlotRow(Base):
    __tablename__ = "pricing_time_slots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    version_id: Mapped[str] = mapped_column(ForeignKey("pricing_versions.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    multiplier: Mapped[Decimal] = mapped_column(DecimalText, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)

    version: Mapped[PricingVersionRow] = relationship(back_populates="time_slots")


class CampaignRow(Base):
    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    budget: Mapped[Decimal] = mapped_column(DecimalText, nullable=False)
    pricing_version_id: Mapped[str] = mapped_column(ForeignKey("pricing_versions.id"), nullable=False)
    playback_priority: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class CampaignPricingSnapshotRow(Base):
    __tablename__ = "campaign_pricing_snapshots"

    campaign_id: Mapped[str] = mapped_column(ForeignKey("campaigns.id"), primary_key=True)
    pricing_version_id: Mapped[str] = mapped_column(ForeignKey("pricing_versions.id"), nullable=False)
    base_price: Mapped[Decimal] = mapped_column(DecimalText, nullable=False)
    final_price: Mapped[Decimal] = mapped_column(DecimalText, nullable=False)
    breakdown: Mapped[list] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ═══════════════════════════════════════════════════════════════════════════
# Row ↔ model mapping
# ═══════════════════════════════════════════════════════════════════════════

def _factor_row(factor: Factor, position: int) -> PricingFactorRow:
    return PricingFactorRow(
        id=factor.id,
        position=position,
        name=factor.name,
        key=factor.key,
        type=factor.type.value,
        enabled=factor.enabled,
        priority=factor.priority,
        value=factor.value,
        lookup=factor.lookup.model_dump(mode="json") if factor.lookup else None,
    )


def _time_slot_row(slot: TimeSlot, position: int) -> PricingTimeSlotRow:
    return PricingTimeSlotRow(
        id=slot.id,
        position=position,
        name=slot.name,
        start_time=slot.start_time,
        end_time=slot.end_time,
        multiplier=slot.multiplier,
        priority=slot.priority,
    )


def _version_model(row: PricingVersionRow) -> PricingVersion:
    return PricingVersion(
        id=row.id,
        config_id=row.config_id,
        version_number=row.version_number,
        base_price=row.base_price,
        token_usd_price=row.token_usd_price,
        status=row.status,
        published_at=row.published_at,
        created_at=row.created_at,
        factors=[
            Factor(
                id=f.id,
                name=f.name,
                key=f.key,
                type=f.type,
                enabled=f.enabled,
                priority=f.priority,
                value=f.value,
                lookup=f.lookup,
            )
            for f in row.factors
        ],
        time_slots=[
            TimeSlot(
                id=ts.id,
                name=ts.name,
                start_time=ts.start_time,
                end_time=ts.end_time,
                multiplier=ts.multiplier,
                priority=ts.priority,
            )
            for ts in row.time_slots
        ],
    )


def _config_model(row: PricingConfigRow) -> PricingConfigRecord:
    return PricingConfigRecord(
        id=row.id,
        name=row.name,
        description=row.description,
        active_version_id=row.active_version_id,
        created_at=row.created_at,
    )


def _campaign_model(row: CampaignRow) -> CampaignRecord:
    return CampaignRecord(
        id=row.id,
        name=row.name,
        user_id=row.user_id,
        status=row.status,
        budget=row.budget,
        pricing_version_id=row.pricing_version_id,
        playback_priority=row.playback_priority,
        start_date=row.start_date,
        end_date=row.end_date,
        created_at=row.created_at,
    )


def _snapshot_model(row: CampaignPricingSnapshotRow) -> CampaignPricingSnapshot:
    return CampaignPricingSnapshot(
        campaign_id=row.campaign_id,
        pricing_version_id=row.pricing_version_id,
        base_price=row.base_price,
        final_price=row.final_price,
        breakdown=[PricingBreakdownStep.model_validate(step) for step in row.breakdown],
        created_at=row.created_at,
    )


# ═══════════════════════════════════════════════════════════════════════════
# Repository & store
# ═══════════════════════════════════════════════════════════════════════════

class SqlPricingRepository:
    """Repository bound to one SQLAlchemy session (one transaction)."""

    def __init__(self, session: Session):
        self.session = session

    # ==================== Pricing Config ====================

    def get_config(self) -> PricingConfigRecord | None:
        row = self.session.scalars(
            select(PricingConfigRow).order_by(PricingConfigRow.created_at, PricingConfigRow.id).limit(1)
        ).first()
        return _config_model(row) if row else None

    def add_config(self, config: PricingConfigRecord) -> None:
        self.session.add(
            PricingConfigRow(
                id=config.id,
                name=config.name,
                description=config.description,
                active_version_id=config.active_version_id,
                created_at=config.created_at,
            )
        )
        self.session.flush()

    def set_active_version(self, config_id: str, version_id: str) -> None:
        row = self.session.get(PricingConfigRow, config_id)
        if row is None:
            raise LookupError(f"Pricing config {config_id} not found")
        row.active_version_id = version_id
        self.session.flush()

    # ==================== Versions ====================

    def _version_query(self):
        return select(PricingVersionRow).options(
            selectinload(PricingVersionRow.factors),
            selectinload(PricingVersionRow.time_slots),
        )

    def get_version(self, version_id: str) -> PricingVersion | None:
        row = self.session.scalars(
            self._version_query().where(PricingVersionRow.id == version_id)
        ).first()
        return _version_model(row) if row else None

    def get_version_by_number(self, config_id: str, version_number: int) -> PricingVersion | None:
        row = self.session.scalars(
            self._version_query().where(
                PricingVersionRow.config_id == config_id,
                PricingVersionRow.version_number == version_number,
            )
        ).first()
        return _version_model(row) if row else None

    def list_versions(self, config_id: str) -> list[PricingVersion]:
        rows = self.session.scalars(
            self._version_query()
            .where(PricingVersionRow.config_id == config_id)
            .order_by(PricingVersionRow.version_number)
        ).all()
        return [_version_model(row) for row in rows]

    def max_version_number(self, config_id: str) -> int:
        value = self.session.scalar(
            select(func.max(PricingVersionRow.version_number)).where(
                PricingVersionRow.config_id == config_id
            )
        )
        return value or 0

    def add_version(self, version: PricingVersion) -> None:
        row = PricingVersionRow(
            id=version.id,
            config_id=version.config_id,
            version_number=version.version_number,
            base_price=version.base_price,
            token_usd_price=version.token_usd_price,
            status=version.status.value,
            published_at=version.published_at,
            created_at=version.created_at,
            factors=[_factor_row(f, i) for i, f in enumerate(version.factors)],
            time_slots=[_time_slot_row(ts, i) for i, ts in enumerate(version.time_slots)],
        )
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise VersionNumberConflictError(
                f"Pricing version number {version.version_number} is already taken"
            ) from exc

    def save_version(self, version: PricingVersion) -> None:
        row = self.session.scalars(
            self._version_query().where(PricingVersionRow.id == version.id)
        ).first()
        if row is None:
            raise VersionNotFoundError(f"Pricing version {version.id} not found")
        row.base_price = version.base_price
        row.token_usd_price = version.token_usd_price
        row.status = version.status.value
        row.published_at = version.published_at
        # Children are replaced wholesale; orphans are deleted before the re-insert
        row.factors.clear()
        row.time_slots.clear()
        self.session.flush()
        row.factors.extend(_factor_row(f, i) for i, f in enumerate(version.factors))
        row.time_slots.extend(_time_slot_row(ts, i) for i, ts in enumerate(version.time_slots))
        self.session.flush()

    # ==================== Campaigns & Snapshots ====================

    def add_campaign(self, campaign: CampaignRecord) -> None:
        self.session.add(
            CampaignRow(
                id=campaign.id,
                name=campaign.name,
                user_id=campaign.user_id,
                status=campaign.status,
                budget=campaign.budget,
                pricing_version_id=campaign.pricing_version_id,
                playback_priority=campaign.playback_priority,
                start_date=campaign.start_date,
                end_date=campaign.end_date,
                created_at=campaign.created_at,
            )
        )
        self.session.flush()

    def get_campaign(self, campaign_id: str) -> CampaignRecord | None:
        row = self.session.get(CampaignRow, campaign_id)
        return _campaign_model(row) if row else None

    def add_snapshot(self, snapshot: CampaignPricingSnapshot) -> None:
        # SQLite does not enforce the FK unless asked to
        if self.session.get(CampaignRow, snapshot.campaign_id) is None:
            raise CampaignNotFoundError(f"Campaign {snapshot.campaign_id} not found")
        if self.session.get(CampaignPricingSnapshotRow, snapshot.campaign_id) is not None:
            raise SnapshotExistsError(f"Campaign {snapshot.campaign_id} already has a pricing snapshot")
        self.session.add(
            CampaignPricingSnapshotRow(
                campaign_id=snapshot.campaign_id,
                pricing_version_id=snapshot.pricing_version_id,
                base_price=snapshot.base_price,
                final_price=snapshot.final_price,
                breakdown=[step.model_dump(mode="json") for step in snapshot.breakdown],
                created_at=snapshot.created_at,
            )
        )
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise SnapshotExistsError(
                f"Campaign {snapshot.campaign_id} already has a pricing snapshot"
            ) from exc

    def get_snapshot(self, campaign_id: str) -> CampaignPricingSnapshot | None:
        row = self.session.get(CampaignPricingSnapshotRow, campaign_id)
        return _snapshot_model(row) if row else None


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across sessions."""
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


class SqlPricingStore:
    """Store backed by a SQLAlchemy engine.  One session per transaction."""

    def __init__(self, engine: Engine, create_tables: bool = True):
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)
        if create_tables:
            Base.metadata.create_all(engine)
            logger.info(f"Pricing tables ensured on {engine.url.render_as_string(hide_password=True)}")

    @classmethod
    def from_url(cls, database_url: str, echo: bool = False) -> SqlPricingStore:
        return cls(build_engine(database_url, echo=echo))

    @contextmanager
    def transaction(self) -> Iterator[SqlPricingRepository]:
        with self._sessions.begin() as session:
            yield SqlPricingRepository(session)
