from sqlalchemy import Column, Integer, Float, DateTime, Text, JSON, Uuid, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from core.database import Base
from enum import Enum
import uuid


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class MetricType(str, Enum):
    SLEEP = "SLEEP"
    SLEEP_QUALITY = "SLEEP_QUALITY"
    HRV = "HRV"
    RHR = "RHR"
    WEIGHT = "WEIGHT"
    STEPS = "STEPS"
    CALORIES = "CALORIES"
    HYDRATION = "HYDRATION"
    MOOD = "MOOD"
    STRESS = "STRESS"
    SORENESS = "SORENESS"
    HEART_RATE = "HEART_RATE"
    BODY_FAT = "BODY_FAT"
    ACTIVE_MINUTES = "ACTIVE_MINUTES"
    TEMP = "TEMP"
    PRESSURE = "PRESSURE"


class IntegrationProvider(str, Enum):
    VITAL = "VITAL"
    TERRA = "TERRA"
    APPLE_HEALTH = "APPLE_HEALTH"
    POLAR = "POLAR"
    GOOGLEFIT = "GOOGLEFIT"
    GARMIN = "GARMIN"


class IntegrationStatus(str, Enum):
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELED = "CANCELED"


class SubscriptionPlan(str, Enum):
    FREE_FINDER = "FREE_FINDER"
    MONTHLY = "MONTHLY"


class Metric(Base):
    """
    A single measurement in the unified schema.

    Written once by a normalizer (or a manual log) and never mutated.
    (user_id, type, timestamp) is the natural key; redeliveries of the same
    vendor event collapse onto one row.
    """

    __tablename__ = "metric"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    type = Column(Text, nullable=False)  # MetricType value
    value = Column(Float, nullable=False)
    unit = Column(Text, nullable=False)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "type", "timestamp", name="uq_metric_user_type_timestamp"),
        Index("ix_metric_user_timestamp", "user_id", "timestamp"),
    )


class Workout(Base):
    """
    A training session, either logged manually or synced from a wearable.

    volume_load, when present, is the sum of reps * weight over sets.
    """

    __tablename__ = "workout"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    activity_type = Column(Text, nullable=False)
    duration_min = Column(Integer, nullable=True)
    sets = Column(JSONType, nullable=True)  # [{"exercise", "reps", "weight"}, ...]
    volume_load = Column(Float, nullable=True)
    rpe = Column(Float, nullable=True)  # 1-10
    meta = Column("metadata", JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "activity_type", "timestamp", name="uq_workout_user_activity_timestamp"),
        Index("ix_workout_user_timestamp", "user_id", "timestamp"),
    )


class Integration(Base):
    """
    A user's connection to a wearable data provider.

    One row per (user_id, provider). Deauthorization flips status to
    DISCONNECTED; rows are only deleted by an explicit user action.
    """

    __tablename__ = "integration"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, index=True)
    provider = Column(Text, nullable=False)  # IntegrationProvider value
    provider_user_id = Column(Text, nullable=True)  # vendor-side user id
    status = Column(Text, nullable=False, default=IntegrationStatus.CONNECTED.value)
    meta = Column("metadata", JSONType, nullable=True)
    connected_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_integration_user_provider"),
    )


class Subscription(Base):
    """
    Stripe subscription mirror.

    Stripe is the billing source of truth; this table stores a minimal, queryable
    mirror for entitlement decisions.
    """

    __tablename__ = "subscriptions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Text, nullable=False, unique=True, index=True)

    stripe_customer_id = Column(Text, nullable=True, index=True)
    stripe_subscription_id = Column(Text, nullable=True, index=True)

    status = Column(Text, nullable=False, default=SubscriptionStatus.ACTIVE.value)
    plan = Column(Text, nullable=False, default=SubscriptionPlan.MONTHLY.value)
    current_period_end = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class StripeEvent(Base):
    """
    Processed Stripe events (idempotency guard).

    Stripe retries webhook deliveries; storing event ids makes webhook handling safe.
    """

    __tablename__ = "stripe_events"

    event_id = Column(Text, primary_key=True)  # Stripe event id (e.g., evt_*)
    event_type = Column(Text, nullable=False, index=True)
    stripe_created = Column(Integer, nullable=True)

    received_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
