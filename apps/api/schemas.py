"""
Pydantic schemas.

Vendor webhook payloads are validated into these typed models before any
normalization happens, so a malformed delivery fails fast with a
ValidationError instead of leaking missing values into the metric tables.
Every vendor field is optional unless it is needed to resolve the user or the
reporting timestamp; unknown fields are ignored.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator


def _parse_timestamp(value: Any) -> Any:
    """Accept ISO dates/datetimes (with or without 'Z'); naive values are UTC, aware ones converted to UTC."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return value


EventTimestamp = Annotated[datetime, BeforeValidator(_parse_timestamp)]


class VendorModel(BaseModel):
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)


# --- Vital ---------------------------------------------------------------

class VitalHRV(VendorModel):
    avg_hrv_rmssd: Optional[float] = None


class VitalHeartRate(VendorModel):
    avg_hr_bpm: Optional[float] = None


class VitalSleep(VendorModel):
    duration: Optional[float] = None  # seconds
    efficiency: Optional[float] = None
    hrv: Optional[VitalHRV] = None
    heart_rate: Optional[VitalHeartRate] = None


class VitalActivity(VendorModel):
    steps: Optional[float] = None


class VitalBody(VendorModel):
    weight_kg: Optional[float] = None
    body_fat_percentage: Optional[float] = None


class VitalSport(VendorModel):
    name: Optional[str] = None
    slug: Optional[str] = None


class VitalWorkout(VendorModel):
    id: Optional[Union[str, int]] = None
    start: EventTimestamp
    sport: Optional[Union[str, VitalSport]] = None
    duration: Optional[float] = None  # seconds
    calories: Optional[float] = None
    heart_rate: Optional[Any] = None

    @property
    def sport_name(self) -> Optional[str]:
        if isinstance(self.sport, VitalSport):
            return self.sport.name or self.sport.slug
        return self.sport


class VitalEnvelope(VendorModel):
    event_type: str
    user_id: Optional[str] = None
    client_user_id: Optional[str] = None
    provider: Optional[str] = None

    @model_validator(mode="after")
    def _require_user(self):
        if not (self.client_user_id or self.user_id):
            raise ValueError("event carries neither client_user_id nor user_id")
        return self

    @property
    def resolved_user_id(self) -> str:
        # Our own id (client_user_id) beats Vital's opaque one
        return self.client_user_id or self.user_id


class VitalSleepData(VendorModel):
    date: EventTimestamp
    sleep: Optional[VitalSleep] = None


class VitalActivityData(VendorModel):
    date: EventTimestamp
    activity: Optional[VitalActivity] = None


class VitalBodyData(VendorModel):
    date: EventTimestamp
    body: Optional[VitalBody] = None


class VitalWorkoutData(VendorModel):
    workout: Optional[VitalWorkout] = None


class VitalSleepEvent(VitalEnvelope):
    data: VitalSleepData


class VitalActivityEvent(VitalEnvelope):
    data: VitalActivityData


class VitalBodyEvent(VitalEnvelope):
    data: VitalBodyData


class VitalWorkoutEvent(VitalEnvelope):
    data: VitalWorkoutData = Field(default_factory=VitalWorkoutData)


class VitalConnectionEvent(VitalEnvelope):
    pass


# --- Terra ---------------------------------------------------------------

class TerraUser(VendorModel):
    user_id: Optional[str] = None
    reference_id: Optional[str] = None
    provider: Optional[str] = None

    @model_validator(mode="after")
    def _require_user(self):
        if not (self.reference_id or self.user_id):
            raise ValueError("user carries neither reference_id nor user_id")
        return self

    @property
    def resolved_user_id(self) -> str:
        return self.reference_id or self.user_id


class TerraMetadata(VendorModel):
    start_time: EventTimestamp
    end_time: Optional[EventTimestamp] = None
    summary_id: Optional[str] = None


class TerraDistanceData(VendorModel):
    steps: Optional[float] = None
    distance_meters: Optional[float] = None


class TerraCaloriesData(VendorModel):
    total_burned_calories: Optional[float] = None


class TerraActiveDurationsData(VendorModel):
    activity_seconds: Optional[float] = None


class TerraMeasurements(VendorModel):
    weight_kg: Optional[float] = None
    heart_rate_bpm: Optional[float] = None
    body_fat_percentage: Optional[float] = None


class TerraSleepDurationsData(VendorModel):
    asleep_duration_seconds: Optional[float] = None


class TerraActivityItem(VendorModel):
    metadata: TerraMetadata
    distance_data: Optional[TerraDistanceData] = None
    calories_data: Optional[TerraCaloriesData] = None
    active_durations_data: Optional[TerraActiveDurationsData] = None


class TerraBodyItem(VendorModel):
    metadata: TerraMetadata
    measurements: Optional[TerraMeasurements] = None


class TerraSleepItem(VendorModel):
    metadata: TerraMetadata
    sleep_durations_data: Optional[TerraSleepDurationsData] = None


class TerraWorkoutItem(VendorModel):
    metadata: TerraMetadata
    name: Optional[str] = None
    calories_data: Optional[TerraCaloriesData] = None
    distance_data: Optional[TerraDistanceData] = None


class TerraEnvelope(VendorModel):
    type: str
    user: TerraUser


class TerraAuthEvent(TerraEnvelope):
    status: Optional[str] = None


class TerraDeauthEvent(TerraEnvelope):
    pass


class TerraActivityEvent(TerraEnvelope):
    data: List[TerraActivityItem] = Field(default_factory=list)


class TerraBodyEvent(TerraEnvelope):
    data: List[TerraBodyItem] = Field(default_factory=list)


class TerraSleepEvent(TerraEnvelope):
    data: List[TerraSleepItem] = Field(default_factory=list)


class TerraWorkoutEvent(TerraEnvelope):
    data: List[TerraWorkoutItem] = Field(default_factory=list)


# --- Stripe --------------------------------------------------------------
# The signature is checked by the stripe library; these models only type the
# parts of the verified event body we read.

class StripeEventData(VendorModel):
    object: Dict[str, Any]


class StripeEventEnvelope(VendorModel):
    id: str
    type: str
    created: Optional[int] = None
    data: StripeEventData


class StripeCheckoutSession(VendorModel):
    id: Optional[str] = None
    client_reference_id: Optional[str] = None
    customer: Optional[str] = None
    subscription: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class StripeSubscriptionObject(VendorModel):
    id: str
    customer: Optional[str] = None
    status: Optional[str] = None
    current_period_end: Optional[int] = None
    items: Optional[Dict[str, Any]] = None


class StripeInvoice(VendorModel):
    id: Optional[str] = None
    customer: Optional[str] = None


# --- API -----------------------------------------------------------------

class IntegrationResponse(BaseModel):
    id: UUID
    provider: str
    provider_user_id: Optional[str] = None
    status: str
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="meta")
    connected_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConnectRequest(BaseModel):
    provider: Literal["VITAL", "TERRA", "POLAR", "GOOGLEFIT"]


class TerraConnectRequest(BaseModel):
    providers: Optional[List[str]] = None


class MorningLogRequest(BaseModel):
    """Subjective morning check-in. Scores are 1-5."""
    timestamp: EventTimestamp
    mood: Optional[float] = Field(default=None, ge=1, le=5)
    stress: Optional[float] = Field(default=None, ge=1, le=5)
    soreness: Optional[float] = Field(default=None, ge=1, le=5)
    sleep_quality: Optional[float] = Field(default=None, ge=1, le=5)
    sleep_hours: Optional[float] = Field(default=None, ge=0, le=24)


class DayLogRequest(BaseModel):
    """End-of-day log. Bounds match the plausibility ranges applied to vendor data."""
    timestamp: EventTimestamp
    hydration: Optional[float] = Field(default=None, ge=0, le=15)  # liters
    steps: Optional[float] = Field(default=None, ge=0, le=200_000)
    temperature: Optional[float] = Field(default=None, ge=-60, le=60)  # °C
    pressure: Optional[float] = Field(default=None, ge=850, le=1100)  # hPa


class LogResponse(BaseModel):
    success: bool
    count: int
    duplicates: int = 0


class WorkoutSetSchema(BaseModel):
    exercise: str
    reps: float = Field(ge=0)
    weight: float = Field(ge=0)


class WorkoutCreate(BaseModel):
    activity_type: str = Field(min_length=1)
    timestamp: EventTimestamp
    sets: Optional[List[WorkoutSetSchema]] = None
    rpe: Optional[float] = Field(default=None, ge=1, le=10)
    duration_min: Optional[int] = Field(default=None, ge=0)


class WorkoutResponse(BaseModel):
    id: UUID
    timestamp: datetime
    activity_type: str
    duration_min: Optional[int] = None
    sets: Optional[List[WorkoutSetSchema]] = None
    volume_load: Optional[float] = None
    rpe: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="meta")

    model_config = ConfigDict(from_attributes=True)


class WorkoutCreatedResponse(BaseModel):
    success: bool
    created: bool
    workout: WorkoutResponse


class WorkoutListResponse(BaseModel):
    workouts: List[WorkoutResponse]
