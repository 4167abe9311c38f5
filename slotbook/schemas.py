"""
Pydantic schemas for external input and output.

Stored availability blobs, data files and HTTP bodies are validated here and
converted into domain objects before any slot math runs.
"""

from datetime import datetime
from typing import Any, List, Mapping, Optional

import pendulum
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .domain.exceptions import ValidationError
from .domain.models import (
    Booking,
    BookingStatus,
    BreakInterval,
    DaySchedule,
    ProviderSettings,
    Service,
    SyncStatus,
    TimeOfDay,
    Weekday,
    WeeklySchedule,
)

DEFAULT_TIMEZONE = "Europe/Belgrade"


def _describe(exc: PydanticValidationError) -> str:
    """Flatten pydantic errors into a single readable message."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)


def validate_timezone(value: str) -> str:
    """Ensure ``value`` names a known IANA timezone."""
    try:
        pendulum.timezone(value)
    except (ValueError, KeyError):
        raise ValueError(f"Unknown timezone: '{value}'") from None
    return value


def _require_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("datetime must include a timezone offset")
    return value


class CamelModel(BaseModel):
    """Base model accepting both the camelCase wire names and field names."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TimeWindowSchema(CamelModel):
    """A ``{"start": "HH:MM", "end": "HH:MM"}`` pair."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def validate_time_of_day(cls, value: str) -> str:
        TimeOfDay.parse(value)
        return value


class DayScheduleSchema(CamelModel):
    is_enabled: bool = Field(alias="isEnabled")
    working_hours: TimeWindowSchema = Field(alias="workingHours")
    breaks: List[TimeWindowSchema] = Field(default_factory=list)

    def to_domain(self) -> DaySchedule:
        return DaySchedule(
            enabled=self.is_enabled,
            work_start=TimeOfDay.parse(self.working_hours.start),
            work_end=TimeOfDay.parse(self.working_hours.end),
            breaks=tuple(
                BreakInterval(start=TimeOfDay.parse(b.start), end=TimeOfDay.parse(b.end))
                for b in self.breaks
            ),
        )

    @model_validator(mode="after")
    def validate_day(self) -> "DayScheduleSchema":
        """Run the domain invariants so errors surface with a field location."""
        self.to_domain()
        return self


class WeekScheduleSchema(CamelModel):
    monday: DayScheduleSchema
    tuesday: DayScheduleSchema
    wednesday: DayScheduleSchema
    thursday: DayScheduleSchema
    friday: DayScheduleSchema
    saturday: DayScheduleSchema
    sunday: DayScheduleSchema

    def to_domain(self) -> WeeklySchedule:
        return WeeklySchedule.from_mapping(
            {day: getattr(self, day.key).to_domain() for day in Weekday}
        )


class AvailabilitySettingsSchema(CamelModel):
    """Availability settings blob stored on a provider profile."""
    week_schedule: WeekScheduleSchema = Field(alias="weekSchedule")
    buffer_time: int = Field(default=0, ge=0, le=120, alias="bufferTime")
    advance_booking_days: int = Field(default=365, ge=1, le=365, alias="advanceBookingDays")
    minimum_notice_hours: int = Field(default=0, ge=0, le=168, alias="minimumNoticeHours")
    timezone: str = DEFAULT_TIMEZONE

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        return validate_timezone(value)

    def to_domain(self, provider_id: str) -> ProviderSettings:
        return ProviderSettings(
            provider_id=provider_id,
            schedule=self.week_schedule.to_domain(),
            timezone=self.timezone,
            buffer_minutes=self.buffer_time,
            minimum_notice_hours=self.minimum_notice_hours,
            advance_booking_days=self.advance_booking_days,
        )


class ProviderRecord(CamelModel):
    id: str = Field(min_length=1)
    business_name: str = Field(default="", alias="businessName")
    availability: Optional[AvailabilitySettingsSchema] = None


class ServiceRecord(CamelModel):
    id: str = Field(min_length=1)
    provider_id: str = Field(alias="providerId", min_length=1)
    name: str
    duration_minutes: int = Field(alias="durationMinutes", gt=0, le=480)
    is_active: bool = Field(default=True, alias="isActive")

    def to_domain(self) -> Service:
        return Service(
            id=self.id,
            provider_id=self.provider_id,
            name=self.name,
            duration_minutes=self.duration_minutes,
            is_active=self.is_active,
        )


class BookingRecord(CamelModel):
    id: str = Field(min_length=1)
    provider_id: str = Field(alias="providerId", min_length=1)
    service_id: str = Field(alias="serviceId", min_length=1)
    client_id: str = Field(alias="clientId", min_length=1)
    start: datetime
    end: datetime
    status: BookingStatus = BookingStatus.CONFIRMED
    note: Optional[str] = None
    sync_status: SyncStatus = Field(default=SyncStatus.PENDING, alias="syncStatus")

    @field_validator("start", "end")
    @classmethod
    def validate_aware(cls, value: datetime) -> datetime:
        return _require_aware(value)

    def to_domain(self) -> Booking:
        return Booking(
            id=self.id,
            provider_id=self.provider_id,
            service_id=self.service_id,
            client_id=self.client_id,
            start=self.start,
            end=self.end,
            status=self.status,
            note=self.note,
            sync_status=self.sync_status,
        )


class BookingCreate(CamelModel):
    """Body of ``POST /bookings``."""
    provider_id: str = Field(alias="providerId", min_length=1)
    service_id: str = Field(alias="serviceId", min_length=1)
    client_id: str = Field(alias="clientId", min_length=1)
    start: datetime
    note: Optional[str] = Field(default=None, max_length=500)

    @field_validator("start")
    @classmethod
    def validate_aware(cls, value: datetime) -> datetime:
        return _require_aware(value)


class BookingAction(CamelModel):
    """Body of ``PATCH /bookings/{id}``."""
    action: str


class SlotPayload(BaseModel):
    start: str
    end: str
    startTime: str
    endTime: str
    available: bool = True


class SlotsResponse(BaseModel):
    slots: List[SlotPayload]


class BookingPublic(BaseModel):
    id: str
    providerId: str
    serviceId: str
    clientId: str
    start: str
    end: str
    status: str
    note: Optional[str] = None
    syncStatus: str


class BookingResponse(BaseModel):
    booking: BookingPublic


class BookingListResponse(BaseModel):
    bookings: List[BookingPublic]


class MessageResponse(BaseModel):
    message: str


def parse_availability_settings(provider_id: str, data: Mapping[str, Any]) -> ProviderSettings:
    """
    Validate a raw availability blob and convert it to ``ProviderSettings``.

    Raises:
        ValidationError: If the blob does not match the schema
    """
    try:
        schema = AvailabilitySettingsSchema.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(
            f"Invalid availability settings for provider '{provider_id}': {_describe(exc)}"
        ) from exc
    return schema.to_domain(provider_id)


def parse_record(model: type[BaseModel], data: Mapping[str, Any]) -> BaseModel:
    """Validate ``data`` against ``model``, raising the domain ValidationError."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__}: {_describe(exc)}") from exc
