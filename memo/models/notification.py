from datetime import datetime, time
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

ALL_WEEKDAYS = frozenset(range(1, 8))
"""Weekday numbers, 1 is Sunday."""


class NotificationTypeEnum(str, Enum):
    LIST_DIGEST = "list_reminder"
    """A single notification asking to check the list."""
    PER_ITEM = "each_item"
    """A notification for each incomplete reminder."""


class ScheduleTypeEnum(str, Enum):
    DAILY = "daily"
    """Every day."""
    WEEKDAYS = "weekdays"
    """Only on the selected weekdays."""


class NotificationSettingsModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    daily_time: time
    is_enabled: bool
    notification_type: NotificationTypeEnum
    schedule_type: ScheduleTypeEnum = ScheduleTypeEnum.DAILY
    selected_weekdays: set[int] = Field(default_factory=lambda: set(ALL_WEEKDAYS))

    @field_validator("daily_time", mode="before")
    @classmethod
    def _validate_daily_time_input(cls, value: Any) -> Any:
        """
        Accept a full date and time, only the time of day is kept.
        """
        if isinstance(value, datetime):
            return value.time()
        if isinstance(value, str) and "T" in value:
            return datetime.fromisoformat(value).time()
        return value

    @field_validator("daily_time")
    @classmethod
    def _validate_daily_time(cls, daily_time: time) -> time:
        return daily_time.replace(second=0, microsecond=0, tzinfo=None)

    @field_validator("selected_weekdays")
    @classmethod
    def _validate_selected_weekdays(cls, selected_weekdays: set[int]) -> set[int]:
        """
        No selected day means every day.

        Values are not range checked, they are forwarded as is to the gateway.
        """
        if not selected_weekdays:
            return set(ALL_WEEKDAYS)
        return selected_weekdays

    @field_serializer("selected_weekdays")
    def _serialize_selected_weekdays(self, selected_weekdays: set[int]) -> list[int]:
        return sorted(selected_weekdays)


class TriggerModel(BaseModel, frozen=True):
    body: str
    hour: int = Field(ge=0, le=23)
    identifier: str
    minute: int = Field(ge=0, le=59)
    repeats: bool = True
    second: int = Field(default=0, ge=0, le=59)
    title: str
    weekday: int | None = None


class ReconcileResultModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    authorized: bool = True
    canceled_count: int = 0
    scheduled_count: int = 0
    skipped_count: int = 0
