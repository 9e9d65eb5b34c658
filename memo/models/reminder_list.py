from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from memo.models.notification import NotificationSettingsModel
from memo.models.reminder import ReminderModel


class ReminderListModel(BaseModel):
    # Stored as camelCase, shared with the widget renderer
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    # Immutable fields
    created_date: datetime = Field(
        default_factory=lambda: datetime.now(UTC), frozen=True
    )
    id: UUID = Field(default_factory=uuid4, frozen=True)
    # Editable fields
    name: str
    notification_settings: NotificationSettingsModel | None = None
    reminders: list[ReminderModel] = []

    @field_validator("name")
    @classmethod
    def _validate_name(cls, name: str) -> str:
        name = name.strip()
        if not name:
            raise ValueError("Name must not be empty")
        return name

    def incomplete_reminders(self) -> list[ReminderModel]:
        """
        Reminders not completed yet, in display order.
        """
        return [reminder for reminder in self.reminders if not reminder.is_completed]

    def completed_reminders(self) -> list[ReminderModel]:
        return [reminder for reminder in self.reminders if reminder.is_completed]

    def reminder(self, reminder_id: UUID) -> ReminderModel | None:
        return next(
            (reminder for reminder in self.reminders if reminder.id == reminder_id),
            None,
        )


class ListCreateModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    name: str
    notification_settings: NotificationSettingsModel | None = None


class ListUpdateModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    clear_notification_settings: bool = False
    name: str | None = None
    notification_settings: NotificationSettingsModel | None = None
