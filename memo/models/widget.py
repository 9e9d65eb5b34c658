from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from memo.models.reminder import ReminderModel


class WidgetEntryModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    date: datetime = Field(default_factory=lambda: datetime.now(UTC))
    incomplete_count: int = 0
    list_name: str
    next_update: datetime
    reminders: list[ReminderModel] = []
