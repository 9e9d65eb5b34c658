from datetime import UTC, datetime
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ReminderModel(BaseModel):
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
    due_date: datetime | None = None
    is_completed: bool = False
    title: str

    @field_validator("title")
    @classmethod
    def _validate_title(cls, title: str) -> str:
        """
        Trim the title, an empty title is not a reminder.
        """
        title = title.strip()
        if not title:
            raise ValueError("Title must not be empty")
        return title


class ReminderCreateModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    due_date: datetime | None = None
    title: str


class ReminderUpdateModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    clear_due_date: bool = False
    due_date: datetime | None = None
    is_completed: bool | None = None
    title: str | None = None
