from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, TypeAdapter
from pydantic.alias_generators import to_camel

from memo.models.reminder import ReminderModel
from memo.models.reminder_list import ReminderListModel


class StoreKeyEnum(str, Enum):
    """
    Keys of the shared store, read by the widget renderer too.
    """

    LEGACY_REMINDERS = "SavedReminders"
    """Reminders saved before lists existed, migrated once."""
    LISTS = "SavedReminderLists"
    SELECTED_LIST_ID = "SelectedListID"


class CollectionModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    lists: list[ReminderListModel]
    selected_list_id: UUID | None = None


lists_adapter = TypeAdapter(list[ReminderListModel])
reminders_adapter = TypeAdapter(list[ReminderModel])


def dump_lists(lists: list[ReminderListModel]) -> bytes:
    return lists_adapter.dump_json(lists, by_alias=True)


def load_lists(data: bytes | str) -> list[ReminderListModel]:
    """
    Decode the stored lists.

    Raises `pydantic.ValidationError` if the data is corrupt or from an incompatible version.
    """
    return lists_adapter.validate_json(data)


def load_legacy_reminders(data: bytes | str) -> list[ReminderModel]:
    return reminders_adapter.validate_json(data)
