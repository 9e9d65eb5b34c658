"""
Home-screen widget renderer.

The widget runs in its own process and only reads the store, the application stays the single writer.
"""

from datetime import UTC, datetime, timedelta
from uuid import UUID

from pydantic import ValidationError

from memo.helpers.logging import logger
from memo.helpers.monitoring import start_as_current_span
from memo.models.collection import StoreKeyEnum, load_lists
from memo.models.reminder_list import ReminderListModel
from memo.models.widget import WidgetEntryModel
from memo.persistence.istore import IStore


@start_as_current_span("widget_load_entry")
async def load_widget_entry(
    store: IStore,
    default_name: str = "Reminders",
    display_count: int = 6,
    refresh_min: int = 15,
) -> WidgetEntryModel:
    """
    Build the widget content from the shared store.

    The selected list is shown, or the first list if the selection is missing or stale. Incomplete reminders come first, then completed ones, up to `display_count`.
    """
    now = datetime.now(UTC)
    entry = WidgetEntryModel(
        date=now,
        list_name=default_name,
        next_update=now + timedelta(minutes=refresh_min),
    )

    data = await store.get(StoreKeyEnum.LISTS.value)
    if not data:
        logger.debug("No lists in store, showing empty widget")
        return entry

    try:
        lists = load_lists(data)
    except ValidationError as e:
        logger.error("Stored lists are not valid, showing empty widget: %s", e.errors())
        return entry

    reminder_list = _selected_list(
        lists=lists,
        selected=await store.get(StoreKeyEnum.SELECTED_LIST_ID.value),
    )
    if not reminder_list:
        return entry

    incomplete = reminder_list.incomplete_reminders()
    entry.list_name = reminder_list.name
    entry.incomplete_count = len(incomplete)
    entry.reminders = (incomplete + reminder_list.completed_reminders())[
        :display_count
    ]
    return entry


def _selected_list(
    lists: list[ReminderListModel],
    selected: bytes | None,
) -> ReminderListModel | None:
    if selected:
        try:
            selected_id = UUID(selected.decode())
            for reminder_list in lists:
                if reminder_list.id == selected_id:
                    return reminder_list
        except ValueError:
            logger.debug("Selected list id is not valid: %s", selected)
    # Fallback to first list
    return lists[0] if lists else None
