"""
Trigger planning.

Turn the notification settings of a list into the recurring triggers to register. Planning is pure: no I/O, no clock, same input gives the same output.
"""

from memo.models.notification import (
    ALL_WEEKDAYS,
    NotificationTypeEnum,
    ScheduleTypeEnum,
    TriggerModel,
)
from memo.models.reminder import ReminderModel
from memo.models.reminder_list import ReminderListModel

DIGEST_TITLE = "Daily Reminder"


def plan(
    reminder_list: ReminderListModel,
    spread_sec: int = 30,
) -> list[TriggerModel]:
    """
    Compute the triggers of a list.

    Returns an empty list when notifications are not configured or disabled. Triggers are ordered by weekday first, then by reminder in list order.

    Item triggers of the same pass are spread `spread_sec` apart, the platform delivers only one notification per (hour, minute, second) tuple.
    """
    settings = reminder_list.notification_settings
    if not settings or not settings.is_enabled:
        return []

    hour = settings.daily_time.hour
    minute = settings.daily_time.minute

    # Daily is a single pass without weekday constraint
    weekdays: list[int | None]
    if settings.schedule_type == ScheduleTypeEnum.DAILY:
        weekdays = [None]
    else:
        weekdays = sorted(settings.selected_weekdays or ALL_WEEKDAYS)

    triggers: list[TriggerModel] = []
    for weekday in weekdays:
        if settings.notification_type == NotificationTypeEnum.LIST_DIGEST:
            triggers.append(
                _digest_trigger(
                    hour=hour,
                    minute=minute,
                    reminder_list=reminder_list,
                    weekday=weekday,
                )
            )
            continue

        for index, reminder in enumerate(reminder_list.incomplete_reminders()):
            triggers.append(
                _item_trigger(
                    hour=hour,
                    minute=minute,
                    offset_sec=index * spread_sec,
                    reminder=reminder,
                    reminder_list=reminder_list,
                    weekday=weekday,
                )
            )

    return triggers


def spread(
    hour: int,
    minute: int,
    offset_sec: int,
) -> tuple[int, int, int]:
    """
    Add an offset in seconds to a time of day.

    Returns (hour, minute, second), hour wraps around midnight.
    """
    minute += offset_sec // 60
    second = offset_sec % 60
    if minute >= 60:
        hour = (hour + minute // 60) % 24
        minute %= 60
    return hour, minute, second


def trigger_prefix(reminder_list: ReminderListModel) -> str:
    """
    Prefix shared by every trigger identifier of a list.
    """
    return str(reminder_list.id)


def _weekday_suffix(weekday: int | None) -> str:
    return f"_wd{weekday}" if weekday is not None else ""


def _digest_trigger(
    hour: int,
    minute: int,
    reminder_list: ReminderListModel,
    weekday: int | None,
) -> TriggerModel:
    return TriggerModel(
        body=f"Don't forget to check the list {reminder_list.name}",
        hour=hour,
        identifier=f"{trigger_prefix(reminder_list)}_list_reminder{_weekday_suffix(weekday)}",
        minute=minute,
        repeats=True,
        second=0,
        title=DIGEST_TITLE,
        weekday=weekday,
    )


def _item_trigger(  # noqa: PLR0913
    hour: int,
    minute: int,
    offset_sec: int,
    reminder: ReminderModel,
    reminder_list: ReminderListModel,
    weekday: int | None,
) -> TriggerModel:
    hour, minute, second = spread(
        hour=hour,
        minute=minute,
        offset_sec=offset_sec,
    )
    return TriggerModel(
        body=reminder.title,
        hour=hour,
        identifier=f"{trigger_prefix(reminder_list)}_item_{reminder.id}{_weekday_suffix(weekday)}",
        minute=minute,
        repeats=True,
        second=second,
        title=f"Reminder from {reminder_list.name}",
        weekday=weekday,
    )
