"""
Display strings for the user interface.

The domain never reads them, only notification bodies are built by the planner.
"""

from pydantic import BaseModel

from memo.models.notification import NotificationTypeEnum, ScheduleTypeEnum


class LabelModel(BaseModel):
    description: str
    name: str


class OptionModel(LabelModel):
    value: str


NOTIFICATION_TYPE_LABELS: dict[NotificationTypeEnum, LabelModel] = {
    NotificationTypeEnum.PER_ITEM: LabelModel(
        description="Get a notification for each incomplete item",
        name="Each item separately",
    ),
    NotificationTypeEnum.LIST_DIGEST: LabelModel(
        description="Get a single reminder to check the list",
        name="Single list reminder",
    ),
}

SCHEDULE_TYPE_LABELS: dict[ScheduleTypeEnum, LabelModel] = {
    ScheduleTypeEnum.DAILY: LabelModel(
        description="Send notifications every day",
        name="Every day",
    ),
    ScheduleTypeEnum.WEEKDAYS: LabelModel(
        description="Send notifications only on selected days",
        name="Specific days",
    ),
}

# 1 is Sunday
WEEKDAY_LABELS: dict[int, str] = {
    1: "Sun",
    2: "Mon",
    3: "Tue",
    4: "Wed",
    5: "Thu",
    6: "Fri",
    7: "Sat",
}


def notification_type_options() -> list[OptionModel]:
    return [
        OptionModel(value=key.value, **label.model_dump())
        for key, label in NOTIFICATION_TYPE_LABELS.items()
    ]


def schedule_type_options() -> list[OptionModel]:
    return [
        OptionModel(value=key.value, **label.model_dump())
        for key, label in SCHEDULE_TYPE_LABELS.items()
    ]


def weekday_label(weekday: int) -> str:
    """
    Short name of a weekday, the number itself if out of range.
    """
    return WEEKDAY_LABELS.get(weekday, str(weekday))


def notification_type_label(notification_type: NotificationTypeEnum) -> LabelModel:
    return NOTIFICATION_TYPE_LABELS[notification_type]


def schedule_type_label(schedule_type: ScheduleTypeEnum) -> LabelModel:
    return SCHEDULE_TYPE_LABELS[schedule_type]
