import random
import string
from collections.abc import Callable
from datetime import time

import pytest
import pytest_asyncio

from memo.helpers.config_models.notification import MemoryGatewayModel
from memo.helpers.config_models.store import MemoryModel
from memo.models.notification import (
    NotificationSettingsModel,
    NotificationTypeEnum,
    ScheduleTypeEnum,
    TriggerModel,
)
from memo.models.reminder import ReminderModel
from memo.models.reminder_list import ReminderListModel
from memo.persistence.memory import MemoryStore
from memo.persistence.memory_gateway import MemoryGateway


class GatewayMock(MemoryGateway):
    """
    Memory gateway recording the calls it receives.

    Triggers listed in `fail_identifiers` are rejected with an error.
    """

    authorization_calls: int
    fail_identifiers: set[str]
    schedule_calls: list[str]

    def __init__(
        self,
        authorization_granted: bool = True,
        capacity: int = 64,
    ) -> None:
        super().__init__(
            MemoryGatewayModel(
                authorization_granted=authorization_granted,
                capacity=capacity,
            )
        )
        self.authorization_calls = 0
        self.fail_identifiers = set()
        self.schedule_calls = []

    async def request_authorization(self) -> bool:
        self.authorization_calls += 1
        return await super().request_authorization()

    async def schedule(self, trigger: TriggerModel) -> None:
        self.schedule_calls.append(trigger.identifier)
        if trigger.identifier in self.fail_identifiers:
            raise RuntimeError(f"Trigger {trigger.identifier} rejected")
        await super().schedule(trigger)


@pytest.fixture
def gateway_factory() -> Callable[..., GatewayMock]:
    return GatewayMock


@pytest_asyncio.fixture
async def gateway(gateway_factory) -> GatewayMock:
    gateway = gateway_factory()
    await gateway.request_authorization()
    gateway.authorization_calls = 0
    return gateway


@pytest.fixture
def random_text() -> str:
    text = "".join(random.choice(string.ascii_letters) for _ in range(32))
    return text


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(MemoryModel())


@pytest.fixture
def make_list() -> Callable[..., ReminderListModel]:
    """
    Build a list with notification settings, reminders are given by title.
    """

    def _make_list(  # noqa: PLR0913
        titles: list[str] | None = None,
        completed: set[str] | None = None,
        daily_time: time = time(9, 0),
        is_enabled: bool = True,
        name: str = "Groceries",
        notification_type: NotificationTypeEnum = NotificationTypeEnum.PER_ITEM,
        schedule_type: ScheduleTypeEnum = ScheduleTypeEnum.DAILY,
        selected_weekdays: set[int] | None = None,
    ) -> ReminderListModel:
        return ReminderListModel(
            name=name,
            notification_settings=NotificationSettingsModel(
                daily_time=daily_time,
                is_enabled=is_enabled,
                notification_type=notification_type,
                schedule_type=schedule_type,
                selected_weekdays=selected_weekdays or set(),
            ),
            reminders=[
                ReminderModel(
                    is_completed=title in (completed or set()),
                    title=title,
                )
                for title in titles or []
            ],
        )

    return _make_list
