import asyncio
import json
from datetime import time
from uuid import UUID, uuid4

import pytest
from pytest_assume.plugin import assume

from memo.helpers.collection import CollectionManager
from memo.helpers.config_models.lists import ListsModel
from memo.helpers.config_models.store import MemoryModel
from memo.models.collection import StoreKeyEnum, dump_lists, load_lists
from memo.models.notification import (
    NotificationSettingsModel,
    NotificationTypeEnum,
)
from memo.models.reminder import ReminderModel
from memo.models.reminder_list import ReminderListModel
from memo.persistence.memory import MemoryStore


async def _stored_lists(store: MemoryStore) -> list[ReminderListModel]:
    data = await store.get(StoreKeyEnum.LISTS.value)
    assert data
    return load_lists(data)


async def _stored_selection(store: MemoryStore) -> UUID:
    data = await store.get(StoreKeyEnum.SELECTED_LIST_ID.value)
    assert data
    return UUID(data.decode())


async def _loaded(store: MemoryStore, **kwargs) -> CollectionManager:
    collection = CollectionManager(config=ListsModel(), store=store, **kwargs)
    await collection.load()
    return collection


@pytest.mark.asyncio(loop_scope="session")
async def test_load_empty(store: MemoryStore) -> None:
    """
    First launch creates and selects the default list.
    """
    collection = await _loaded(store)

    assert [list_.name for list_ in collection.lists] == ["Reminders"]
    assert collection.selected_list_id == collection.lists[0].id
    assert await _stored_selection(store) == collection.lists[0].id


@pytest.mark.asyncio(loop_scope="session")
async def test_load_existing(store: MemoryStore, make_list) -> None:
    groceries = make_list(titles=["Milk"])
    work = make_list(name="Work")
    await store.set(StoreKeyEnum.LISTS.value, dump_lists([groceries, work]))
    await store.set(StoreKeyEnum.SELECTED_LIST_ID.value, str(work.id))

    collection = await _loaded(store)

    assert collection.lists == [groceries, work]
    assert collection.selected_list == work


@pytest.mark.asyncio(loop_scope="session")
@pytest.mark.parametrize(
    "selected",
    [
        pytest.param(None, id="missing"),
        pytest.param(str(uuid4()), id="stale"),
        pytest.param("not-an-id", id="invalid"),
    ],
)
async def test_selection_fallback(
    store: MemoryStore,
    make_list,
    selected: str | None,
) -> None:
    groceries = make_list()
    work = make_list(name="Work")
    await store.set(StoreKeyEnum.LISTS.value, dump_lists([groceries, work]))
    if selected:
        await store.set(StoreKeyEnum.SELECTED_LIST_ID.value, selected)

    collection = await _loaded(store)

    assert collection.selected_list_id == groceries.id
    assert await _stored_selection(store) == groceries.id


@pytest.mark.asyncio(loop_scope="session")
async def test_corrupt_lists(store: MemoryStore) -> None:
    await store.set(StoreKeyEnum.LISTS.value, b"{not json")

    collection = await _loaded(store)

    assert [list_.name for list_ in collection.lists] == ["Reminders"]


@pytest.mark.asyncio(loop_scope="session")
async def test_legacy_migration(store: MemoryStore) -> None:
    """
    Reminders saved before lists existed end up in the default list.
    """
    legacy = [
        ReminderModel(title="Milk"),
        ReminderModel(is_completed=True, title="Eggs"),
    ]
    await store.set(
        StoreKeyEnum.LEGACY_REMINDERS.value,
        json.dumps([reminder.model_dump(by_alias=True, mode="json") for reminder in legacy]),
    )

    collection = await _loaded(store)

    assert len(collection.lists) == 1
    migrated = collection.lists[0]
    assume(migrated.name == "Reminders")
    assume(migrated.notification_settings is None)
    assume(migrated.reminders == legacy)
    assert await store.get(StoreKeyEnum.LEGACY_REMINDERS.value) is None
    assert await _stored_lists(store) == [migrated]


@pytest.mark.asyncio(loop_scope="session")
async def test_legacy_migration_once(store: MemoryStore, make_list) -> None:
    """
    Lists already saved win over legacy reminders.
    """
    groceries = make_list()
    await store.set(StoreKeyEnum.LISTS.value, dump_lists([groceries]))
    await store.set(StoreKeyEnum.LEGACY_REMINDERS.value, b"[]")

    collection = await _loaded(store)

    assert collection.lists == [groceries]


@pytest.mark.asyncio(loop_scope="session")
async def test_legacy_corrupt(store: MemoryStore) -> None:
    await store.set(StoreKeyEnum.LEGACY_REMINDERS.value, b"[{\"title\": 42}]")

    collection = await _loaded(store)

    assert [list_.name for list_ in collection.lists] == ["Reminders"]
    assert collection.lists[0].reminders == []


@pytest.mark.asyncio(loop_scope="session")
async def test_container_migration(store: MemoryStore, make_list) -> None:
    legacy_store = MemoryStore(MemoryModel())
    groceries = make_list(titles=["Milk"])
    await legacy_store.set(StoreKeyEnum.LISTS.value, dump_lists([groceries]))
    await legacy_store.set(StoreKeyEnum.SELECTED_LIST_ID.value, str(groceries.id))

    collection = await _loaded(store, legacy_store=legacy_store)

    assert collection.lists == [groceries]
    assert await _stored_lists(store) == [groceries]
    assert await _stored_selection(store) == groceries.id
    assert await legacy_store.get(StoreKeyEnum.LISTS.value) is None
    assert await legacy_store.get(StoreKeyEnum.SELECTED_LIST_ID.value) is None


@pytest.mark.asyncio(loop_scope="session")
async def test_container_migration_skipped(store: MemoryStore, make_list) -> None:
    legacy_store = MemoryStore(MemoryModel())
    current = make_list(name="Current")
    await store.set(StoreKeyEnum.LISTS.value, dump_lists([current]))
    await legacy_store.set(StoreKeyEnum.LISTS.value, dump_lists([make_list()]))

    collection = await _loaded(store, legacy_store=legacy_store)

    assert collection.lists == [current]
    assert await legacy_store.get(StoreKeyEnum.LISTS.value)


@pytest.mark.asyncio(loop_scope="session")
async def test_add_list(store: MemoryStore) -> None:
    collection = await _loaded(store)
    settings = NotificationSettingsModel(
        daily_time=time(8, 30),
        is_enabled=True,
        notification_type=NotificationTypeEnum.LIST_DIGEST,
    )

    new_list = await collection.add_list(
        name="  Work  ",
        notification_settings=settings,
    )

    assert new_list
    assume(new_list.name == "Work")
    assume(new_list.notification_settings == settings)
    assert collection.selected_list_id == new_list.id
    assert await _stored_selection(store) == new_list.id
    assert [list_.name for list_ in await _stored_lists(store)] == ["Reminders", "Work"]


@pytest.mark.asyncio(loop_scope="session")
async def test_add_list_empty_name(store: MemoryStore) -> None:
    collection = await _loaded(store)

    assert await collection.add_list(name="   ") is None
    assert len(collection.lists) == 1


@pytest.mark.asyncio(loop_scope="session")
async def test_rename_list(store: MemoryStore) -> None:
    collection = await _loaded(store)
    work = await collection.add_list(
        name="Work",
        notification_settings=NotificationSettingsModel(
            daily_time=time(8, 30),
            is_enabled=True,
            notification_type=NotificationTypeEnum.LIST_DIGEST,
        ),
    )
    assert work

    renamed = await collection.rename_list(list_id=work.id, name="Office")
    assert renamed
    assume(renamed.name == "Office")
    assume(renamed.id == work.id)
    assume(renamed.notification_settings == work.notification_settings)

    cleared = await collection.rename_list(
        clear_notification_settings=True,
        list_id=work.id,
    )
    assert cleared
    assert cleared.notification_settings is None
    assert (await _stored_lists(store))[1] == cleared

    assert await collection.rename_list(list_id=work.id, name="") is None
    assert await collection.rename_list(list_id=uuid4(), name="Other") is None


@pytest.mark.asyncio(loop_scope="session")
async def test_delete_default_guard(store: MemoryStore) -> None:
    """
    The default list stays while other lists exist.
    """
    collection = await _loaded(store)
    default = collection.lists[0]
    work = await collection.add_list(name="Work")
    assert work

    assert not await collection.delete_list(default.id)
    assert len(collection.lists) == 2

    assert await collection.delete_list(work.id)
    assert collection.lists == [default]
    # Selection moved back to the remaining list
    assert collection.selected_list_id == default.id
    assert await _stored_selection(store) == default.id


@pytest.mark.asyncio(loop_scope="session")
async def test_delete_last_list(store: MemoryStore) -> None:
    """
    Deleting the only list creates a fresh default list.
    """
    collection = await _loaded(store)
    default = collection.lists[0]

    assert await collection.delete_list(default.id)

    assert len(collection.lists) == 1
    fresh = collection.lists[0]
    assume(fresh.name == "Reminders")
    assume(fresh.id != default.id)
    assert collection.selected_list_id == fresh.id
    assert await _stored_selection(store) == fresh.id
    assert await _stored_lists(store) == [fresh]


@pytest.mark.asyncio(loop_scope="session")
async def test_delete_unselected(store: MemoryStore) -> None:
    collection = await _loaded(store)
    work = await collection.add_list(name="Work")
    home = await collection.add_list(name="Home")
    assert work and home

    assert await collection.delete_list(work.id)

    assert collection.selected_list_id == home.id
    assert not await collection.delete_list(uuid4())


@pytest.mark.asyncio(loop_scope="session")
async def test_select_list(store: MemoryStore) -> None:
    collection = await _loaded(store)
    default = collection.lists[0]
    await collection.add_list(name="Work")

    assert await collection.select_list(default.id)
    assert await _stored_selection(store) == default.id
    assert not await collection.select_list(uuid4())
    assert collection.selected_list_id == default.id


@pytest.mark.asyncio(loop_scope="session")
async def test_reminders(store: MemoryStore) -> None:
    collection = await _loaded(store)
    list_id = collection.lists[0].id

    updated = await collection.add_reminder(list_id=list_id, title="  Milk ")
    assert updated
    milk = updated.reminders[0]
    assert milk.title == "Milk"
    assert await collection.add_reminder(list_id=list_id, title=" ") is None
    assert await collection.add_reminder(list_id=uuid4(), title="Eggs") is None

    updated = await collection.update_reminder(
        list_id=list_id,
        reminder_id=milk.id,
        title="Oat milk",
    )
    assert updated
    assert updated.reminders[0].title == "Oat milk"
    assert (
        await collection.update_reminder(
            list_id=list_id,
            reminder_id=milk.id,
            title="",
        )
        is None
    )

    updated = await collection.toggle_reminder(list_id=list_id, reminder_id=milk.id)
    assert updated
    assert updated.reminders[0].is_completed
    assert (await _stored_lists(store))[0].reminders[0].is_completed

    updated = await collection.delete_reminders(
        list_id=list_id,
        reminder_ids=[milk.id],
    )
    assert updated
    assert updated.reminders == []
    assert (await _stored_lists(store))[0].reminders == []


@pytest.mark.asyncio(loop_scope="session")
async def test_due_date(store: MemoryStore) -> None:
    collection = await _loaded(store)
    list_id = collection.lists[0].id
    updated = await collection.add_reminder(list_id=list_id, title="Milk")
    assert updated
    milk = updated.reminders[0]

    updated = await collection.update_reminder(
        due_date=milk.created_date,
        list_id=list_id,
        reminder_id=milk.id,
    )
    assert updated
    assert updated.reminders[0].due_date == milk.created_date

    updated = await collection.update_reminder(
        clear_due_date=True,
        list_id=list_id,
        reminder_id=milk.id,
    )
    assert updated
    assert updated.reminders[0].due_date is None


class SlowStore(MemoryStore):
    """
    Memory store taking some time to write, mutations queue on the lock.
    """

    async def set(
        self,
        key: str,
        value: str | bytes,
    ) -> bool:
        await asyncio.sleep(0.01)
        return await super().set(key=key, value=value)


@pytest.mark.asyncio(loop_scope="session")
@pytest.mark.repeat(10)  # Catch multi-threading and concurrency issues
async def test_concurrent_reminders() -> None:
    """
    Concurrent reminder mutations are applied one after the other.

    Steps:
    1. Queue a slow write holding the lock
    2. Toggle a reminder twice, delete another then toggle it
    3. Check no toggle is lost and the deleted reminder is not recreated
    """
    store = SlowStore(MemoryModel())
    collection = await _loaded(store)
    list_id = collection.lists[0].id
    await collection.add_reminder(list_id=list_id, title="Milk")
    updated = await collection.add_reminder(list_id=list_id, title="Eggs")
    assert updated
    milk, eggs = updated.reminders

    results = await asyncio.gather(
        collection.add_reminder(list_id=list_id, title="Bread"),
        collection.toggle_reminder(list_id=list_id, reminder_id=milk.id),
        collection.toggle_reminder(list_id=list_id, reminder_id=milk.id),
        collection.delete_reminders(list_id=list_id, reminder_ids=[eggs.id]),
        collection.toggle_reminder(list_id=list_id, reminder_id=eggs.id),
    )

    # Toggling a deleted reminder is ignored
    assert results[-1] is None
    for stored in (collection.lists[0], (await _stored_lists(store))[0]):
        assume([reminder.title for reminder in stored.reminders] == ["Milk", "Bread"])
        assume(not stored.reminders[0].is_completed)


@pytest.mark.asyncio(loop_scope="session")
async def test_toggle_twice_concurrently(store: MemoryStore) -> None:
    collection = await _loaded(store)
    list_id = collection.lists[0].id
    updated = await collection.add_reminder(list_id=list_id, title="Milk")
    assert updated
    milk = updated.reminders[0]

    await asyncio.gather(
        *[
            collection.toggle_reminder(list_id=list_id, reminder_id=milk.id)
            for _ in range(3)
        ]
    )

    assert collection.lists[0].reminders[0].is_completed
