import asyncio
from datetime import datetime
from uuid import UUID

from pydantic import ValidationError

from memo.helpers.config_models.lists import ListsModel
from memo.helpers.logging import logger
from memo.helpers.monitoring import start_as_current_span
from memo.models.collection import (
    CollectionModel,
    StoreKeyEnum,
    dump_lists,
    load_legacy_reminders,
    load_lists,
)
from memo.models.notification import NotificationSettingsModel
from memo.models.reminder import ReminderModel
from memo.models.reminder_list import ReminderListModel
from memo.persistence.istore import IStore


class CollectionManager:
    """
    Owner of the reminder lists.

    Every mutation is serialized and written through to the store before returning. The collection is never empty, a default list is created when needed.

    Invalid mutations (unknown list or reminder, empty title, deleting the default list while other lists exist) are ignored and logged, they return `None` or `False`.
    """

    _config: ListsModel
    _legacy_store: IStore | None
    _lists: list[ReminderListModel]
    _lock: asyncio.Lock
    _selected_list_id: UUID | None
    _store: IStore

    def __init__(
        self,
        config: ListsModel,
        store: IStore,
        legacy_store: IStore | None = None,
    ):
        self._config = config
        self._legacy_store = legacy_store
        self._lists = []
        self._lock = asyncio.Lock()
        self._selected_list_id = None
        self._store = store

    @property
    def lists(self) -> list[ReminderListModel]:
        return list(self._lists)

    @property
    def selected_list_id(self) -> UUID | None:
        return self._selected_list_id

    @property
    def selected_list(self) -> ReminderListModel | None:
        return self.get_list(self._selected_list_id) if self._selected_list_id else None

    def snapshot(self) -> CollectionModel:
        return CollectionModel(
            lists=self.lists,
            selected_list_id=self._selected_list_id,
        )

    def get_list(self, list_id: UUID) -> ReminderListModel | None:
        return next((list_ for list_ in self._lists if list_.id == list_id), None)

    @start_as_current_span("collection_load")
    async def load(self) -> CollectionModel:
        """
        Load the collection from the store.

        Steps:
        1. Move data left in the legacy store, if any
        2. Decode the lists, or migrate reminders saved before lists existed
        3. Create the default list if nothing was found
        4. Restore the selected list, fallback to the first one
        """
        async with self._lock:
            await self._migrate_container()

            data = await self._store.get(StoreKeyEnum.LISTS.value)
            if data:
                try:
                    self._lists = load_lists(data)
                    logger.info("Loaded %s lists", len(self._lists))
                except ValidationError as e:
                    logger.error("Stored lists are not valid, using defaults: %s", e.errors())
                    self._lists = []
            else:
                await self._migrate_legacy_reminders()

            if not self._lists:
                self._create_default_list()

            await self._load_selected_list()
        return self.snapshot()

    @start_as_current_span("collection_add_list")
    async def add_list(
        self,
        name: str,
        notification_settings: NotificationSettingsModel | None = None,
    ) -> ReminderListModel | None:
        """
        Create a list and select it.
        """
        try:
            new_list = ReminderListModel(
                name=name,
                notification_settings=notification_settings,
            )
        except ValidationError as e:
            logger.warning("Ignoring invalid list: %s", e.errors())
            return None

        async with self._lock:
            self._lists.append(new_list)
            self._selected_list_id = new_list.id
            await self._save_selected_list()
            await self._save_lists()
        logger.info("Added list %s", new_list.id)
        return new_list

    @start_as_current_span("collection_update_list")
    async def update_list(
        self,
        updated_list: ReminderListModel,
    ) -> ReminderListModel | None:
        """
        Replace a list by its updated version, matched by id.
        """
        async with self._lock:
            index = self._index(updated_list.id)
            if index is None:
                logger.warning("List %s not found, ignoring update", updated_list.id)
                return None
            self._lists[index] = updated_list
            await self._save_lists()
        return updated_list

    async def rename_list(
        self,
        list_id: UUID,
        name: str | None = None,
        notification_settings: NotificationSettingsModel | None = None,
        clear_notification_settings: bool = False,
    ) -> ReminderListModel | None:
        """
        Change the name and the notification settings of a list.

        Omitted values are kept, use `clear_notification_settings` to remove the settings.
        """
        current = self.get_list(list_id)
        if not current:
            logger.warning("List %s not found, ignoring edit", list_id)
            return None

        update: dict = {}
        if name is not None:
            update["name"] = name
        if clear_notification_settings:
            update["notification_settings"] = None
        elif notification_settings is not None:
            update["notification_settings"] = notification_settings
        try:
            # Copy then validate, "model_copy" does not run validators
            updated = ReminderListModel.model_validate(
                {**current.model_dump(), **update}
            )
        except ValidationError as e:
            logger.warning("Ignoring invalid list edit: %s", e.errors())
            return None
        return await self.update_list(updated)

    @start_as_current_span("collection_delete_list")
    async def delete_list(self, list_id: UUID) -> bool:
        """
        Delete a list.

        The default list cannot be deleted while other lists exist. Deleting the last list creates a new default list.

        Returns `True` if the list was deleted.
        """
        async with self._lock:
            index = self._index(list_id)
            if index is None:
                logger.warning("List %s not found, ignoring delete", list_id)
                return False

            deleted = self._lists[index]
            if deleted.name == self._config.default_name and len(self._lists) > 1:
                logger.warning(
                    "Cannot delete default list %s while other lists exist", list_id
                )
                return False

            logger.info("Deleting list %s", list_id)
            del self._lists[index]

            if not self._lists:
                logger.info("All lists deleted, creating new default list")
                self._create_default_list()
                await self._save_selected_list()

            elif self._selected_list_id == list_id:
                self._selected_list_id = self._lists[0].id
                await self._save_selected_list()
                logger.info("Switched to list %s", self._selected_list_id)

            await self._save_lists()
        return True

    @start_as_current_span("collection_select_list")
    async def select_list(self, list_id: UUID) -> bool:
        async with self._lock:
            if self._index(list_id) is None:
                logger.warning("List %s not found, ignoring selection", list_id)
                return False
            self._selected_list_id = list_id
            await self._save_selected_list()
        return True

    @start_as_current_span("collection_add_reminder")
    async def add_reminder(
        self,
        list_id: UUID,
        title: str,
        due_date: datetime | None = None,
    ) -> ReminderListModel | None:
        """
        Append a reminder to a list.

        Returns the updated list.
        """
        try:
            reminder = ReminderModel(
                due_date=due_date,
                title=title,
            )
        except ValidationError as e:
            logger.warning("Ignoring invalid reminder: %s", e.errors())
            return None

        async with self._lock:
            reminder_list = self.get_list(list_id)
            if not reminder_list:
                logger.warning("List %s not found, ignoring reminder", list_id)
                return None
            reminder_list.reminders.append(reminder)
            await self._save_lists()
        return reminder_list

    @start_as_current_span("collection_update_reminder")
    async def update_reminder(  # noqa: PLR0913
        self,
        list_id: UUID,
        reminder_id: UUID,
        title: str | None = None,
        due_date: datetime | None = None,
        clear_due_date: bool = False,
        is_completed: bool | None = None,
    ) -> ReminderListModel | None:
        """
        Edit a reminder in place.

        Omitted values are kept, use `clear_due_date` to remove the due date.
        """
        async with self._lock:
            return await self._update_reminder_locked(
                clear_due_date=clear_due_date,
                due_date=due_date,
                is_completed=is_completed,
                list_id=list_id,
                reminder_id=reminder_id,
                title=title,
            )

    @start_as_current_span("collection_toggle_reminder")
    async def toggle_reminder(
        self,
        list_id: UUID,
        reminder_id: UUID,
    ) -> ReminderListModel | None:
        """
        Flip the completion of a reminder.

        The current state is read under the lock, concurrent toggles all apply.
        """
        async with self._lock:
            return await self._update_reminder_locked(
                list_id=list_id,
                reminder_id=reminder_id,
                toggle_completed=True,
            )

    @start_as_current_span("collection_delete_reminders")
    async def delete_reminders(
        self,
        list_id: UUID,
        reminder_ids: list[UUID],
    ) -> ReminderListModel | None:
        async with self._lock:
            reminder_list = self.get_list(list_id)
            if not reminder_list:
                logger.warning("List %s not found, ignoring reminders delete", list_id)
                return None
            reminder_list.reminders = [
                reminder
                for reminder in reminder_list.reminders
                if reminder.id not in reminder_ids
            ]
            await self._save_lists()
        return reminder_list

    async def _update_reminder_locked(  # noqa: PLR0913
        self,
        list_id: UUID,
        reminder_id: UUID,
        title: str | None = None,
        due_date: datetime | None = None,
        clear_due_date: bool = False,
        is_completed: bool | None = None,
        toggle_completed: bool = False,
    ) -> ReminderListModel | None:
        """
        Edit a reminder, the caller holds the lock.
        """
        reminder_list = self.get_list(list_id)
        reminder = reminder_list.reminder(reminder_id) if reminder_list else None
        if not reminder_list or not reminder:
            logger.warning(
                "Reminder %s of list %s not found, ignoring update",
                reminder_id,
                list_id,
            )
            return None

        if toggle_completed:
            is_completed = not reminder.is_completed
        try:
            if title is not None:
                reminder.title = title
            if clear_due_date:
                reminder.due_date = None
            elif due_date is not None:
                reminder.due_date = due_date
            if is_completed is not None:
                reminder.is_completed = is_completed
        except ValidationError as e:
            logger.warning("Ignoring invalid reminder edit: %s", e.errors())
            return None

        await self._save_lists()
        return reminder_list

    async def _migrate_container(self) -> None:
        """
        Move the collection from the legacy store to the current one.

        Skipped if the current store already holds lists. Legacy keys are removed after the copy.
        """
        if not self._legacy_store:
            return
        if await self._store.get(StoreKeyEnum.LISTS.value):
            logger.debug("Lists already in store, skipping container migration")
            return

        data = await self._legacy_store.get(StoreKeyEnum.LISTS.value)
        if not data:
            logger.debug("No lists in legacy store to migrate")
            return

        logger.info("Migrating lists from legacy store")
        await self._store.set(StoreKeyEnum.LISTS.value, data)
        selected = await self._legacy_store.get(StoreKeyEnum.SELECTED_LIST_ID.value)
        if selected:
            await self._store.set(StoreKeyEnum.SELECTED_LIST_ID.value, selected)

        await self._legacy_store.delete(StoreKeyEnum.LISTS.value)
        await self._legacy_store.delete(StoreKeyEnum.SELECTED_LIST_ID.value)

    async def _migrate_legacy_reminders(self) -> None:
        """
        Convert reminders saved before lists existed into the default list.
        """
        data = await self._store.get(StoreKeyEnum.LEGACY_REMINDERS.value)
        if not data:
            return

        try:
            reminders = load_legacy_reminders(data)
        except ValidationError as e:
            logger.error("Legacy reminders are not valid, ignoring them: %s", e.errors())
            return

        logger.info("Migrating %s legacy reminders", len(reminders))
        self._lists = [
            ReminderListModel(
                name=self._config.default_name,
                reminders=reminders,
            )
        ]
        await self._store.delete(StoreKeyEnum.LEGACY_REMINDERS.value)
        await self._save_lists()

    async def _load_selected_list(self) -> None:
        data = await self._store.get(StoreKeyEnum.SELECTED_LIST_ID.value)
        selected_id = None
        if data:
            try:
                selected_id = UUID(data.decode())
            except ValueError:
                logger.warning("Stored selected list id is not valid: %s", data)

        if selected_id and self._index(selected_id) is not None:
            self._selected_list_id = selected_id
            return

        self._selected_list_id = self._lists[0].id
        await self._save_selected_list()

    def _create_default_list(self) -> None:
        default_list = ReminderListModel(name=self._config.default_name)
        logger.info("Creating default list %s", default_list.id)
        self._lists = [default_list]
        self._selected_list_id = default_list.id

    def _index(self, list_id: UUID) -> int | None:
        return next(
            (i for i, list_ in enumerate(self._lists) if list_.id == list_id),
            None,
        )

    async def _save_lists(self) -> None:
        if not await self._store.set(StoreKeyEnum.LISTS.value, dump_lists(self._lists)):
            logger.error("Failed to save lists")

    async def _save_selected_list(self) -> None:
        if not self._selected_list_id:
            return
        if not await self._store.set(
            StoreKeyEnum.SELECTED_LIST_ID.value, str(self._selected_list_id)
        ):
            logger.error("Failed to save selected list")
