import asyncio
from collections import defaultdict
from uuid import UUID

from memo.helpers.logging import logger
from memo.helpers.monitoring import (
    SpanAttributeEnum,
    counter_add,
    gauge_set,
    notification_canceled,
    notification_pending,
    notification_scheduled,
    notification_skipped,
    start_as_current_span,
)
from memo.helpers.permission import PermissionGate
from memo.helpers.planner import plan, trigger_prefix
from memo.models.notification import ReconcileResultModel
from memo.models.reminder_list import ReminderListModel
from memo.persistence.igateway import INotificationGateway


class Reconciler:
    """
    Bring the triggers registered for a list in line with its current content.

    A pass cancels every pending trigger of the list then submits the planned ones. Offsets of item triggers move when reminders are added, removed or reordered, so there is no partial update.

    Passes for the same list are serialized, in call order. Passes for different lists run concurrently.
    """

    _capacity: int
    _gate: PermissionGate | None
    _locks: defaultdict[UUID, asyncio.Lock]
    _spread_sec: int

    def __init__(
        self,
        capacity: int = 64,
        gate: PermissionGate | None = None,
        spread_sec: int = 30,
    ):
        self._capacity = capacity
        self._gate = gate
        self._locks = defaultdict(asyncio.Lock)
        self._spread_sec = spread_sec

    @start_as_current_span("reconciler_reconcile")
    async def reconcile(
        self,
        reminder_list: ReminderListModel,
        gateway: INotificationGateway,
    ) -> ReconcileResultModel:
        """
        Replace the registered triggers of a list by the planned ones.

        Never raises for a rejected trigger, it is logged and counted as skipped. Submission stops before the gateway capacity is exceeded, the remainder is counted as skipped.
        """
        SpanAttributeEnum.LIST_ID.attribute(str(reminder_list.id))
        SpanAttributeEnum.LIST_REMINDERS.attribute(len(reminder_list.reminders))

        async with self._locks[reminder_list.id]:
            desired = plan(
                reminder_list=reminder_list,
                spread_sec=self._spread_sec,
            )
            pending = await gateway.list_pending()
            canceled = await self._cancel_pending(
                gateway=gateway,
                pending=pending,
                prefix=trigger_prefix(reminder_list),
            )
            res = ReconcileResultModel(canceled_count=canceled)

            # Permission is only asked when there is something to notify
            if desired and self._gate and not await self._gate.ensure_authorized():
                logger.info(
                    "Notifications not authorized, skipping %s triggers", len(desired)
                )
                res.authorized = False
                res.skipped_count = len(desired)

            else:
                estimate = len(pending) - canceled
                for index, trigger in enumerate(desired):
                    if estimate >= self._capacity:
                        remaining = len(desired) - index
                        logger.warning(
                            "Capacity of %s pending triggers reached, skipping %s triggers",
                            self._capacity,
                            remaining,
                        )
                        res.skipped_count += remaining
                        break

                    SpanAttributeEnum.TRIGGER_ID.attribute(trigger.identifier)
                    try:
                        await gateway.schedule(trigger)
                    except Exception:
                        logger.exception(
                            "Failed to schedule trigger %s", trigger.identifier
                        )
                        res.skipped_count += 1
                        continue

                    estimate += 1
                    res.scheduled_count += 1

                gauge_set(notification_pending, estimate)

        logger.info(
            "Reconciled list %s: %s scheduled, %s skipped, %s canceled",
            reminder_list.id,
            res.scheduled_count,
            res.skipped_count,
            res.canceled_count,
        )
        counter_add(notification_canceled, res.canceled_count)
        counter_add(notification_scheduled, res.scheduled_count)
        counter_add(notification_skipped, res.skipped_count)
        return res

    @start_as_current_span("reconciler_cancel")
    async def cancel(
        self,
        list_id: UUID,
        gateway: INotificationGateway,
    ) -> int:
        """
        Cancel every registered trigger of a list.

        Returns the count of canceled triggers.
        """
        SpanAttributeEnum.LIST_ID.attribute(str(list_id))

        async with self._locks[list_id]:
            canceled = await self._cancel_pending(
                gateway=gateway,
                pending=await gateway.list_pending(),
                prefix=str(list_id),
            )

        # The list is gone, its lock will not be used anymore
        lock = self._locks.get(list_id)
        if lock and not lock.locked():
            del self._locks[list_id]

        logger.info("Canceled %s triggers of list %s", canceled, list_id)
        counter_add(notification_canceled, canceled)
        return canceled

    @staticmethod
    async def _cancel_pending(
        gateway: INotificationGateway,
        pending: list[str],
        prefix: str,
    ) -> int:
        identifiers = [
            identifier for identifier in pending if identifier.startswith(prefix)
        ]
        if identifiers:
            await gateway.cancel(identifiers)
        return len(identifiers)
