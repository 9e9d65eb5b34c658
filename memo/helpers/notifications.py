from uuid import UUID

from aiojobs import Scheduler

from memo.helpers.config_models.notification import NotificationModel
from memo.helpers.logging import logger
from memo.helpers.permission import PermissionGate
from memo.helpers.reconciler import Reconciler
from memo.models.notification import ReconcileResultModel
from memo.models.reminder_list import ReminderListModel
from memo.persistence.igateway import INotificationGateway


class NotificationScheduler:
    """
    Run reconciliation passes in the background.

    List mutations are persisted first, then a pass is spawned. A slow or hung gateway never delays the mutation itself.
    """

    _gate: PermissionGate
    _gateway: INotificationGateway
    _reconciler: Reconciler
    _scheduler: Scheduler

    def __init__(
        self,
        config: NotificationModel,
        gateway: INotificationGateway,
        scheduler: Scheduler,
    ):
        self._gate = PermissionGate(gateway)
        self._gateway = gateway
        self._reconciler = Reconciler(
            capacity=config.capacity,
            gate=self._gate,
            spread_sec=config.spread_sec,
        )
        self._scheduler = scheduler

    @property
    def gate(self) -> PermissionGate:
        return self._gate

    async def schedule_list(self, reminder_list: ReminderListModel) -> None:
        """
        Spawn a reconciliation pass for the list.

        The list is copied, later edits get their own pass.
        """
        await self._scheduler.spawn(
            self._run(reminder_list.model_copy(deep=True)),
        )

    async def forget_list(self, list_id: UUID) -> None:
        """
        Spawn the cancellation of every trigger of a deleted list.
        """
        await self._scheduler.spawn(self._run_cancel(list_id))

    async def reconcile_now(
        self,
        reminder_list: ReminderListModel,
    ) -> ReconcileResultModel:
        return await self._reconciler.reconcile(
            gateway=self._gateway,
            reminder_list=reminder_list,
        )

    async def _run(self, reminder_list: ReminderListModel) -> None:
        try:
            await self.reconcile_now(reminder_list)
        except Exception:
            logger.exception("Reconciliation of list %s failed", reminder_list.id)

    async def _run_cancel(self, list_id: UUID) -> None:
        try:
            await self._reconciler.cancel(
                gateway=self._gateway,
                list_id=list_id,
            )
        except Exception:
            logger.exception("Cancellation of list %s failed", list_id)
