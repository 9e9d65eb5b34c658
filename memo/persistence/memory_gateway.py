from memo.helpers.config_models.notification import MemoryGatewayModel
from memo.helpers.logging import logger
from memo.models.notification import TriggerModel
from memo.models.readiness import ReadinessEnum
from memo.persistence.igateway import INotificationGateway


class MemoryGateway(INotificationGateway):
    """
    In-process notification gateway.

    Behaves like the platform facility: nothing is registered until authorization is granted, and new triggers above the capacity are dropped without error.
    """

    _authorized: bool
    _config: MemoryGatewayModel
    _pending: dict[str, TriggerModel]

    def __init__(self, config: MemoryGatewayModel):
        self._authorized = False
        self._config = config
        self._pending = {}

    async def readiness(self) -> ReadinessEnum:
        return ReadinessEnum.OK

    async def request_authorization(self) -> bool:
        self._authorized = self._config.authorization_granted
        logger.info("Notification authorization granted: %s", self._authorized)
        return self._authorized

    async def schedule(self, trigger: TriggerModel) -> None:
        if not self._authorized:
            logger.debug("Not authorized, ignoring trigger %s", trigger.identifier)
            return

        if (
            trigger.identifier not in self._pending
            and len(self._pending) >= self._config.capacity
        ):
            logger.warning(
                "Capacity of %s reached, dropping trigger %s",
                self._config.capacity,
                trigger.identifier,
            )
            return

        self._pending[trigger.identifier] = trigger

    async def cancel(self, identifiers: list[str]) -> None:
        for identifier in identifiers:
            self._pending.pop(identifier, None)

    async def list_pending(self) -> list[str]:
        return list(self._pending.keys())

    def pending_triggers(self) -> list[TriggerModel]:
        """
        Registered triggers, in registration order.
        """
        return list(self._pending.values())
